# core/services/importer.py
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.errors import NotFoundError, ValidationError
from core.models.book import BookData, is_missing
from core.sa.models import Book
from core.sa.repositories.book import BookRepository
from core.sa.repositories.user import UserRepository
from core.visibility import Visibility

logger = logging.getLogger(__name__)


class ImportOutcome(BaseModel):
    """What happened to each row of a bulk import.

    ``created + duplicates + failed`` always equals ``total``.
    """
    total: int
    created: int = 0
    duplicates: int = 0
    failed: int = 0
    created_isbn13s: List[str] = []
    duplicate_isbn13s: List[str] = []
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.failed == 0 and self.created > 0


def validate_batch(rows: Sequence[BookData]) -> None:
    """Reject an empty batch or one with rows lacking an ISBN-13 or title"""
    if not rows:
        raise ValidationError("empty queue")
    invalid = [row for row in rows if is_missing(row.isbn13) or is_missing(row.title)]
    if invalid:
        raise ValidationError(f"{len(invalid)} book(s) missing required information")


class BookImporter:
    """Inserts a batch of books into one owner's library"""

    def __init__(self, session: Session):
        self.session = session
        self.book_repository = BookRepository(session)
        self.user_repository = UserRepository(session)

    def import_books(
        self,
        owner_id: int,
        rows: Sequence[Union[BookData, Dict[str, Any]]],
        visibility: Visibility = Visibility.PUBLIC
    ) -> ImportOutcome:
        """
        Import a batch of books for an owner.

        Rows whose ISBN-13 the owner already has, or which repeat an ISBN-13
        earlier in the batch, are skipped as duplicates. The rest are inserted
        in one transaction; if that hits a uniqueness conflict the insert falls
        back to one row at a time so each row gets its own outcome.

        Args:
            owner_id: ID of the user who will own the books
            rows: Book data, as BookData models or plain dicts
            visibility: Visibility for the new books

        Returns:
            ImportOutcome with created/duplicate/failed counts

        Raises:
            ValidationError: Empty batch or rows missing required information
            NotFoundError: The owner does not exist
        """
        books = [row if isinstance(row, BookData) else BookData.model_validate(row) for row in rows]
        validate_batch(books)

        if self.user_repository.get_by_id(owner_id) is None:
            raise NotFoundError("User not found")

        outcome = ImportOutcome(total=len(books))
        existing = self.book_repository.existing_isbn13s(owner_id, [b.isbn13 for b in books])
        seen = set()
        pending: List[BookData] = []
        for book in books:
            if book.isbn13 in existing or book.isbn13 in seen:
                outcome.duplicates += 1
                outcome.duplicate_isbn13s.append(book.isbn13)
            else:
                seen.add(book.isbn13)
                pending.append(book)

        if pending:
            try:
                self.session.add_all([self._to_book(owner_id, b, visibility) for b in pending])
                self.session.commit()
                outcome.created += len(pending)
                outcome.created_isbn13s.extend(b.isbn13 for b in pending)
            except IntegrityError:
                # Another request inserted some of these meanwhile
                self.session.rollback()
                logger.info(f"Bulk insert for owner {owner_id} conflicted, inserting row by row")
                self._insert_one_by_one(owner_id, pending, visibility, outcome)
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.exception(f"Bulk insert for owner {owner_id} failed")
                outcome.failed += len(pending)
                outcome.error = str(e)

        if outcome.created == 0 and outcome.duplicates == outcome.total:
            outcome.error = f"All {outcome.total} book(s) already exist in this library (duplicate ISBN-13)"

        logger.info(
            f"Imported books for owner {owner_id}: {outcome.created} created, "
            f"{outcome.duplicates} duplicate, {outcome.failed} failed of {outcome.total}"
        )
        return outcome

    def _insert_one_by_one(self, owner_id: int, pending: Sequence[BookData], visibility: Visibility, outcome: ImportOutcome) -> None:
        errors: List[str] = []
        for book in pending:
            try:
                self.session.add(self._to_book(owner_id, book, visibility))
                self.session.commit()
                outcome.created += 1
                outcome.created_isbn13s.append(book.isbn13)
            except IntegrityError as e:
                self.session.rollback()
                if self.book_repository.exists_for_owner(owner_id, book.isbn13):
                    outcome.duplicates += 1
                    outcome.duplicate_isbn13s.append(book.isbn13)
                else:
                    outcome.failed += 1
                    errors.append(f"{book.isbn13}: {e.orig}")
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.exception(f"Inserting {book.isbn13} for owner {owner_id} failed")
                outcome.failed += 1
                errors.append(f"{book.isbn13}: {e}")
        if errors:
            outcome.error = "; ".join(errors)

    def _to_book(self, owner_id: int, data: BookData, visibility: Visibility) -> Book:
        return Book(owner_id=owner_id, visibility=visibility, **data.to_book_data())
