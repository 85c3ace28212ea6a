# core/sa/repositories/book.py
import json
from typing import Optional, List, Dict, Any, Iterable, Sequence, Set, Tuple
from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.orm import Session
from core.visibility import list_filter
from ..models import Book

class BookRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, book_id: int) -> Optional[Book]:
        """Get a book by its ID"""
        return self.session.get(Book, book_id)

    def get_by_owner_and_isbn13(self, owner_id: int, isbn13: str) -> Optional[Book]:
        return self.session.execute(
            select(Book).where(Book.owner_id == owner_id, Book.isbn13 == isbn13)
        ).scalar_one_or_none()

    def exists_for_owner(self, owner_id: int, isbn13: Optional[str]) -> bool:
        """Check whether the owner's library already holds this ISBN-13"""
        if not isbn13:
            return False
        count = self.session.execute(
            select(func.count(Book.id)).where(Book.owner_id == owner_id, Book.isbn13 == isbn13)
        ).scalar_one()
        return count > 0

    def existing_isbn13s(self, owner_id: int, isbn13s: Iterable[str]) -> Set[str]:
        """Return the subset of ``isbn13s`` already present in the owner's library"""
        wanted = {isbn for isbn in isbn13s if isbn}
        if not wanted:
            return set()
        rows = self.session.execute(
            select(Book.isbn13).where(Book.owner_id == owner_id, Book.isbn13.in_(wanted))
        ).scalars()
        return set(rows)

    def _visible_query(
        self,
        caller_id: Optional[int],
        query: Optional[str] = None,
        owner_id: Optional[int] = None,
        authors: Optional[Sequence[str]] = None,
        subjects: Optional[Sequence[str]] = None
    ):
        stmt = select(Book).where(list_filter(caller_id, Book))
        if query and query.strip():
            stmt = stmt.where(Book.title.ilike(f"%{query.strip()}%"))
        if owner_id is not None:
            stmt = stmt.where(Book.owner_id == owner_id)
        if authors:
            stmt = stmt.where(_has_any(Book.authors, authors))
        if subjects:
            stmt = stmt.where(_has_any(Book.subjects, subjects))
        return stmt

    def search_visible(
        self,
        caller_id: Optional[int],
        query: Optional[str] = None,
        owner_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
        authors: Optional[Sequence[str]] = None,
        subjects: Optional[Sequence[str]] = None
    ) -> List[Book]:
        """Search books the caller is allowed to see.
        
        Args:
            caller_id: User ID of the caller, None for anonymous callers
            query: Optional title search string
            owner_id: Optional owner to restrict the results to
            limit: Maximum number of results to return
            offset: Number of records to skip
            authors: Only books by at least one of these authors
            subjects: Only books with at least one of these subjects
            
        Returns:
            List of Book objects ordered by ID
        """
        stmt = (
            self._visible_query(caller_id, query, owner_id, authors, subjects)
            .order_by(Book.id).offset(offset).limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    def count_visible(
        self,
        caller_id: Optional[int],
        query: Optional[str] = None,
        owner_id: Optional[int] = None,
        authors: Optional[Sequence[str]] = None,
        subjects: Optional[Sequence[str]] = None
    ) -> int:
        stmt = self._visible_query(caller_id, query, owner_id, authors, subjects)
        return self.session.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()

    def visible_tags(self, caller_id: Optional[int], owner_id: Optional[int] = None) -> List[Tuple[int, str, List[str], List[str]]]:
        """(id, title, authors, subjects) of every book the caller may see"""
        stmt = select(Book.id, Book.title, Book.authors, Book.subjects).where(list_filter(caller_id, Book))
        if owner_id is not None:
            stmt = stmt.where(Book.owner_id == owner_id)
        return [tuple(row) for row in self.session.execute(stmt.order_by(Book.id))]

    def create_book(self, owner_id: int, data: Dict[str, Any]) -> Book:
        """Create a single book for an owner and commit it"""
        book = Book(owner_id=owner_id, **data)
        self.session.add(book)
        self.session.commit()
        return book

    def update_book(self, book: Book, changes: Dict[str, Any]) -> Book:
        for field, value in changes.items():
            setattr(book, field, value)
        self.session.commit()
        return book

    def delete_book(self, book: Book) -> None:
        self.session.delete(book)
        self.session.commit()


def _has_any(column, values: Sequence[str]):
    """Match a JSON string-array column holding any of ``values`` exactly"""
    text = cast(column, String)
    return or_(*(text.contains(json.dumps(value), autoescape=True) for value in values))
