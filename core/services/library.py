# core/services/library.py
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.errors import ConflictError, UnauthorizedError, ValidationError
from core.isbn import clean_identifier, validate_date, validate_isbn10, validate_isbn13
from core.models.book import BookData, CandidateRecord, is_missing
from core.resolvers.metadata import MetadataResolver
from core.sa.models import Book, DESCRIPTIVE_FIELDS
from core.sa.repositories.book import BookRepository
from core.visibility import Caller, Visibility, require_owner, require_viewable

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
MIN_SUGGESTION_QUERY = 2
SUGGESTION_LIMIT = 5

# Fields an owner may change directly on a book
EDITABLE_FIELDS = DESCRIPTIVE_FIELDS + ('read_date',)


class LibraryPage(BaseModel):
    items: List[Any]
    total: int
    page: int
    size: int
    total_pages: int

    model_config = ConfigDict(arbitrary_types_allowed=True)


class LibraryFilters(BaseModel):
    authors: List[str] = []
    subjects: List[str] = []


class TitleSuggestion(BaseModel):
    id: int
    title: str


class SearchSuggestions(BaseModel):
    titles: List[TitleSuggestion] = []
    authors: List[str] = []
    subjects: List[str] = []


class LibraryService:
    def __init__(self, session: Session, resolver: Optional[MetadataResolver] = None):
        self.session = session
        self.books = BookRepository(session)
        self._resolver = resolver

    @property
    def resolver(self) -> MetadataResolver:
        if self._resolver is None:
            self._resolver = MetadataResolver(book_repository=self.books)
        return self._resolver

    def list_library(
        self,
        caller: Caller,
        query: Optional[str] = None,
        owner_id: Optional[int] = None,
        page: int = 1,
        size: int = 20,
        authors: Optional[Sequence[str]] = None,
        subjects: Optional[Sequence[str]] = None
    ) -> LibraryPage:
        """
        Get a page of books the caller may see.

        The visibility filter is part of the query itself so ``total`` and the
        page boundaries only ever count visible books.

        Args:
            caller: Who is asking
            query: Optional title search
            owner_id: Restrict to one owner's library
            page: Page number (1-based)
            size: Items per page
            authors: Only books by any of these authors
            subjects: Only books with any of these subjects
        """
        if page < 1:
            raise ValidationError("Page must be 1 or greater")
        if size < 1 or size > MAX_PAGE_SIZE:
            raise ValidationError(f"Page size must be between 1 and {MAX_PAGE_SIZE}")

        authors = _clean_terms(authors)
        subjects = _clean_terms(subjects)
        total = self.books.count_visible(caller.user_id, query, owner_id, authors, subjects)
        items = self.books.search_visible(
            caller.user_id, query, owner_id, limit=size, offset=(page - 1) * size,
            authors=authors, subjects=subjects,
        )
        return LibraryPage(
            items=items,
            total=total,
            page=page,
            size=size,
            total_pages=math.ceil(total / size) if total else 0,
        )

    def filters(self, caller: Caller, owner_id: Optional[int] = None) -> LibraryFilters:
        """Every author and subject among the books the caller may see, sorted"""
        authors, subjects = set(), set()
        for _, _, book_authors, book_subjects in self.books.visible_tags(caller.user_id, owner_id):
            authors.update(a for a in book_authors or [] if a)
            subjects.update(s for s in book_subjects or [] if s)
        return LibraryFilters(
            authors=sorted(authors, key=str.lower),
            subjects=sorted(subjects, key=str.lower),
        )

    def suggestions(self, caller: Caller, query: Optional[str], owner_id: Optional[int] = None) -> SearchSuggestions:
        """
        Rank titles, authors and subjects containing ``query``.

        Exact matches come first, then prefix matches, then matches at the
        start of a word, then anything else containing the query; ties are
        alphabetical. At most SUGGESTION_LIMIT per category, and nothing for
        queries shorter than two characters.
        """
        needle = (query or "").strip().lower()
        if len(needle) < MIN_SUGGESTION_QUERY:
            return SearchSuggestions()

        titles: Dict[int, Tuple[str, int]] = {}
        authors: Dict[str, int] = {}
        subjects: Dict[str, int] = {}
        for book_id, title, book_authors, book_subjects in self.books.visible_tags(caller.user_id, owner_id):
            if title and needle in title.lower():
                titles[book_id] = (title, match_score(title, needle))
            for values, found in ((book_authors, authors), (book_subjects, subjects)):
                for value in values or []:
                    if value and needle in value.lower():
                        found[value] = max(found.get(value, 0), match_score(value, needle))

        ranked_titles = sorted(titles.items(), key=lambda item: (-item[1][1], item[1][0].lower()))
        return SearchSuggestions(
            titles=[TitleSuggestion(id=book_id, title=title) for book_id, (title, _) in ranked_titles[:SUGGESTION_LIMIT]],
            authors=_ranked(authors),
            subjects=_ranked(subjects),
        )

    def lookup(self, caller: Caller, identifier: str) -> CandidateRecord:
        """Resolve an ISBN into a candidate, flagged as duplicate against the caller's library"""
        return self.resolver.resolve(identifier, owner_id=caller.user_id)

    def get_book(self, caller: Caller, book_id: int) -> Book:
        return require_viewable(caller.user_id, self.books.get_by_id(book_id), "Book")

    def create_book(self, caller: Caller, data: BookData, visibility: Visibility = Visibility.PUBLIC) -> Book:
        """
        Add a manually entered book to the caller's library.

        Raises:
            UnauthorizedError: Anonymous caller
            ValidationError: Missing title or author, bad ISBN or date
            ConflictError: The library already has this ISBN-13
        """
        if not caller.is_authenticated:
            raise UnauthorizedError("Authentication required")

        values = validate_book_fields(data.to_book_data(), require_core=True)
        if values.get('isbn13') and self.books.exists_for_owner(caller.user_id, values['isbn13']):
            raise ConflictError("This book is already in your library")

        try:
            book = self.books.create_book(caller.user_id, {**values, 'visibility': Visibility(visibility)})
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError("This book is already in your library") from e
        logger.info(f"User {caller.user_id} added book {book.id} manually")
        return book

    def update_book(self, caller: Caller, book_id: int, changes: Dict[str, Any]) -> Book:
        book = require_owner(caller.user_id, self.books.get_by_id(book_id), "book")
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        values = validate_book_fields(changes, require_core=False)
        if values.get('isbn13') and values['isbn13'] != book.isbn13:
            if self.books.exists_for_owner(caller.user_id, values['isbn13']):
                raise ConflictError("Another book in your library has this ISBN-13")
        try:
            return self.books.update_book(book, values)
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError("Another book in your library has this ISBN-13") from e

    def delete_book(self, caller: Caller, book_id: int) -> None:
        book = require_owner(caller.user_id, self.books.get_by_id(book_id), "book")
        self.books.delete_book(book)
        logger.info(f"User {caller.user_id} deleted book {book_id}")

    def set_visibility(self, caller: Caller, book_id: int, visibility: Visibility) -> Book:
        book = require_owner(caller.user_id, self.books.get_by_id(book_id), "book")
        return self.books.update_book(book, {'visibility': Visibility(visibility)})

    def refresh_metadata(self, caller: Caller, book_id: int) -> Book:
        """Look the book up again by ISBN-13 and overwrite its descriptive fields.

        Fields the provider leaves empty keep their current value.
        """
        book = require_owner(caller.user_id, self.books.get_by_id(book_id), "book")
        if not book.isbn13:
            raise ValidationError("Book has no ISBN-13 to refresh from")

        record = self.resolver.resolve(book.isbn13)
        changes = {
            name: value for name, value in record.to_book_data().items()
            if name != 'isbn13' and not is_missing(value)
        }
        logger.info(f"Refreshing book {book_id} from provider: {', '.join(sorted(changes))}")
        return self.books.update_book(book, changes)


def validate_book_fields(values: Dict[str, Any], require_core: bool) -> Dict[str, Any]:
    """Check and normalize manually entered book fields.

    Args:
        values: Field values to check
        require_core: Require a title and at least one author (new books)

    Returns:
        Normalized values

    Raises:
        ValidationError: The first problem found
    """
    values = dict(values)

    if 'title' in values or require_core:
        title = (values.get('title') or '').strip()
        if not title:
            raise ValidationError("Title is required")
        values['title'] = title

    if 'authors' in values or require_core:
        authors = [a.strip() for a in (values.get('authors') or []) if a and a.strip()]
        if not authors:
            raise ValidationError("At least one author is required")
        values['authors'] = authors

    if 'subjects' in values:
        values['subjects'] = [s.strip() for s in (values.get('subjects') or []) if s and s.strip()]

    for name, check in (('isbn13', validate_isbn13), ('isbn10', validate_isbn10)):
        if name in values:
            raw = values[name]
            if is_missing(raw):
                values[name] = None
                continue
            error = check(raw)
            if error:
                raise ValidationError(error)
            values[name] = clean_identifier(raw).upper()

    if 'date_published' in values and is_missing(values['date_published']):
        values['date_published'] = None
    elif not is_missing(values.get('date_published')):
        date_error = validate_date(values['date_published'].strip())
        if date_error:
            raise ValidationError(date_error)
        values['date_published'] = values['date_published'].strip()

    if values.get('pages') is not None and values['pages'] <= 0:
        raise ValidationError("Pages must be a positive number")

    if isinstance(values.get('read_date'), str):
        try:
            values['read_date'] = datetime.fromisoformat(values['read_date'])
        except ValueError as e:
            raise ValidationError("Read date must be an ISO date") from e

    return values


def match_score(text: str, needle: str) -> int:
    """How well ``text`` matches a lower-cased ``needle`` it contains"""
    text = text.lower()
    if text == needle:
        return 1000
    if text.startswith(needle):
        return 100
    if any(word.startswith(needle) for word in text.split()):
        return 50
    return 1


def _ranked(scores: Dict[str, int]) -> List[str]:
    ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0].lower()))
    return [value for value, _ in ranked[:SUGGESTION_LIMIT]]


def _clean_terms(values: Optional[Sequence[str]]) -> List[str]:
    return [v.strip() for v in values or [] if v and v.strip()]
