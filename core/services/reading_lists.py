# core/services/reading_lists.py
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from core.sa.models import FAVORITE_TYPES, ReadingList, ReadingListEntry, ReadingListType
from core.sa.repositories.book import BookRepository
from core.sa.repositories.reading_list import ReadingListRepository
from core.visibility import (
    Caller, Permission, Visibility, permissions_for, require_owner,
    require_viewable, visible_entries,
)

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 2000
MAX_NOTE_LENGTH = 2000
MAX_FAVORITES = 6


@dataclass
class ReadingListView:
    """A reading list as one particular caller is allowed to see it"""
    reading_list: ReadingList
    entries: List[ReadingListEntry]
    permission: Permission

    @property
    def id(self) -> int:
        return self.reading_list.id

    @property
    def version(self) -> int:
        return self.reading_list.version

    @property
    def book_ids(self) -> List[int]:
        return [entry.book_id for entry in self.entries]


class ReadingListService:
    """Reading list CRUD and entry ordering.

    Entry positions within a list are always exactly 0..N-1. Every change to a
    list's entries increments ``reading_list.version`` in the same transaction;
    a caller that passes ``expected_version`` has its change rejected with a
    ConflictError if anything else changed the list since it was read.
    """

    def __init__(self, session: Session):
        self.session = session
        self.lists = ReadingListRepository(session)
        self.books = BookRepository(session)

    # Lists

    def create_list(
        self,
        caller: Caller,
        title: str,
        description: Optional[str] = None,
        visibility: Visibility = Visibility.PRIVATE,
        list_type: ReadingListType = ReadingListType.STANDARD,
        year: Optional[str] = None,
        cover_image_url: Optional[str] = None
    ) -> ReadingListView:
        if not caller.is_authenticated:
            raise UnauthorizedError("Authentication required")

        list_type = ReadingListType(list_type)
        title = _clean_title(title)
        description = _clean_description(description)
        year = _clean_year(list_type, year)

        if list_type in FAVORITE_TYPES and self.lists.find_favorites(caller.user_id, list_type, year):
            if list_type == ReadingListType.FAVORITES_YEAR:
                raise ConflictError(f"A favorites list for {year} already exists")
            raise ConflictError("An all-time favorites list already exists")

        reading_list = self.lists.create_list(ReadingList(
            owner_id=caller.user_id,
            title=title,
            description=description,
            visibility=Visibility(visibility),
            type=list_type,
            year=year,
            cover_image_url=cover_image_url or None,
            version=0,
        ))
        logger.info(f"User {caller.user_id} created reading list {reading_list.id} ({list_type.value})")
        return self._owner_view(caller, reading_list.id)

    def update_list(
        self,
        caller: Caller,
        list_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        visibility: Optional[Visibility] = None,
        cover_image_url: Optional[str] = None
    ) -> ReadingListView:
        """Change a list's details. Arguments left as None are not touched"""
        reading_list = require_owner(caller.user_id, self.lists.get_by_id(list_id), "reading list")
        if title is not None:
            reading_list.title = _clean_title(title)
        if description is not None:
            reading_list.description = _clean_description(description)
        if visibility is not None:
            reading_list.visibility = Visibility(visibility)
        if cover_image_url is not None:
            reading_list.cover_image_url = cover_image_url.strip() or None
        self.session.commit()
        return self._owner_view(caller, list_id)

    def delete_list(self, caller: Caller, list_id: int) -> None:
        reading_list = require_owner(caller.user_id, self.lists.get_by_id(list_id), "reading list")
        self.lists.delete_list(reading_list)
        logger.info(f"User {caller.user_id} deleted reading list {list_id}")

    def get_list(self, caller: Caller, list_id: int) -> ReadingListView:
        """
        Get a list with the entries the caller may see.

        Non-owners only get entries whose book is PUBLIC, even on a PUBLIC list.

        Raises:
            NotFoundError: The list does not exist or the caller may not see it
        """
        reading_list = require_viewable(caller.user_id, self.lists.get_with_entries(list_id), "Reading list")
        return ReadingListView(
            reading_list=reading_list,
            entries=visible_entries(caller.user_id, reading_list, reading_list.entries),
            permission=permissions_for(caller.user_id, reading_list),
        )

    def lists_for_owner(self, caller: Caller, owner_id: int) -> List[ReadingListView]:
        """An owner's lists, most recently updated first.

        The owner sees all of them; everyone else only sees PUBLIC lists.
        """
        is_owner = caller.user_id is not None and caller.user_id == owner_id
        views = []
        for reading_list, _ in self.lists.lists_for_owner(owner_id, public_only=not is_owner):
            views.append(ReadingListView(
                reading_list=reading_list,
                entries=visible_entries(caller.user_id, reading_list, reading_list.entries),
                permission=permissions_for(caller.user_id, reading_list),
            ))
        return views

    # Entries

    def add_entry(self, caller: Caller, list_id: int, book_id: int, expected_version: Optional[int] = None) -> ReadingListView:
        """
        Append a book to the end of a list.

        Raises:
            NotFoundError: List or book missing
            UnauthorizedError: Caller does not own the list or the book
            ConflictError: Book already in the list, or the list changed since ``expected_version``
            ValidationError: Favorites list already full
        """
        reading_list = require_owner(caller.user_id, self.lists.get_by_id(list_id), "reading list")
        book = require_viewable(caller.user_id, self.books.get_by_id(book_id), "Book")
        if book.owner_id != caller.user_id:
            raise UnauthorizedError("You can only add books from your own library")

        self._lock(list_id, expected_version)
        if self.lists.get_entry(list_id, book_id) is not None:
            self.session.rollback()
            raise ConflictError("Book is already in this reading list")
        if reading_list.type in FAVORITE_TYPES and self.lists.count_entries(list_id) >= MAX_FAVORITES:
            self.session.rollback()
            raise ValidationError(f"Favorites lists can hold at most {MAX_FAVORITES} books")

        last = self.lists.max_position(list_id)
        position = 0 if last is None else last + 1
        try:
            self.lists.add_entry(list_id, book_id, position)
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError("Book is already in this reading list") from e

        logger.info(f"Added book {book_id} to reading list {list_id} at position {position}")
        return self._owner_view(caller, list_id)

    def remove_entry(self, caller: Caller, list_id: int, book_id: int, expected_version: Optional[int] = None) -> ReadingListView:
        """Remove a book from a list and close the gap it leaves"""
        require_owner(caller.user_id, self.lists.get_by_id(list_id), "reading list")

        self._lock(list_id, expected_version)
        entry = self.lists.get_entry(list_id, book_id)
        if entry is None:
            self.session.rollback()
            raise NotFoundError("Book is not in this reading list")

        position = entry.position
        self.lists.delete_entry(entry)
        self.lists.close_gap(list_id, position)
        self.session.commit()

        logger.info(f"Removed book {book_id} from reading list {list_id}")
        return self._owner_view(caller, list_id)

    def reorder(self, caller: Caller, list_id: int, ordered_book_ids: Sequence[int], expected_version: Optional[int] = None) -> ReadingListView:
        """
        Rewrite a list's order.

        Args:
            ordered_book_ids: Every book id in the list, each exactly once, in the new order

        Raises:
            ValidationError: ``ordered_book_ids`` is not a permutation of the list's books
            ConflictError: The list changed since ``expected_version``
        """
        require_owner(caller.user_id, self.lists.get_by_id(list_id), "reading list")

        self._lock(list_id, expected_version)
        entries = self.lists.get_entries(list_id)
        by_book = {entry.book_id: entry for entry in entries}
        ordered = list(ordered_book_ids)
        if len(ordered) != len(set(ordered)) or set(ordered) != set(by_book):
            self.session.rollback()
            raise ValidationError("Reorder must include every book in the list exactly once")

        self.lists.set_positions([by_book[book_id] for book_id in ordered])
        self.session.commit()
        return self._owner_view(caller, list_id)

    def set_note(self, caller: Caller, list_id: int, book_id: int, text: Optional[str], expected_version: Optional[int] = None) -> ReadingListView:
        """Set or clear the note on an entry. Positions are untouched"""
        require_owner(caller.user_id, self.lists.get_by_id(list_id), "reading list")
        note = (text or "").strip() or None
        if note is not None and len(note) > MAX_NOTE_LENGTH:
            raise ValidationError(f"Note must be {MAX_NOTE_LENGTH} characters or less")

        self._lock(list_id, expected_version)
        entry = self.lists.get_entry(list_id, book_id)
        if entry is None:
            self.session.rollback()
            raise NotFoundError("Book is not in this reading list")
        entry.notes = note
        self.session.commit()
        return self._owner_view(caller, list_id)

    # Favorites

    def set_favorite(self, caller: Caller, book_id: int, slot: int, year: Optional[Union[int, str]] = None) -> ReadingListView:
        """
        Put one of the caller's books in a favorites slot.

        ``year`` picks the yearly list, otherwise the all-time list is used;
        either is created (PRIVATE) when missing. Slots run 1..6 and map onto
        positions 0..N-1: a slot past the end of the list lands on the end, and
        a book that is already a favorite is moved instead of added twice.

        Raises:
            ValidationError: Slot out of range, or the list already holds six other books
            UnauthorizedError: The caller does not own the book
        """
        if not caller.is_authenticated:
            raise UnauthorizedError("Authentication required")
        if isinstance(slot, bool) or not isinstance(slot, int) or not 1 <= slot <= MAX_FAVORITES:
            raise ValidationError(f"Position must be an integer between 1 and {MAX_FAVORITES}")
        book = require_viewable(caller.user_id, self.books.get_by_id(book_id), "Book")
        if book.owner_id != caller.user_id:
            raise UnauthorizedError("You don't own this book")

        reading_list = self._favorites_list(caller, year, create=True)
        self._lock(reading_list.id, None)
        entries = self.lists.get_entries(reading_list.id)
        current = next((entry for entry in entries if entry.book_id == book_id), None)
        if current is None:
            if len(entries) >= MAX_FAVORITES:
                self.session.rollback()
                raise ValidationError(
                    f"Favorites list already contains {MAX_FAVORITES} books. Remove one before adding another."
                )
            current = self.lists.add_entry(reading_list.id, book_id, len(entries))
        else:
            entries.remove(current)
        entries.insert(min(slot - 1, len(entries)), current)
        self.lists.set_positions(entries)
        self.session.commit()

        logger.info(f"User {caller.user_id} set book {book_id} as favorite #{slot} in list {reading_list.id}")
        return self._owner_view(caller, reading_list.id)

    def remove_favorite(self, caller: Caller, book_id: int, year: Optional[Union[int, str]] = None) -> ReadingListView:
        if not caller.is_authenticated:
            raise UnauthorizedError("Authentication required")
        reading_list = self._favorites_list(caller, year, create=False)
        if reading_list is None:
            raise NotFoundError("Favorites list not found")

        self._lock(reading_list.id, None)
        entry = self.lists.get_entry(reading_list.id, book_id)
        if entry is None:
            self.session.rollback()
            raise NotFoundError("Book is not in favorites")
        position = entry.position
        self.lists.delete_entry(entry)
        self.lists.close_gap(reading_list.id, position)
        self.session.commit()
        return self._owner_view(caller, reading_list.id)

    def favorites(self, caller: Caller, year: Optional[Union[int, str]] = None) -> Optional[ReadingListView]:
        """The caller's favorites in slot order, or None if the list was never created"""
        if not caller.is_authenticated:
            raise UnauthorizedError("Authentication required")
        reading_list = self._favorites_list(caller, year, create=False)
        if reading_list is None:
            return None
        return self._owner_view(caller, reading_list.id)

    def favorite_years(self, caller: Caller) -> List[int]:
        """Years the caller has a yearly favorites list for, newest first"""
        if not caller.is_authenticated:
            raise UnauthorizedError("Authentication required")
        return sorted((int(year) for year in self.lists.favorite_years(caller.user_id)), reverse=True)

    def _favorites_list(self, caller: Caller, year: Optional[Union[int, str]], create: bool) -> Optional[ReadingList]:
        if year is None:
            list_type, title = ReadingListType.FAVORITES_ALL, "All-Time Favorites"
        else:
            list_type = ReadingListType.FAVORITES_YEAR
            year = _clean_year(list_type, year)
            title = f"Favorite Books of {year}"
        reading_list = self.lists.find_favorites(caller.user_id, list_type, year)
        if reading_list is None and create:
            reading_list = self.lists.create_list(ReadingList(
                owner_id=caller.user_id,
                title=title,
                visibility=Visibility.PRIVATE,
                type=list_type,
                year=year,
                version=0,
            ))
            logger.info(f"Created {list_type.value} list {reading_list.id} for user {caller.user_id}")
        return reading_list

    def _lock(self, list_id: int, expected_version: Optional[int]) -> int:
        """Bump the list's version, serializing writers to this list for the rest of the transaction"""
        version = self.lists.bump_version(list_id, expected_version)
        if version is None:
            self.session.rollback()
            logger.info(f"Stale write to reading list {list_id} rejected (expected version {expected_version})")
            raise ConflictError("Reading list was changed by another request, reload it and try again")
        return version

    def _owner_view(self, caller: Caller, list_id: int) -> ReadingListView:
        reading_list = self.lists.get_with_entries(list_id)
        return ReadingListView(
            reading_list=reading_list,
            entries=list(reading_list.entries),
            permission=permissions_for(caller.user_id, reading_list),
        )


def _clean_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must be {MAX_TITLE_LENGTH} characters or less")
    return title


def _clean_description(description: Optional[str]) -> Optional[str]:
    description = (description or "").strip() or None
    if description and len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less")
    return description


def _clean_year(list_type: ReadingListType, year: Optional[str]) -> Optional[str]:
    if list_type != ReadingListType.FAVORITES_YEAR:
        return None
    year = str(year).strip() if year is not None else ""
    if len(year) != 4 or not year.isdigit():
        raise ValidationError("A yearly favorites list needs a four digit year")
    return year
