# core/sa/repositories/reading_list.py
from typing import List, Optional, Sequence, Tuple
from sqlalchemy import select, update, func
from sqlalchemy.orm import Session, selectinload
from core.visibility import Visibility
from core.sa.models import ReadingList, ReadingListEntry, ReadingListType

class ReadingListRepository:
    """Repository for reading lists and their ordered entries.

    Position-changing methods only flush; the calling service commits so that a
    version bump and the position rewrite land in the same transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, list_id: int) -> Optional[ReadingList]:
        return self.session.get(ReadingList, list_id)

    def get_with_entries(self, list_id: int) -> Optional[ReadingList]:
        """Get a reading list with entries (ordered by position) and their books loaded"""
        return self.session.execute(
            select(ReadingList)
            .where(ReadingList.id == list_id)
            .options(selectinload(ReadingList.entries).selectinload(ReadingListEntry.book))
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def lists_for_owner(self, owner_id: int, public_only: bool = False) -> List[Tuple[ReadingList, int]]:
        """Get an owner's lists, most recently updated first, with their entry counts.
        
        Args:
            owner_id: The ID of the owner
            public_only: Restrict the results to PUBLIC lists
            
        Returns:
            List of (ReadingList, entry_count) tuples
        """
        counts = (
            select(ReadingListEntry.reading_list_id, func.count(ReadingListEntry.id).label('entry_count'))
            .group_by(ReadingListEntry.reading_list_id)
            .subquery()
        )
        stmt = (
            select(ReadingList, func.coalesce(counts.c.entry_count, 0))
            .outerjoin(counts, counts.c.reading_list_id == ReadingList.id)
            .where(ReadingList.owner_id == owner_id)
            .options(selectinload(ReadingList.entries).selectinload(ReadingListEntry.book))
            .order_by(ReadingList.updated_at.desc(), ReadingList.id.desc())
        )
        if public_only:
            stmt = stmt.where(ReadingList.visibility == Visibility.PUBLIC)
        return [(row[0], row[1]) for row in self.session.execute(stmt)]

    def find_favorites(self, owner_id: int, list_type: ReadingListType, year: Optional[str] = None) -> Optional[ReadingList]:
        stmt = select(ReadingList).where(ReadingList.owner_id == owner_id, ReadingList.type == list_type)
        if year is None:
            stmt = stmt.where(ReadingList.year.is_(None))
        else:
            stmt = stmt.where(ReadingList.year == year)
        return self.session.execute(stmt.limit(1)).scalar_one_or_none()

    def favorite_years(self, owner_id: int) -> List[str]:
        return list(self.session.execute(
            select(ReadingList.year).where(
                ReadingList.owner_id == owner_id,
                ReadingList.type == ReadingListType.FAVORITES_YEAR,
                ReadingList.year.is_not(None)
            ).distinct()
        ).scalars())

    def create_list(self, reading_list: ReadingList) -> ReadingList:
        self.session.add(reading_list)
        self.session.commit()
        return reading_list

    def delete_list(self, reading_list: ReadingList) -> None:
        self.session.delete(reading_list)
        self.session.commit()

    def get_entry(self, list_id: int, book_id: int) -> Optional[ReadingListEntry]:
        return self.session.execute(
            select(ReadingListEntry).where(
                ReadingListEntry.reading_list_id == list_id,
                ReadingListEntry.book_id == book_id
            )
        ).scalar_one_or_none()

    def get_entries(self, list_id: int) -> List[ReadingListEntry]:
        """Entries of a list in position order"""
        return list(self.session.execute(
            select(ReadingListEntry)
            .where(ReadingListEntry.reading_list_id == list_id)
            .order_by(ReadingListEntry.position, ReadingListEntry.id)
            .execution_options(populate_existing=True)
        ).scalars())

    def count_entries(self, list_id: int) -> int:
        return self.session.execute(
            select(func.count(ReadingListEntry.id)).where(ReadingListEntry.reading_list_id == list_id)
        ).scalar_one()

    def max_position(self, list_id: int) -> Optional[int]:
        return self.session.execute(
            select(func.max(ReadingListEntry.position)).where(ReadingListEntry.reading_list_id == list_id)
        ).scalar_one()

    def bump_version(self, list_id: int, expected_version: Optional[int] = None) -> Optional[int]:
        """Increment a list's version, optionally only if it still equals ``expected_version``.

        The UPDATE also takes the row lock, so concurrent writers to the same
        list are serialized until the surrounding transaction ends.

        Returns:
            The new version, or None if the list changed since ``expected_version`` was read
        """
        stmt = update(ReadingList).where(ReadingList.id == list_id)
        if expected_version is not None:
            stmt = stmt.where(ReadingList.version == expected_version)
        result = self.session.execute(
            stmt.values(version=ReadingList.version + 1).execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return self.session.execute(
            select(ReadingList.version).where(ReadingList.id == list_id)
        ).scalar_one()

    def add_entry(self, list_id: int, book_id: int, position: int) -> ReadingListEntry:
        entry = ReadingListEntry(reading_list_id=list_id, book_id=book_id, position=position)
        self.session.add(entry)
        self.session.flush()
        return entry

    def delete_entry(self, entry: ReadingListEntry) -> None:
        self.session.delete(entry)
        self.session.flush()

    def close_gap(self, list_id: int, removed_position: int) -> None:
        """Shift every entry after ``removed_position`` down by one"""
        self.session.execute(
            update(ReadingListEntry)
            .where(
                ReadingListEntry.reading_list_id == list_id,
                ReadingListEntry.position > removed_position
            )
            .values(position=ReadingListEntry.position - 1)
            .execution_options(synchronize_session=False)
        )

    def set_positions(self, entries: Sequence[ReadingListEntry]) -> None:
        """Rewrite positions to 0..N-1 following the order of ``entries``"""
        for index, entry in enumerate(entries):
            entry.position = index
        self.session.flush()
