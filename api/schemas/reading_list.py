# api/schemas/reading_list.py
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict

from api.schemas.book import Book
from core.sa.models import ReadingListType
from core.services.reading_lists import ReadingListView
from core.visibility import Visibility

class Permissions(BaseModel):
    is_owner: bool
    can_view: bool
    can_edit: bool
    can_delete: bool

    model_config = ConfigDict(from_attributes=True)

class ReadingListEntry(BaseModel):
    book_id: int
    position: int
    notes: Optional[str] = None
    added_at: Optional[datetime] = None
    book: Book

    model_config = ConfigDict(from_attributes=True)

class ReadingList(BaseModel):
    id: int
    owner_id: int
    title: str
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    visibility: Visibility
    type: ReadingListType
    year: Optional[str] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    entry_count: int
    entries: List[ReadingListEntry]
    permissions: Permissions

    @classmethod
    def from_view(cls, view: ReadingListView, entries=None, entry_count: Optional[int] = None) -> "ReadingList":
        """Build the response from a service view, optionally with a subset of its entries"""
        reading_list = view.reading_list
        entries = view.entries if entries is None else entries
        return cls(
            id=reading_list.id,
            owner_id=reading_list.owner_id,
            title=reading_list.title,
            description=reading_list.description,
            cover_image_url=reading_list.cover_image_url,
            visibility=reading_list.visibility,
            type=reading_list.type,
            year=reading_list.year,
            version=reading_list.version,
            created_at=reading_list.created_at,
            updated_at=reading_list.updated_at,
            entry_count=len(view.entries) if entry_count is None else entry_count,
            entries=[ReadingListEntry.model_validate(e) for e in entries],
            permissions=Permissions.model_validate(view.permission),
        )

class ReadingListCreate(BaseModel):
    title: str
    description: Optional[str] = None
    visibility: Visibility = Visibility.PRIVATE
    type: ReadingListType = ReadingListType.STANDARD
    year: Optional[str] = None
    cover_image_url: Optional[str] = None

class ReadingListUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    visibility: Optional[Visibility] = None
    cover_image_url: Optional[str] = None

class EntryAdd(BaseModel):
    book_id: int
    expected_version: Optional[int] = None

class ReorderRequest(BaseModel):
    book_ids: List[int]
    expected_version: Optional[int] = None

class NoteUpdate(BaseModel):
    notes: Optional[str] = None
    expected_version: Optional[int] = None

class FavoriteSet(BaseModel):
    """Slot 1-6; without a year the all-time list is used"""
    position: int
    year: Optional[str] = None
