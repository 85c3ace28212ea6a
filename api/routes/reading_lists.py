# api/routes/reading_lists.py

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from core.sa.database import get_db
from core.services.reading_lists import ReadingListService
from core.visibility import Caller
from api.dependencies import get_caller
from api.schemas.reading_list import (
    EntryAdd, FavoriteSet, NoteUpdate, ReadingList, ReadingListCreate, ReadingListUpdate, ReorderRequest,
)

router = APIRouter(prefix="/reading-lists", tags=["reading-lists"])

@router.post("", response_model=ReadingList, status_code=status.HTTP_201_CREATED)
def create_reading_list(
    details: ReadingListCreate,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    view = ReadingListService(db).create_list(
        caller,
        title=details.title,
        description=details.description,
        visibility=details.visibility,
        list_type=details.type,
        year=details.year,
        cover_image_url=details.cover_image_url,
    )
    return ReadingList.from_view(view)

@router.get("/favorites", response_model=Optional[ReadingList])
def get_favorites(
    year: Optional[str] = Query(None, description="Four digit year; omit for all-time favorites"),
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    """The caller's favorites in slot order, or null if there are none yet"""
    view = ReadingListService(db).favorites(caller, year=year)
    return ReadingList.from_view(view) if view else None

@router.get("/favorites/years", response_model=List[int])
def get_favorite_years(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ReadingListService(db).favorite_years(caller)

@router.put("/favorites/{book_id}", response_model=ReadingList)
def set_favorite(
    book_id: int,
    favorite: FavoriteSet,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    view = ReadingListService(db).set_favorite(caller, book_id, favorite.position, year=favorite.year)
    return ReadingList.from_view(view)

@router.delete("/favorites/{book_id}", response_model=ReadingList)
def remove_favorite(
    book_id: int,
    year: Optional[str] = Query(None, description="Four digit year; omit for all-time favorites"),
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    view = ReadingListService(db).remove_favorite(caller, book_id, year=year)
    return ReadingList.from_view(view)

@router.get("/{list_id}", response_model=ReadingList)
def get_reading_list(list_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """
    Get a reading list.

    Non-owners only see entries whose book is PUBLIC. A list the caller may
    not see is reported as not found.
    """
    return ReadingList.from_view(ReadingListService(db).get_list(caller, list_id))

@router.patch("/{list_id}", response_model=ReadingList)
def update_reading_list(
    list_id: int,
    changes: ReadingListUpdate,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    view = ReadingListService(db).update_list(caller, list_id, **changes.model_dump(exclude_unset=True))
    return ReadingList.from_view(view)

@router.delete("/{list_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reading_list(list_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    ReadingListService(db).delete_list(caller, list_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/{list_id}/entries", response_model=ReadingList)
def add_entry(
    list_id: int,
    entry: EntryAdd,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    """Append a book from the caller's library to the end of the list"""
    view = ReadingListService(db).add_entry(caller, list_id, entry.book_id, expected_version=entry.expected_version)
    return ReadingList.from_view(view)

@router.delete("/{list_id}/entries/{book_id}", response_model=ReadingList)
def remove_entry(
    list_id: int,
    book_id: int,
    expected_version: Optional[int] = Query(None, description="Version the change is based on"),
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    view = ReadingListService(db).remove_entry(caller, list_id, book_id, expected_version=expected_version)
    return ReadingList.from_view(view)

@router.put("/{list_id}/order", response_model=ReadingList)
def reorder_entries(
    list_id: int,
    order: ReorderRequest,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    """
    Replace the order of the list.

    ``book_ids`` must contain every book in the list exactly once. A stale
    ``expected_version`` is rejected with 409 and the client should reload.
    """
    view = ReadingListService(db).reorder(caller, list_id, order.book_ids, expected_version=order.expected_version)
    return ReadingList.from_view(view)

@router.put("/{list_id}/entries/{book_id}/note", response_model=ReadingList)
def set_note(
    list_id: int,
    book_id: int,
    note: NoteUpdate,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    view = ReadingListService(db).set_note(caller, list_id, book_id, note.notes, expected_version=note.expected_version)
    return ReadingList.from_view(view)
