# api/routes/books.py

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from core.errors import UnauthorizedError
from core.models.book import CandidateRecord
from core.resolvers.metadata import MetadataResolver
from core.sa.database import get_db
from core.services.importer import BookImporter, ImportOutcome
from core.services.library import LibraryFilters, LibraryService, SearchSuggestions
from core.visibility import Caller
from api.dependencies import get_caller, get_metadata_resolver
from api.schemas.book import Book, BookCreate, BookList, BookUpdate, ImportRequest, VisibilityUpdate

router = APIRouter(prefix="/books", tags=["books"])

@router.get("", response_model=BookList)
def get_books(
    query: Optional[str] = Query(None, description="Search books by title"),
    owner_id: Optional[int] = Query(None, description="Only books owned by this user"),
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(20, ge=1, le=100, description="Items per page"),
    authors: Optional[List[str]] = Query(None, description="Only books by any of these authors (repeatable)"),
    subjects: Optional[List[str]] = Query(None, description="Only books with any of these subjects (repeatable)"),
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    """
    Get a paginated list of the books the caller may see.

    Anonymous callers get PUBLIC books; signed-in callers also get their own.
    UNLISTED books are never listed.

    Args:
        query: Optional search string to filter books by title
        owner_id: Optional owner to restrict the listing to
        page: Page number (1-based)
        size: Number of items per page
        authors: Authors to filter by; a book matching any of them is included
        subjects: Subjects to filter by; a book matching any of them is included
    """
    result = LibraryService(db).list_library(
        caller, query=query, owner_id=owner_id, page=page, size=size, authors=authors, subjects=subjects,
    )
    return BookList(
        items=[Book.model_validate(book) for book in result.items],
        total=result.total,
        page=result.page,
        size=result.size,
        total_pages=result.total_pages,
    )

@router.get("/filters", response_model=LibraryFilters)
def get_filters(
    owner_id: Optional[int] = Query(None, description="Only books owned by this user"),
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    """Authors and subjects to filter by, taken only from books the caller may see"""
    return LibraryService(db).filters(caller, owner_id=owner_id)

@router.get("/suggestions", response_model=SearchSuggestions)
def get_suggestions(
    response: Response,
    q: Optional[str] = Query(None, description="Text typed so far"),
    owner_id: Optional[int] = Query(None, description="Only books owned by this user"),
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    """Ranked title, author and subject suggestions for a search box"""
    response.headers["Cache-Control"] = "no-store"
    return LibraryService(db).suggestions(caller, q, owner_id=owner_id)

@router.get("/lookup/{isbn}", response_model=CandidateRecord)
def lookup_book(
    isbn: str,
    caller: Caller = Depends(get_caller),
    resolver: MetadataResolver = Depends(get_metadata_resolver)
):
    """Resolve an ISBN through the metadata provider without saving anything"""
    return resolver.resolve(isbn, owner_id=caller.user_id)

@router.post("/import", response_model=ImportOutcome)
def import_books(
    request: ImportRequest,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    """
    Insert a batch of books into the caller's library.

    Rows already in the library are skipped. The counts in the response add
    up to the batch size; a partial failure is reported there, not as an
    HTTP error.
    """
    if not caller.is_authenticated:
        raise UnauthorizedError("Authentication required")
    return BookImporter(db).import_books(caller.user_id, request.books, visibility=request.visibility)

@router.post("", response_model=Book, status_code=status.HTTP_201_CREATED)
def create_book(
    book: BookCreate,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    """Add a manually entered book"""
    return LibraryService(db).create_book(caller, book, visibility=book.visibility)

@router.get("/{book_id}", response_model=Book)
def get_book(book_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return LibraryService(db).get_book(caller, book_id)

@router.patch("/{book_id}", response_model=Book)
def update_book(
    book_id: int,
    changes: BookUpdate,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    return LibraryService(db).update_book(caller, book_id, changes.model_dump(exclude_unset=True))

@router.put("/{book_id}/visibility", response_model=Book)
def set_book_visibility(
    book_id: int,
    update: VisibilityUpdate,
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    return LibraryService(db).set_visibility(caller, book_id, update.visibility)

@router.post("/{book_id}/refresh", response_model=Book)
def refresh_book(
    book_id: int,
    caller: Caller = Depends(get_caller),
    resolver: MetadataResolver = Depends(get_metadata_resolver),
    db: Session = Depends(get_db)
):
    """Re-fetch the book's metadata by ISBN-13 and overwrite its descriptive fields"""
    return LibraryService(db, resolver=resolver).refresh_metadata(caller, book_id)

@router.delete("/{book_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_book(book_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    LibraryService(db).delete_book(caller, book_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
