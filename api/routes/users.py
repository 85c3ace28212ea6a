# api/routes/users.py

from typing import List, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session

from core.errors import UnauthorizedError
from core.sa.database import get_db
from core.services.library import LibraryService
from core.services.profile import ProfileService
from core.services.reading_lists import ReadingListService
from core.utils.image import ImageStore
from core.visibility import Caller
from api.dependencies import get_caller, get_image_store, get_subject
from api.schemas.book import Book, BookList
from api.schemas.reading_list import ReadingList
from api.schemas.user import BioUpdate, NameUpdate, SignIn, SocialLinksUpdate, UserMe, UserProfile

router = APIRouter(prefix="/users", tags=["users"])

@router.post("/sign-in", response_model=UserMe)
def sign_in(
    details: SignIn,
    subject: Optional[str] = Depends(get_subject),
    db: Session = Depends(get_db)
):
    """Create the user record for the authenticated subject on first sign-in"""
    return ProfileService(db).sign_in(subject, details.name, details.email)

@router.get("/me", response_model=UserMe)
def get_me(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    if not caller.is_authenticated:
        raise UnauthorizedError("Authentication required")
    return ProfileService(db).get_profile(caller.user_id)

@router.put("/me/name", response_model=UserMe)
def update_name(update: NameUpdate, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ProfileService(db).update_name(caller, update.name)

@router.put("/me/bio", response_model=UserMe)
def update_bio(update: BioUpdate, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ProfileService(db).update_bio(caller, update.bio)

@router.put("/me/links", response_model=UserMe)
def update_links(update: SocialLinksUpdate, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    return ProfileService(db).update_social_links(caller, update.model_dump(exclude_unset=True))

@router.post("/me/image", response_model=UserMe)
async def upload_image(
    image: UploadFile = File(...),
    caller: Caller = Depends(get_caller),
    store: ImageStore = Depends(get_image_store),
    db: Session = Depends(get_db)
):
    """Replace the caller's profile image (JPEG, PNG or WebP, at most 5MB)"""
    data = await image.read()
    return ProfileService(db, image_store=store).upload_profile_image(caller, data)

@router.get("/{user_id}", response_model=UserProfile)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return ProfileService(db).get_profile(user_id)

@router.get("/{user_id}/books", response_model=BookList)
def get_user_books(
    user_id: int,
    query: Optional[str] = Query(None, description="Search books by title"),
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(20, ge=1, le=100, description="Items per page"),
    authors: Optional[List[str]] = Query(None, description="Only books by any of these authors (repeatable)"),
    subjects: Optional[List[str]] = Query(None, description="Only books with any of these subjects (repeatable)"),
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db)
):
    """A user's library as the caller may see it"""
    result = LibraryService(db).list_library(
        caller, query=query, owner_id=user_id, page=page, size=size, authors=authors, subjects=subjects,
    )
    return BookList(
        items=[Book.model_validate(book) for book in result.items],
        total=result.total,
        page=result.page,
        size=result.size,
        total_pages=result.total_pages,
    )

@router.get("/{user_id}/reading-lists", response_model=List[ReadingList])
def get_user_reading_lists(user_id: int, caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """A user's reading lists; only PUBLIC ones unless the caller is that user"""
    views = ReadingListService(db).lists_for_owner(caller, user_id)
    return [ReadingList.from_view(view) for view in views]
