# api/dependencies.py
from typing import Optional
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from core.config import get_settings
from core.resolvers.metadata import MetadataResolver
from core.sa.database import get_db
from core.sa.repositories.book import BookRepository
from core.sa.repositories.user import UserRepository
from core.utils.http import IsbnDbClient
from core.utils.image import ImageStore
from core.visibility import ANONYMOUS, Caller

def get_subject(request: Request) -> Optional[str]:
    """The subject id the identity provider put on the request, if any"""
    subject = request.headers.get(get_settings().identity_header)
    if subject is None:
        return None
    return subject.strip() or None

def get_caller(subject: Optional[str] = Depends(get_subject), db: Session = Depends(get_db)) -> Caller:
    """Resolve the request's subject to a Caller.

    A subject without a user record (not signed in yet) acts with no user id,
    so it can never match an owner.
    """
    if subject is None:
        return ANONYMOUS
    user = UserRepository(db).get_by_subject(subject)
    return Caller(subject_id=subject, user_id=user.id if user else None)

def get_isbndb_client() -> IsbnDbClient:
    return IsbnDbClient()

def get_metadata_resolver(
    client: IsbnDbClient = Depends(get_isbndb_client),
    db: Session = Depends(get_db)
) -> MetadataResolver:
    return MetadataResolver(client=client, book_repository=BookRepository(db))

def get_image_store() -> ImageStore:
    return ImageStore()
