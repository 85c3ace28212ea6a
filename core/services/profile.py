# core/services/profile.py
import logging
import re
import uuid
from typing import Dict, Optional
from urllib.parse import urlparse

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.errors import NotFoundError, UnauthorizedError, ValidationError
from core.sa.models import SOCIAL_LINK_FIELDS, User
from core.sa.repositories.user import UserRepository
from core.utils.image import SUPPORTED_FORMATS, ImageStore
from core.visibility import Caller

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100
MAX_BIO_LENGTH = 500
MAX_URL_LENGTH = 2048
MAX_IMAGE_BYTES = 5 * 1024 * 1024

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f<>]")
_WHITESPACE = re.compile(r"\s+")


class ProfileService:
    def __init__(self, session: Session, image_store: Optional[ImageStore] = None):
        self.session = session
        self.users = UserRepository(session)
        self.image_store = image_store or ImageStore()

    def sign_in(self, subject_id: str, name: str = "", email: Optional[str] = None) -> User:
        """Return the user for a subject, creating the record on first sign-in"""
        if not subject_id:
            raise UnauthorizedError("Authentication required")
        return self.users.get_or_create(subject_id, sanitize_name((name or "")[:MAX_NAME_LENGTH]), email)

    def get_profile(self, user_id: int) -> User:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def update_name(self, caller: Caller, name: str) -> User:
        user = self._me(caller)
        cleaned = sanitize_name(name)
        if not cleaned:
            raise ValidationError("Name is required")
        return self.users.update_user(user, name=cleaned)

    def update_bio(self, caller: Caller, bio: Optional[str]) -> User:
        """Set the profile bio; a blank bio clears it"""
        user = self._me(caller)
        cleaned = (bio or "").strip()
        if len(cleaned) > MAX_BIO_LENGTH:
            raise ValidationError(
                f"Bio too long ({len(cleaned)} characters). Maximum length is {MAX_BIO_LENGTH} characters"
            )
        return self.users.update_user(user, bio=cleaned or None)

    def update_social_links(self, caller: Caller, links: Dict[str, Optional[str]]) -> User:
        """
        Set social profile links.

        Args:
            links: Field name -> URL. A blank URL clears the link; fields not
                   present are left unchanged.
        """
        user = self._me(caller)
        unknown = set(links) - set(SOCIAL_LINK_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown link field(s): {', '.join(sorted(unknown))}")
        changes = {field: validate_url(value) for field, value in links.items()}
        return self.users.update_user(user, **changes)

    def upload_profile_image(self, caller: Caller, data: bytes) -> User:
        """
        Store a new profile image and point the user at it.

        The new blob is deleted again if the database update fails; the old
        blob is only deleted once the update has committed.
        """
        user = self._me(caller)
        if not data:
            raise ValidationError("Image is empty")
        if len(data) > MAX_IMAGE_BYTES:
            raise ValidationError("Image must be 5MB or smaller")
        image_format = ImageStore.detect_format(data)
        if image_format is None:
            raise ValidationError("Image must be a JPEG, PNG or WebP file")

        _, extension = SUPPORTED_FORMATS[image_format]
        old_url = user.profile_image_url
        new_url = self.image_store.put(data, f"profile-images/{user.id}/{uuid.uuid4().hex}{extension}")

        try:
            user = self.users.update_user(user, profile_image_url=new_url)
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception(f"Saving profile image for user {user.id} failed, removing upload")
            self.image_store.delete(new_url)
            raise

        if old_url and old_url != new_url:
            self.image_store.delete(old_url)
        return user

    def _me(self, caller: Caller) -> User:
        if not caller.is_authenticated:
            raise UnauthorizedError("Authentication required")
        return self.get_profile(caller.user_id)


def sanitize_name(name: str) -> str:
    """Strip markup and control characters, collapse whitespace, enforce the length limit"""
    cleaned = _WHITESPACE.sub(" ", _CONTROL_CHARS.sub("", name or "")).strip()
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(f"Name must be {MAX_NAME_LENGTH} characters or less")
    return cleaned


def validate_url(value: Optional[str]) -> Optional[str]:
    """Return a cleaned http(s) URL, or None for a blank value"""
    value = (value or "").strip()
    if not value:
        return None
    if len(value) > MAX_URL_LENGTH:
        raise ValidationError(f"URL must be {MAX_URL_LENGTH} characters or less")
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("URL must start with http:// or https://")
    return value
