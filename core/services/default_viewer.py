# core/services/default_viewer.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from core.config import get_settings
from core.errors import NotConfiguredError, NotFoundError, UnauthorizedError
from core.sa.models import AppSettings, User
from core.sa.repositories.settings import SettingsRepository
from core.sa.repositories.user import UserRepository

logger = logging.getLogger(__name__)


class DefaultViewerResolver:
    """Decides whose profile an anonymous visitor sees.

    The choice is read on every call: first the settings row an administrator
    can change at runtime, then the DEFAULT_USER_ID environment variable.
    """

    def __init__(self, session: Session):
        self.session = session
        self.settings = SettingsRepository(session)
        self.users = UserRepository(session)

    def configured_subject(self) -> Optional[str]:
        row = self.settings.get()
        return row.default_user_subject_id or get_settings().default_user_id

    def resolve_anonymous_subject(self) -> User:
        """
        Returns:
            The user to show anonymous visitors

        Raises:
            NotConfiguredError: No default viewer has been set
            NotFoundError: A default viewer is set but no such user exists
        """
        subject_id = self.configured_subject()
        if not subject_id:
            raise NotConfiguredError("No default profile has been configured")
        user = self.users.get_by_subject(subject_id)
        if user is None:
            logger.warning(f"Default viewer {subject_id!r} is configured but has no user record")
            raise NotFoundError("The configured default profile does not exist")
        return user

    def set_default_viewer(self, caller_subject: Optional[str], subject_id: Optional[str]) -> AppSettings:
        """
        Set (or with None, clear) the default viewer. Administrators only.

        Raises:
            UnauthorizedError: Caller is not the configured administrator
            NotFoundError: No user has ``subject_id``
        """
        admin = get_settings().admin_subject_id
        if not caller_subject:
            raise UnauthorizedError("Authentication required")
        if not admin or caller_subject != admin:
            raise UnauthorizedError("Administrator access required")

        subject_id = (subject_id or "").strip() or None
        if subject_id is not None and self.users.get_by_subject(subject_id) is None:
            raise NotFoundError(f"No user with subject {subject_id}")

        row = self.settings.set_default_user(subject_id)
        logger.info(f"Default viewer set to {subject_id!r} by {caller_subject}")
        return row
