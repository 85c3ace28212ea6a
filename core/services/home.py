# core/services/home.py
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session

from core.errors import NotConfiguredError, NotFoundError
from core.sa.models import User
from core.services.default_viewer import DefaultViewerResolver
from core.services.reading_lists import ReadingListService, ReadingListView
from core.sa.repositories.user import UserRepository
from core.visibility import Caller

logger = logging.getLogger(__name__)

PREVIEW_SIZE = 4

STATUS_SUCCESS = "success"
STATUS_NOT_CONFIGURED = "not_configured"
STATUS_USER_NOT_FOUND = "user_not_found"


@dataclass
class ListPreview:
    view: ReadingListView
    entry_count: int

    @property
    def entries(self):
        return self.view.entries[:PREVIEW_SIZE]


@dataclass
class HomePage:
    status: str
    user: Optional[User] = None
    is_own_profile: bool = False
    lists: List[ListPreview] = field(default_factory=list)


class HomePageService:
    def __init__(self, session: Session):
        self.session = session
        self.users = UserRepository(session)
        self.resolver = DefaultViewerResolver(session)
        self.reading_lists = ReadingListService(session)

    def get_home(self, caller: Caller) -> HomePage:
        """
        Build the landing page.

        A signed-in caller gets their own profile and every list. Anyone else
        gets the default profile with its PUBLIC lists, PRIVATE books removed.
        A signed-in subject without a user record gets ``user_not_found``.
        A missing default profile is reported through ``status`` rather than
        raised, so the page can show a setup message.
        """
        if caller.subject_id and not caller.is_authenticated:
            # Signed in, but no user record was ever created for this subject
            return HomePage(status=STATUS_USER_NOT_FOUND)
        if caller.is_authenticated:
            user = self.users.get_by_id(caller.user_id)
        else:
            try:
                user = self.resolver.resolve_anonymous_subject()
            except NotConfiguredError:
                return HomePage(status=STATUS_NOT_CONFIGURED)
            except NotFoundError:
                return HomePage(status=STATUS_USER_NOT_FOUND)

        if user is None:
            return HomePage(status=STATUS_USER_NOT_FOUND)

        views = self.reading_lists.lists_for_owner(caller, user.id)
        return HomePage(
            status=STATUS_SUCCESS,
            user=user,
            is_own_profile=caller.user_id == user.id,
            lists=[ListPreview(view, len(view.entries)) for view in views],
        )
