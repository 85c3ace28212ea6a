# api/routes/home.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.sa.database import get_db
from core.services.home import HomePageService
from core.visibility import Caller
from api.dependencies import get_caller
from api.schemas.home import HomePage
from api.schemas.reading_list import ReadingList
from api.schemas.user import UserProfile

router = APIRouter(prefix="/home", tags=["home"])

@router.get("", response_model=HomePage)
def get_home(caller: Caller = Depends(get_caller), db: Session = Depends(get_db)):
    """
    Landing page data.

    ``status`` is ``not_configured`` when no default profile has been set up
    and ``user_not_found`` when the configured one does not exist, or when a
    signed-in subject has no user record yet.
    """
    page = HomePageService(db).get_home(caller)
    return HomePage(
        status=page.status,
        user=UserProfile.model_validate(page.user) if page.user else None,
        is_own_profile=page.is_own_profile,
        lists=[
            ReadingList.from_view(preview.view, entries=preview.entries, entry_count=preview.entry_count)
            for preview in page.lists
        ],
    )
