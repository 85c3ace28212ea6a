# api/schemas/home.py
from typing import Optional, List
from pydantic import BaseModel

from api.schemas.reading_list import ReadingList
from api.schemas.user import UserProfile

class HomePage(BaseModel):
    status: str
    user: Optional[UserProfile] = None
    is_own_profile: bool = False
    lists: List[ReadingList] = []

class AppSettings(BaseModel):
    default_user_subject_id: Optional[str] = None
    effective_subject_id: Optional[str] = None

class AppSettingsUpdate(BaseModel):
    default_user_subject_id: Optional[str] = None
