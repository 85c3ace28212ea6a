# api/schemas/user.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

class UserProfile(BaseModel):
    """What anyone may see about a user"""
    id: int
    name: str
    profile_image_url: Optional[str] = None
    bio: Optional[str] = None
    github_url: Optional[str] = None
    instagram_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    letterboxd_url: Optional[str] = None
    spotify_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class UserMe(UserProfile):
    subject_id: str
    email: Optional[str] = None
    created_at: Optional[datetime] = None

class SignIn(BaseModel):
    name: str = ""
    email: Optional[str] = None

class NameUpdate(BaseModel):
    name: str

class BioUpdate(BaseModel):
    bio: Optional[str] = None

class SocialLinksUpdate(BaseModel):
    """Only the links that are set are changed; an empty string clears one"""
    github_url: Optional[str] = None
    instagram_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    letterboxd_url: Optional[str] = None
    spotify_url: Optional[str] = None
