# core/sa/models/user.py
from typing import List
from sqlalchemy import Integer, String, Text, Index
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .base import Base, TimestampMixin

class User(Base, TimestampMixin):
    """A person known to the identity provider by a stable subject id.

    Created on first sign-in and never deleted by the application.
    """
    __tablename__ = 'user'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    subject_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Social links
    github_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    instagram_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    linkedin_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    letterboxd_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    spotify_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    # Relationships
    books: Mapped[List['Book']] = relationship('Book', back_populates='owner', cascade='all, delete-orphan', passive_deletes=True)
    reading_lists: Mapped[List['ReadingList']] = relationship('ReadingList', back_populates='owner', cascade='all, delete-orphan', passive_deletes=True)

    __table_args__ = (
        Index('idx_user_name', 'name'),
    )

SOCIAL_LINK_FIELDS = (
    'github_url',
    'instagram_url',
    'linkedin_url',
    'letterboxd_url',
    'spotify_url',
)
