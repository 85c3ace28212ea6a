# core/sa/models/reading_list.py
from datetime import datetime
from enum import Enum
from typing import List
from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, Enum as SAEnum, Index, UniqueConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column
from core.visibility import Visibility
from .base import Base, TimestampMixin, utcnow

class ReadingListType(str, Enum):
    STANDARD = "STANDARD"
    FAVORITES_YEAR = "FAVORITES_YEAR"
    FAVORITES_ALL = "FAVORITES_ALL"

FAVORITE_TYPES = (ReadingListType.FAVORITES_YEAR, ReadingListType.FAVORITES_ALL)

class ReadingList(Base, TimestampMixin):
    __tablename__ = 'reading_list'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_image_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    visibility: Mapped[Visibility] = mapped_column(SAEnum(Visibility, name='visibility'), nullable=False, default=Visibility.PRIVATE)
    type: Mapped[ReadingListType] = mapped_column(SAEnum(ReadingListType, name='reading_list_type'), nullable=False, default=ReadingListType.STANDARD)
    year: Mapped[str | None] = mapped_column(String(4), nullable=True)
    # Bumped by every change to entry positions; writers must present the value they read
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    owner = relationship('User', back_populates='reading_lists')
    entries: Mapped[List['ReadingListEntry']] = relationship(
        'ReadingListEntry',
        back_populates='reading_list',
        order_by='ReadingListEntry.position',
        cascade='all, delete-orphan',
        passive_deletes=True,
    )

    __table_args__ = (
        Index('idx_reading_list_owner_id', 'owner_id'),
        Index('idx_reading_list_visibility', 'visibility'),
        Index('idx_reading_list_type_year', 'type', 'year'),
    )

class ReadingListEntry(Base):
    __tablename__ = 'reading_list_entry'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    reading_list_id: Mapped[int] = mapped_column(ForeignKey('reading_list.id', ondelete='CASCADE'), nullable=False)
    book_id: Mapped[int] = mapped_column(ForeignKey('book.id', ondelete='CASCADE'), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    reading_list = relationship('ReadingList', back_populates='entries')
    book = relationship('Book', back_populates='reading_list_entries')

    __table_args__ = (
        UniqueConstraint('reading_list_id', 'book_id', name='uix_reading_list_entry_list_book'),
        # Positions are kept dense by the ordering manager. No unique constraint:
        # renumbering updates rows one at a time.
        Index('idx_reading_list_entry_list_position', 'reading_list_id', 'position'),
        Index('idx_reading_list_entry_book_id', 'book_id'),
    )
