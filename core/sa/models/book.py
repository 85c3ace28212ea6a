# core/sa/models/book.py
from datetime import datetime
from typing import List
from sqlalchemy import Integer, String, Text, DateTime, ForeignKey, JSON, Enum as SAEnum, Index, UniqueConstraint
from sqlalchemy.orm import relationship, Mapped, mapped_column
from core.visibility import Visibility
from .base import Base, TimestampMixin

class Book(Base, TimestampMixin):
    __tablename__ = 'book'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    title_long: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    authors: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    isbn10: Mapped[str | None] = mapped_column(String(10), nullable=True)
    isbn13: Mapped[str | None] = mapped_column(String(13), nullable=True)
    publisher: Mapped[str | None] = mapped_column(String(500), nullable=True)
    synopsis: Mapped[str | None] = mapped_column(Text, nullable=True)
    pages: Mapped[int | None] = mapped_column(Integer, nullable=True)
    date_published: Mapped[str | None] = mapped_column(String(10), nullable=True)  # YYYY[-MM[-DD]]
    subjects: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    binding: Mapped[str | None] = mapped_column(String(100), nullable=True)
    language: Mapped[str | None] = mapped_column(String(50), nullable=True)
    edition: Mapped[str | None] = mapped_column(String(100), nullable=True)
    image: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    image_original: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    visibility: Mapped[Visibility] = mapped_column(SAEnum(Visibility, name='visibility'), nullable=False, default=Visibility.PUBLIC)
    read_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    owner = relationship('User', back_populates='books')
    reading_list_entries = relationship('ReadingListEntry', back_populates='book', cascade='all, delete-orphan', passive_deletes=True)

    __table_args__ = (
        # ISBN-13 is the natural key, unique per owner rather than globally
        UniqueConstraint('owner_id', 'isbn13', name='uix_book_owner_isbn13'),
        Index('idx_book_owner_id', 'owner_id'),
        Index('idx_book_visibility', 'visibility'),
        Index('idx_book_title', 'title'),
    )

# Descriptive fields copied from a metadata record onto a book
DESCRIPTIVE_FIELDS = (
    'title',
    'title_long',
    'authors',
    'isbn10',
    'isbn13',
    'publisher',
    'synopsis',
    'pages',
    'date_published',
    'subjects',
    'binding',
    'language',
    'edition',
    'image',
    'image_original',
)
