# api/schemas/book.py
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict

from core.models.book import BookData
from core.visibility import Visibility

class Book(BaseModel):
    id: int
    owner_id: int
    title: str
    title_long: Optional[str] = None
    authors: List[str] = []
    isbn10: Optional[str] = None
    isbn13: Optional[str] = None
    publisher: Optional[str] = None
    synopsis: Optional[str] = None
    pages: Optional[int] = None
    date_published: Optional[str] = None
    subjects: List[str] = []
    binding: Optional[str] = None
    language: Optional[str] = None
    edition: Optional[str] = None
    image: Optional[str] = None
    image_original: Optional[str] = None
    visibility: Visibility
    read_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class BookList(BaseModel):
    items: List[Book]
    total: int
    page: int
    size: int
    total_pages: int

    model_config = ConfigDict(from_attributes=True)

class BookCreate(BookData):
    visibility: Visibility = Visibility.PUBLIC

class BookUpdate(BaseModel):
    """Only the fields that are set are changed"""
    title: Optional[str] = None
    title_long: Optional[str] = None
    authors: Optional[List[str]] = None
    isbn10: Optional[str] = None
    isbn13: Optional[str] = None
    publisher: Optional[str] = None
    synopsis: Optional[str] = None
    pages: Optional[int] = None
    date_published: Optional[str] = None
    subjects: Optional[List[str]] = None
    binding: Optional[str] = None
    language: Optional[str] = None
    edition: Optional[str] = None
    image: Optional[str] = None
    image_original: Optional[str] = None
    read_date: Optional[datetime] = None

class VisibilityUpdate(BaseModel):
    visibility: Visibility

class ImportRequest(BaseModel):
    books: List[BookData]
    visibility: Visibility = Visibility.PUBLIC
