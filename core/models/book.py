# core/models/book.py

from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional, List, Dict, Any

class BookData(BaseModel):
    """Book-shaped value used for imports and manual entry"""
    title: str = ""
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

    model_config = ConfigDict(from_attributes=True)

    @field_validator('authors', 'subjects', mode='before')
    @classmethod
    def _none_to_list(cls, value):
        return [] if value is None else value

    def to_book_data(self) -> Dict[str, Any]:
        """Column values for a Book row"""
        return self.model_dump(include=set(BookData.model_fields))

class CandidateRecord(BookData):
    """An unsaved book produced by a metadata lookup, pending review and commit"""
    is_incomplete: bool = False
    is_duplicate: bool = False

# Descriptive fields a complete provider record must carry
REQUIRED_METADATA_FIELDS = (
    'title',
    'authors',
    'image',
    'publisher',
    'synopsis',
    'pages',
    'date_published',
    'subjects',
    'isbn10',
    'isbn13',
    'binding',
    'title_long',
)

def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, tuple, dict)) and len(value) == 0:
        return True
    return False
