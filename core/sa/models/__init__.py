# core/sa/models/__init__.py
from .base import Base, TimestampMixin
from .user import User, SOCIAL_LINK_FIELDS
from .book import Book, DESCRIPTIVE_FIELDS
from .reading_list import ReadingList, ReadingListEntry, ReadingListType, FAVORITE_TYPES
from .settings import AppSettings, SETTINGS_ID

__all__ = [
    'Base',
    'TimestampMixin',
    'User',
    'SOCIAL_LINK_FIELDS',
    'Book',
    'DESCRIPTIVE_FIELDS',
    'ReadingList',
    'ReadingListEntry',
    'ReadingListType',
    'FAVORITE_TYPES',
    'AppSettings',
    'SETTINGS_ID',
]
