# core/sa/__init__.py
from .database import Database, get_database, get_db
from .models import (
    Base, User, Book, ReadingList, ReadingListEntry,
    ReadingListType, AppSettings
)

__all__ = [
    'Database',
    'get_database',
    'get_db',
    'Base',
    'User',
    'Book',
    'ReadingList',
    'ReadingListEntry',
    'ReadingListType',
    'AppSettings'
]
