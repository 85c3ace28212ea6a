from .book import BookRepository
from .user import UserRepository
from .reading_list import ReadingListRepository
from .settings import SettingsRepository

__all__ = ['BookRepository', 'UserRepository', 'ReadingListRepository', 'SettingsRepository']
