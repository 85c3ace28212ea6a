# tests/conftest.py
import os
import sys
import pytest
from pathlib import Path
from sqlalchemy.sql import text

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from sqlalchemy.orm import Session
from core.sa.database import Database
from core.sa.models import Base, Book, ReadingList, ReadingListEntry, ReadingListType, User
from core.visibility import Caller, Visibility, ANONYMOUS

@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory):
    """Create a temporary directory for the test database."""
    test_dir = tmp_path_factory.mktemp("test_db")
    return str(test_dir / "test_shelf.db")

@pytest.fixture(scope="session")
def database(test_db_path):
    """Create a test database instance"""
    db = Database(f"sqlite:///{test_db_path}")

    # Drop all tables and recreate schema
    Base.metadata.drop_all(db.engine)
    Base.metadata.create_all(db.engine)

    yield db

    db.engine.dispose()
    try:
        os.remove(test_db_path)
    except OSError:
        pass  # Ignore errors if file doesn't exist

@pytest.fixture(scope="function")
def db_session(database):
    """Create a new database session for a test"""
    session: Session = database.get_session()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture(autouse=True)
def cleanup_db(db_session):
    """Clean up database tables before each test"""
    # Delete all data from tables in reverse order of dependencies
    db_session.execute(text("DELETE FROM reading_list_entry"))
    db_session.execute(text("DELETE FROM reading_list"))
    db_session.execute(text("DELETE FROM book"))
    db_session.execute(text("DELETE FROM app_settings"))
    db_session.execute(text('DELETE FROM "user"'))
    db_session.commit()
    yield
    # Clean up after test as well
    db_session.rollback()

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host configuration out of the tests"""
    for name in ("DEFAULT_USER_ID", "ADMIN_SUBJECT_ID", "ISBNDB_API_KEY", "IDENTITY_HEADER"):
        monkeypatch.delenv(name, raising=False)

def make_book(db_session, owner, index, visibility=Visibility.PUBLIC, **overrides):
    """Create a book row for ``owner`` with a unique ISBN-13"""
    values = dict(
        owner_id=owner.id,
        title=f"Test Book {index}",
        authors=[f"Test Author {index}"],
        isbn13=f"978000000{index:04d}",
        visibility=visibility,
    )
    values.update(overrides)
    book = Book(**values)
    db_session.add(book)
    db_session.commit()
    return book

@pytest.fixture
def owner(db_session):
    """The user whose library most tests work on"""
    user = User(subject_id="alice", name="Alice")
    db_session.add(user)
    db_session.commit()
    return user

@pytest.fixture
def other_user(db_session):
    user = User(subject_id="bob", name="Bob")
    db_session.add(user)
    db_session.commit()
    return user

@pytest.fixture
def owner_caller(owner):
    return Caller(subject_id=owner.subject_id, user_id=owner.id)

@pytest.fixture
def other_caller(other_user):
    return Caller(subject_id=other_user.subject_id, user_id=other_user.id)

@pytest.fixture
def anonymous():
    return ANONYMOUS

@pytest.fixture
def sample_books(db_session, owner):
    """Four PUBLIC books owned by ``owner``"""
    return [make_book(db_session, owner, i) for i in range(1, 5)]

@pytest.fixture
def reading_list(db_session, owner, sample_books):
    """A PUBLIC list holding the four sample books at positions 0..3"""
    reading_list = ReadingList(
        owner_id=owner.id,
        title="Summer Reading",
        visibility=Visibility.PUBLIC,
        type=ReadingListType.STANDARD,
        version=0,
    )
    db_session.add(reading_list)
    db_session.flush()
    for position, book in enumerate(sample_books):
        db_session.add(ReadingListEntry(reading_list_id=reading_list.id, book_id=book.id, position=position))
    db_session.commit()
    return reading_list

@pytest.fixture
def book_factory(db_session):
    """Create books: ``book_factory(owner, index, visibility=..., **overrides)``"""
    def factory(owner, index, visibility=Visibility.PUBLIC, **overrides):
        return make_book(db_session, owner, index, visibility=visibility, **overrides)
    return factory
