# tests/test_sa/test_repositories/test_reading_list_repository.py
import pytest
from core.sa.models import ReadingList, ReadingListType
from core.sa.repositories.reading_list import ReadingListRepository
from core.visibility import Visibility

@pytest.fixture
def list_repo(db_session):
    """Fixture to create a ReadingListRepository instance"""
    return ReadingListRepository(db_session)

def test_get_with_entries_orders_by_position(list_repo, reading_list, sample_books):
    fetched = list_repo.get_with_entries(reading_list.id)
    assert [e.book_id for e in fetched.entries] == [b.id for b in sample_books]
    assert [e.position for e in fetched.entries] == [0, 1, 2, 3]

def test_max_position_and_count(list_repo, reading_list, db_session, owner):
    assert list_repo.max_position(reading_list.id) == 3
    assert list_repo.count_entries(reading_list.id) == 4

    empty = ReadingList(owner_id=owner.id, title="Empty", version=0)
    db_session.add(empty)
    db_session.commit()
    assert list_repo.max_position(empty.id) is None
    assert list_repo.count_entries(empty.id) == 0

def test_bump_version_compare_and_swap(list_repo, reading_list, db_session):
    assert list_repo.bump_version(reading_list.id, expected_version=0) == 1
    db_session.commit()
    # A writer still holding version 0 loses
    assert list_repo.bump_version(reading_list.id, expected_version=0) is None
    assert list_repo.bump_version(reading_list.id) == 2
    db_session.commit()

def test_close_gap_keeps_positions_dense(list_repo, reading_list, sample_books, db_session):
    entry = list_repo.get_entry(reading_list.id, sample_books[1].id)
    list_repo.delete_entry(entry)
    list_repo.close_gap(reading_list.id, 1)
    db_session.commit()

    entries = list_repo.get_entries(reading_list.id)
    assert [e.position for e in entries] == [0, 1, 2]
    assert [e.book_id for e in entries] == [sample_books[0].id, sample_books[2].id, sample_books[3].id]

def test_lists_for_owner_public_only(list_repo, reading_list, db_session, owner):
    private = ReadingList(owner_id=owner.id, title="Secret", visibility=Visibility.PRIVATE, version=0)
    db_session.add(private)
    db_session.commit()

    everything = list_repo.lists_for_owner(owner.id)
    assert {rl.id for rl, _ in everything} == {reading_list.id, private.id}
    counts = {rl.id: count for rl, count in everything}
    assert counts[reading_list.id] == 4
    assert counts[private.id] == 0

    public = list_repo.lists_for_owner(owner.id, public_only=True)
    assert [rl.id for rl, _ in public] == [reading_list.id]

def test_find_favorites(list_repo, db_session, owner):
    favorites = ReadingList(
        owner_id=owner.id, title="Best of 2023", type=ReadingListType.FAVORITES_YEAR, year="2023", version=0
    )
    db_session.add(favorites)
    db_session.commit()
    assert list_repo.find_favorites(owner.id, ReadingListType.FAVORITES_YEAR, "2023").id == favorites.id
    assert list_repo.find_favorites(owner.id, ReadingListType.FAVORITES_YEAR, "2024") is None
    assert list_repo.find_favorites(owner.id, ReadingListType.FAVORITES_ALL) is None
