# tests/test_services/test_library_service.py
import pytest
from unittest.mock import Mock

from core.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from core.models.book import BookData, CandidateRecord
from core.services.library import LibraryService, match_score
from core.visibility import Visibility

@pytest.fixture
def library(db_session):
    return LibraryService(db_session)

def manual_book(**overrides):
    values = dict(title="Pride and Prejudice", authors=["Jane Austen"], isbn13="978-0-14-143951-8", isbn10="0141439513")
    values.update(overrides)
    return BookData(**values)

def test_pagination_counts_only_visible_books(library, owner, other_caller, anonymous, owner_caller, book_factory):
    for i in range(1, 26):
        book_factory(owner, i, Visibility.PUBLIC if i % 5 else Visibility.PRIVATE)

    page = library.list_library(anonymous, page=2, size=10)
    assert page.total == 20
    assert page.total_pages == 2
    assert len(page.items) == 10
    assert all(b.visibility == Visibility.PUBLIC for b in page.items)

    assert library.list_library(other_caller, owner_id=owner.id).total == 20
    assert library.list_library(owner_caller, owner_id=owner.id).total == 25

def test_page_size_limits(library, anonymous):
    with pytest.raises(ValidationError):
        library.list_library(anonymous, size=101)
    with pytest.raises(ValidationError):
        library.list_library(anonymous, page=0)

def test_create_book_manual_entry(library, owner_caller):
    book = library.create_book(owner_caller, manual_book(date_published="1813-01-28"))
    assert book.isbn13 == "9780141439518"
    assert book.owner_id == owner_caller.user_id
    with pytest.raises(ConflictError):
        library.create_book(owner_caller, manual_book())

@pytest.mark.parametrize("overrides, message", [
    ({"title": " "}, "Title is required"),
    ({"authors": []}, "At least one author is required"),
    ({"isbn13": "9780141439519"}, "Invalid ISBN-13 checksum"),
    ({"isbn10": "0141439514"}, "Invalid ISBN-10 checksum"),
    ({"date_published": "28/01/1813"}, "YYYY"),
])
def test_create_book_validation(library, owner_caller, overrides, message):
    with pytest.raises(ValidationError, match=message):
        library.create_book(owner_caller, manual_book(**overrides))

def test_create_book_requires_user(library, anonymous):
    with pytest.raises(UnauthorizedError):
        library.create_book(anonymous, manual_book())

def test_get_private_book_is_not_found_for_others(library, owner, owner_caller, other_caller, anonymous, book_factory):
    private = book_factory(owner, 1, Visibility.PRIVATE)
    unlisted = book_factory(owner, 2, Visibility.UNLISTED)
    assert library.get_book(owner_caller, private.id).id == private.id
    for caller in (other_caller, anonymous):
        with pytest.raises(NotFoundError):
            library.get_book(caller, private.id)
        assert library.get_book(caller, unlisted.id).id == unlisted.id

def test_update_set_visibility_and_delete(library, owner, owner_caller, other_caller, book_factory):
    book = book_factory(owner, 1)
    with pytest.raises(UnauthorizedError):
        library.update_book(other_caller, book.id, {"title": "Mine"})
    with pytest.raises(ValidationError):
        library.update_book(owner_caller, book.id, {"owner_id": other_caller.user_id})

    assert library.update_book(owner_caller, book.id, {"title": "Renamed", "pages": 320}).title == "Renamed"
    assert library.set_visibility(owner_caller, book.id, Visibility.PRIVATE).visibility == Visibility.PRIVATE
    library.delete_book(owner_caller, book.id)
    with pytest.raises(NotFoundError):
        library.get_book(owner_caller, book.id)

def test_refresh_metadata_overwrites_descriptive_fields(db_session, owner, owner_caller, book_factory):
    book = book_factory(owner, 1, isbn13="9780141439518", title="Old Title", publisher="Old Publisher")
    resolver = Mock()
    resolver.resolve.return_value = CandidateRecord(
        title="Pride and Prejudice", authors=["Jane Austen"], isbn13="9780141439518", publisher=None, pages=480
    )
    refreshed = LibraryService(db_session, resolver=resolver).refresh_metadata(owner_caller, book.id)

    resolver.resolve.assert_called_once_with("9780141439518")
    assert refreshed.title == "Pride and Prejudice"
    assert refreshed.pages == 480
    assert refreshed.publisher == "Old Publisher"

def test_refresh_needs_isbn13(db_session, owner, owner_caller, book_factory):
    book = book_factory(owner, 1, isbn13=None)
    with pytest.raises(ValidationError):
        LibraryService(db_session, resolver=Mock()).refresh_metadata(owner_caller, book.id)

@pytest.fixture
def tagged_books(owner, other_user, book_factory):
    """Public and private books with overlapping authors and subjects"""
    return dict(
        emma=book_factory(owner, 60, title="Emma", authors=["Jane Austen"], subjects=["Fiction", "Romance"]),
        persuasion=book_factory(owner, 61, title="Persuasion", authors=["Jane Austen"], subjects=["Fiction"]),
        dune=book_factory(owner, 62, title="Dune", authors=["Frank Herbert"], subjects=["Science Fiction"]),
        diary=book_factory(owner, 63, Visibility.PRIVATE, title="Secret Diary",
                           authors=["Alice Private"], subjects=["Confessions"]),
        hidden=book_factory(owner, 64, Visibility.UNLISTED, title="Unlisted Notes",
                            authors=["Ursula Unlisted"], subjects=["Drafts"]),
        bobs=book_factory(other_user, 65, Visibility.PRIVATE, title="Bob's Ledger",
                          authors=["Bob Private"], subjects=["Accounts"]),
    )

def ids(page):
    return [b.id for b in page.items]

def test_filter_by_authors_and_subjects(library, anonymous, tagged_books):
    emma, persuasion, dune = tagged_books["emma"], tagged_books["persuasion"], tagged_books["dune"]
    assert ids(library.list_library(anonymous, authors=["Jane Austen"])) == [emma.id, persuasion.id]
    # Any of the given values matches
    assert ids(library.list_library(anonymous, authors=["Frank Herbert", "Jane Austen"])) == [emma.id, persuasion.id, dune.id]
    # Whole values only: "Fiction" does not match "Science Fiction"
    assert ids(library.list_library(anonymous, subjects=["Fiction"])) == [emma.id, persuasion.id]
    assert ids(library.list_library(anonymous, authors=["Jane Austen"], subjects=["Romance"])) == [emma.id]
    page = library.list_library(anonymous, authors=["Jane"])
    assert page.total == 0
    assert library.list_library(anonymous, authors=["  ", ""]).total == 3

def test_filter_never_reaches_hidden_books(library, owner_caller, other_caller, anonymous, tagged_books):
    assert library.list_library(anonymous, authors=["Alice Private"]).total == 0
    assert library.list_library(other_caller, subjects=["Confessions"]).total == 0
    assert library.list_library(anonymous, authors=["Ursula Unlisted"]).total == 0
    assert ids(library.list_library(owner_caller, authors=["Alice Private"])) == [tagged_books["diary"].id]

def test_filters_only_come_from_visible_books(library, owner, owner_caller, other_caller, anonymous, tagged_books):
    public = library.filters(anonymous)
    assert public.authors == ["Frank Herbert", "Jane Austen"]
    assert public.subjects == ["Fiction", "Romance", "Science Fiction"]
    assert library.filters(other_caller) == public

    mine = library.filters(owner_caller)
    assert "Alice Private" in mine.authors
    assert "Confessions" in mine.subjects
    assert "Bob Private" not in mine.authors
    assert "Ursula Unlisted" not in mine.authors
    assert library.filters(anonymous, owner_id=owner.id) == public

def test_suggestions_ranking(library, owner, anonymous, book_factory):
    book_factory(owner, 70, title="Fiction Writing", authors=["Ann Fiction"], subjects=["Writing"])
    book_factory(owner, 71, title="Science Fiction Classics", authors=["Ben Fic"], subjects=["Science Fiction"])
    book_factory(owner, 72, title="Nonfiction", authors=["Cy Writer"], subjects=["Fiction"])

    result = library.suggestions(anonymous, "fiction")
    assert [t.title for t in result.titles] == ["Fiction Writing", "Science Fiction Classics", "Nonfiction"]
    assert result.subjects == ["Fiction", "Science Fiction"]
    assert result.authors == ["Ann Fiction"]

def test_suggestions_short_query_and_limit(library, owner, anonymous, book_factory):
    for i in range(8):
        book_factory(owner, 80 + i, title=f"Sea Story {i}", authors=[f"Sailor {i}"])
    assert library.suggestions(anonymous, "s").titles == []
    assert library.suggestions(anonymous, "   ").authors == []
    assert library.suggestions(anonymous, None).subjects == []
    result = library.suggestions(anonymous, "sea")
    assert [t.title for t in result.titles] == [f"Sea Story {i}" for i in range(5)]

def test_suggestions_do_not_leak_private_books(library, owner_caller, other_caller, anonymous, tagged_books):
    for caller in (anonymous, other_caller):
        result = library.suggestions(caller, "private")
        assert result.titles == [] and result.authors == []
        assert library.suggestions(caller, "secret").titles == []
        assert library.suggestions(caller, "confess").subjects == []
        assert library.suggestions(caller, "unlisted").authors == []

    mine = library.suggestions(owner_caller, "private")
    assert mine.authors == ["Alice Private"]
    assert [t.id for t in library.suggestions(owner_caller, "secret").titles] == [tagged_books["diary"].id]

def test_match_score():
    assert match_score("Dune", "dune") == 1000
    assert match_score("Dune Messiah", "dune") == 100
    assert match_score("Children of Dune", "dune") == 50
    assert match_score("Dunedin", "dune") == 100
    assert match_score("Nonfiction", "fiction") == 1
