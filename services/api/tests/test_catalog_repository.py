import pytest
from app.core.errors import ConflictError, ValidationError
from app.crud.catalog import (
    CatalogFilters,
    build_predicates,
    delete_book,
    find_first_match,
    find_or_create_book,
    get_book,
    insert_if_absent,
    list_books,
    update_book,
)
from app.crud.library import list_by_status, upsert_status
from app.domain.status import ReadingStatus
from app.models import Book, UserBook
from sqlalchemy import func, select


def _count(db, model) -> int:
    return db.execute(select(func.count()).select_from(model)).scalar_one()


def test_find_or_create_is_case_insensitive(db_session):
    first = find_or_create_book(db_session, title="Dune", author="Frank Herbert")
    second = find_or_create_book(db_session, title="  dune ", author="FRANK HERBERT")

    assert first == second
    assert _count(db_session, Book) == 1


def test_find_or_create_normalizes_new_rows(db_session):
    book_id = find_or_create_book(
        db_session,
        title="The Hobbit",
        author="J.R.R. Tolkien",
        genre="Fantasy,  Classics ,",
        rating="4.5",
    )
    book = get_book(db_session, book_id)
    assert book.genre == "Fantasy, Classics"
    assert book.rating == pytest.approx(4.5)
    assert book.display_order is None


def test_find_or_create_resolves_lost_race_by_rereading(db_session, session_factory):
    # Another request committed the same pair first.
    other = session_factory()
    assert insert_if_absent(other, {"title": "Emma", "author": "Jane Austen"})
    other.commit()
    other.close()

    book_id = find_or_create_book(db_session, title="EMMA", author="jane austen")

    assert book_id == db_session.execute(select(Book.id)).scalar_one()
    assert _count(db_session, Book) == 1


def test_insert_if_absent_skips_duplicates(db_session):
    assert insert_if_absent(db_session, {"title": "Dune", "author": "Herbert"}) is True
    assert insert_if_absent(db_session, {"title": "DUNE", "author": "herbert"}) is False
    db_session.commit()
    assert _count(db_session, Book) == 1


@pytest.mark.parametrize("title,author", [("", "Someone"), ("Something", "  "), (None, "x")])
def test_find_or_create_requires_title_and_author(db_session, title, author):
    with pytest.raises(ValidationError):
        find_or_create_book(db_session, title=title, author=author)
    assert _count(db_session, Book) == 0


def test_pagination_over_45_rows(db_session):
    db_session.add_all(
        Book(title=f"Book {i:02d}", author="Author", display_order=i) for i in range(1, 46)
    )
    db_session.commit()

    page1 = list_books(db_session, page=1, page_size=20)
    page3 = list_books(db_session, page=3, page_size=20)
    page4 = list_books(db_session, page=4, page_size=20)

    assert len(page1.rows) == 20
    assert len(page3.rows) == 5
    assert page4.rows == []
    assert page1.total == 45
    assert page1.total_pages == 3
    assert [b.display_order for b in page3.rows] == [41, 42, 43, 44, 45]


def test_page_below_one_is_clamped(db_session, make_book):
    make_book("Dune", "Herbert", display_order=1)

    for page in (0, -3, None):
        result = list_books(db_session, page=page, page_size=20)
        assert result.page == 1
        assert len(result.rows) == 1


def test_page_far_past_the_end_is_empty(db_session, make_book):
    make_book("Dune", "Herbert", display_order=1)

    result = list_books(db_session, page=10**20, page_size=20)

    assert result.rows == []
    assert result.total == 1
    assert result.page == 10**20


@pytest.mark.parametrize("size", [0, -5])
def test_page_size_below_one_is_rejected(db_session, size):
    with pytest.raises(ValidationError):
        list_books(db_session, page_size=size)


def test_default_page_size_comes_from_settings(db_session, monkeypatch):
    monkeypatch.setattr("app.crud.catalog.settings.catalog_page_size", 2)
    db_session.add_all(Book(title=f"T{i}", author="A") for i in range(3))
    db_session.commit()

    result = list_books(db_session)
    assert result.page_size == 2
    assert len(result.rows) == 2
    assert result.total_pages == 2


def test_empty_catalog_has_zero_pages(db_session):
    result = list_books(db_session)
    assert result.total == 0
    assert result.total_pages == 0


def test_filters_are_conjunctive(db_session, make_book):
    make_book("Dune", "Herbert", genre="scifi", display_order=1)
    make_book("Hobbit", "Tolkien", genre="fantasy", display_order=2)

    by_text = list_books(db_session, query="du", genre="")
    by_genre = list_books(db_session, query="", genre="fantasy")
    both = list_books(db_session, query="du", genre="fantasy")

    assert [b.title for b in by_text.rows] == ["Dune"]
    assert [b.title for b in by_genre.rows] == ["Hobbit"]
    assert both.rows == []
    assert both.total == 0


def test_text_filter_matches_author_too(db_session, make_book):
    make_book("Dune", "Herbert")
    make_book("Hobbit", "Tolkien")

    result = list_books(db_session, query="TOLK")
    assert [b.title for b in result.rows] == ["Hobbit"]


def test_like_wildcards_in_input_are_literal(db_session, make_book):
    make_book("100% Pure", "Someone")
    make_book("Plain", "Other")

    assert [b.title for b in list_books(db_session, query="%").rows] == ["100% Pure"]
    assert list_books(db_session, query="_").rows == []


def test_min_rating_filter(db_session, make_book):
    make_book("High", "A", rating=4.6)
    make_book("Low", "B", rating=3.1)
    make_book("Unrated", "C")

    result = list_books(db_session, min_rating=4)
    assert [b.title for b in result.rows] == ["High"]


def test_build_predicates_skips_empty_inputs():
    assert build_predicates(CatalogFilters()) == []
    assert len(build_predicates(CatalogFilters(query="x", genre="y", min_rating=1.0))) == 3


def test_unordered_rows_sort_last(db_session, make_book):
    make_book("Added by hand", "User")
    make_book("Second", "Seed", display_order=2)
    make_book("First", "Seed", display_order=1)

    titles = [b.title for b in list_books(db_session).rows]
    assert titles == ["First", "Second", "Added by hand"]


def test_find_first_match(db_session, make_book):
    make_book("Dune Messiah", "Herbert", display_order=2)
    make_book("Dune", "Herbert", display_order=1)

    assert find_first_match(db_session, "dune").title == "Dune"
    assert find_first_match(db_session, "nothing like this") is None
    assert find_first_match(db_session, "   ") is None


def test_update_replaces_core_fields_only(db_session, make_book):
    book = make_book(
        "Dune",
        "Herbert",
        genre="scifi",
        rating=4.0,
        description="Spice.",
        cover_url="http://img/dune.jpg",
        display_order=7,
    )

    assert update_book(db_session, book.id, title="Dune (50th)", author="Frank Herbert")

    refreshed = get_book(db_session, book.id)
    assert refreshed.title == "Dune (50th)"
    assert refreshed.author == "Frank Herbert"
    assert refreshed.genre is None
    assert refreshed.rating is None
    assert refreshed.description == "Spice."
    assert refreshed.cover_url == "http://img/dune.jpg"
    assert refreshed.display_order == 7


def test_update_missing_book_reports_false(db_session):
    assert update_book(db_session, 999, title="X", author="Y") is False


def test_update_onto_existing_pair_conflicts(db_session, make_book):
    make_book("Dune", "Herbert")
    other = make_book("Hobbit", "Tolkien")

    with pytest.raises(ConflictError):
        update_book(db_session, other.id, title="dune", author="herbert")

    assert get_book(db_session, other.id).title == "Hobbit"


def test_delete_cascades_to_library_entries(db_session):
    book_id = find_or_create_book(db_session, title="Dune", author="Herbert")
    keep_id = find_or_create_book(db_session, title="Hobbit", author="Tolkien")
    upsert_status(db_session, user_id="u1", book_id=book_id, status="recommend")
    upsert_status(db_session, user_id="u2", book_id=book_id, status="save")
    upsert_status(db_session, user_id="u1", book_id=keep_id, status="save")

    assert delete_book(db_session, book_id) is True

    assert get_book(db_session, book_id) is None
    remaining = db_session.execute(select(UserBook.book_id)).scalars().all()
    assert remaining == [keep_id]
    for status in ReadingStatus:
        for user in ("u1", "u2"):
            rows = list_by_status(db_session, user_id=user, status=status)
            assert book_id not in [e.book.id for e in rows]


def test_delete_missing_book_is_a_noop(db_session, make_book):
    make_book("Dune", "Herbert")
    assert delete_book(db_session, 12345) is False
    assert _count(db_session, Book) == 1
