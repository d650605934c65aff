import math

import pytest
from app.domain.normalize import clean_block, clean_genres, clean_text, parse_rating
from app.domain.status import ReadingStatus, coerce_status


def test_clean_genres_from_scraped_list():
    raw = "['Young Adult', 'Fiction',  'Dystopia' ]"
    assert clean_genres(raw) == "Young Adult, Fiction, Dystopia"


def test_clean_genres_from_form_input():
    assert clean_genres(" Fantasy ,, Classics,  ") == "Fantasy, Classics"


def test_clean_genres_empty_is_none():
    assert clean_genres("[]") is None
    assert clean_genres("  ") is None
    assert clean_genres(None) is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("4.27", 4.27),
        (" 3 ", 3.0),
        (5, 5.0),
        ("0", 0.0),
        ("", None),
        ("n/a", None),
        ("nan", None),
        (None, None),
    ],
)
def test_parse_rating(raw, expected):
    value = parse_rating(raw)
    if expected is None:
        assert value is None
    else:
        assert math.isclose(value, expected)


def test_clean_text_collapses_whitespace():
    assert clean_text("  The   Hobbit \n") == "The Hobbit"
    assert clean_text("   ") is None


def test_clean_block_keeps_inner_layout():
    assert clean_block("  line one\n\nline two  ") == "line one\n\nline two"
    assert clean_block("") is None


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("already_read", ReadingStatus.ALREADY_READ),
        ("already read", ReadingStatus.ALREADY_READ),
        ("already", ReadingStatus.ALREADY_READ),
        ("Recommend", ReadingStatus.RECOMMEND),
        (" save ", ReadingStatus.SAVE),
        ("wishlist", ReadingStatus.ALREADY_READ),
        ("", ReadingStatus.ALREADY_READ),
        (None, ReadingStatus.ALREADY_READ),
        (42, ReadingStatus.ALREADY_READ),
    ],
)
def test_coerce_status_falls_back_to_already_read(raw, expected):
    assert coerce_status(raw) is expected
