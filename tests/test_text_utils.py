from app.archivist import text_utils
from app.archivist.text_utils import (
    clean_text,
    is_all_caps,
    normalize_whitespace,
    remove_disambiguation_suffix,
    string_arrays_equal,
    strings_equal,
    to_title_case,
)


def test_normalize_whitespace_collapses_nbsp_and_newlines() -> None:
    assert normalize_whitespace("  Male: 3\n\tFemale:&nbsp;2 ") == "Male: 3 Female: 2"
    assert normalize_whitespace(None) == ""


def test_clean_text_maps_placeholders_to_empty() -> None:
    assert clean_text(" - ") == ""
    assert clean_text("N/A") == ""
    assert clean_text("  Royal   Court ") == "Royal Court"


def test_to_title_case_keeps_hyphen_and_apostrophe_parts() -> None:
    assert to_title_case("SHAKESPEARE COMPANY") == "Shakespeare Company"
    assert to_title_case("o'neill-SMITH") == "O'Neill-Smith"
    assert to_title_case("") == ""


def test_to_title_case_keeps_roman_numerals_upper() -> None:
    assert to_title_case("JOHN SMITH III") == "John Smith III"
    assert to_title_case("henry iv") == "Henry IV"
    assert to_title_case("MILLER") == "Miller"
    assert to_title_case("LI DI") == "Li Di"


def test_remove_disambiguation_suffix_only_strips_short_numbers() -> None:
    assert remove_disambiguation_suffix("SMITH John (2)") == "SMITH John"
    assert remove_disambiguation_suffix("SMITH John (12)") == "SMITH John"
    assert remove_disambiguation_suffix("Play (1999)") == "Play (1999)"


def test_is_all_caps_ignores_non_letters() -> None:
    assert is_all_caps("ABC THEATRE 2000") is True
    assert is_all_caps("SMITH John") is False
    assert is_all_caps("1234") is False


def test_equality_helpers_are_case_insensitive() -> None:
    assert strings_equal("Æsop", "æSOP")
    assert string_arrays_equal(["Jr", "III"], ["JR", "iii"])
    assert not string_arrays_equal(["Jr"], ["Jr", "III"])


def test_search_for_and_remove_returns_first_matching_pattern() -> None:
    import re

    patterns = [re.compile(r"\((\d{4})\)"), re.compile(r"(\d{4})")]
    found, remainder = text_utils.search_for_and_remove("Faber (2001) 1999", patterns)

    assert found == "2001"
    assert remainder == "Faber  1999"
