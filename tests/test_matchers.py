from datetime import date, datetime, timedelta, timezone

import pytest

from searchplus.helpers import coerce_local_date, levenshtein_at_most, stringify_value
from searchplus.matchers import (
    match_date,
    match_fuzzy,
    match_numeric_range,
    match_plain,
    match_regex,
    match_value,
    match_whole_word,
    match_wildcard,
)
from searchplus.search_expression import DateCondition, parse_numeric_range, parse_query


def token(raw):
    return parse_query(raw).tokens[0]


class TestText:
    def test_plain_is_case_insensitive_substring(self):
        assert match_plain("Alice Dupont", "DUP")
        assert not match_plain("Alice Dupont", "bob")

    def test_plain_matches_inside_words_but_whole_word_does_not(self):
        assert match_plain("category", "cat")
        assert not match_whole_word("category", "cat")
        assert match_whole_word("cat category", "cat")
        assert match_whole_word("the CAT sat", "cat")

    def test_whole_word_escapes_pattern_characters(self):
        assert match_whole_word("price (net) 10", "(net)")
        assert not match_whole_word("a.b", "a?b")

    @pytest.mark.parametrize(
        "raw, value, expected",
        [
            ("=paris", "Paris", True),
            ("=paris", "Paris 12e", False),
            ("<par", "Paris", True),
            ("<ris", "Paris", False),
            (">ris", "PARIS", True),
            (">par", "Paris", False),
        ],
    )
    def test_modifiers(self, raw, value, expected):
        assert match_value(value, token(raw)) is expected

    def test_phrase_is_substring_with_spaces(self):
        assert match_value("Jean Pierre Martin", token('"pierre mar"'))
        assert not match_value("Pierre-Martin", token('"pierre mar"'))


class TestRegex:
    def test_case_insensitive_search_on_raw_value(self):
        assert match_regex("Alice Dupont", r"^ali")
        assert match_regex("Order #1234", r"#\d{4}")
        assert not match_regex("Bob", r"^ali")

    def test_invalid_pattern_never_matches(self):
        assert match_regex("anything", "(") is False
        assert match_value("((", token("/(/")) is False


class TestWildcard:
    @pytest.mark.parametrize("value", ["apple", "ace", "APE"])
    def test_star(self, value):
        assert match_wildcard(value, "a*e")

    def test_no_match(self):
        assert not match_wildcard("banana", "a*e")

    def test_matches_single_word_of_value(self):
        assert match_wildcard("big apple pie", "a*e")

    def test_question_mark_is_one_character(self):
        assert match_wildcard("cat", "?at")
        assert not match_wildcard("chat", "?at")

    def test_other_characters_are_literal(self):
        assert match_wildcard("v1.2", "v?.*")
        assert not match_wildcard("v1x2", "v1.?")


class TestFuzzy:
    def test_one_edit_away(self):
        assert match_fuzzy("colour", "color")

    def test_unrelated(self):
        assert not match_fuzzy("banana", "color")

    def test_substring_short_circuit(self):
        assert match_fuzzy("Multicolore", "color")

    def test_short_words_need_exact_substring(self):
        assert not match_fuzzy("ac", "ab")
        assert not match_fuzzy("ab cd", "abd")

    def test_candidate_is_truncated(self):
        # "colorado" is cut to "color", one edit from "colr"
        assert match_fuzzy("Denver Colorado", "colr")
        assert not match_fuzzy("Denver Colorado", "cola")

    def test_levenshtein(self):
        assert levenshtein_at_most("kitten", "sitting", limit=3) == 3
        assert levenshtein_at_most("kitten", "sitting", limit=2) == 3
        assert levenshtein_at_most("same", "same", limit=0) == 0


class TestNumeric:
    def test_inclusive_range(self):
        rng = parse_numeric_range("10..100")
        assert match_numeric_range(50, rng)
        assert not match_numeric_range(5, rng)
        assert match_numeric_range(100, rng)
        assert match_numeric_range(10.0, rng)

    @pytest.mark.parametrize(
        "word, value, expected",
        [(">50", 50, False), (">=50", 50, True), ("<50", 49.9, True), ("<=50", 50.1, False)],
    )
    def test_comparisons(self, word, value, expected):
        assert match_numeric_range(value, parse_numeric_range(word)) is expected

    def test_non_numeric_values_never_match(self):
        rng = parse_numeric_range(">0")
        assert not match_numeric_range("abc", rng)
        assert not match_numeric_range(None, rng)
        assert not match_numeric_range(True, rng)
        assert not match_numeric_range(float("nan"), rng)


class TestDates:
    def test_today_against_epoch_seconds(self, today_epoch, yesterday_epoch):
        today = date.today()
        cond = DateCondition("exact", today, today)
        assert match_date(today_epoch, cond)
        assert not match_date(yesterday_epoch, cond)

    def test_time_of_day_is_ignored(self, today_epoch):
        today = date.today()
        assert match_date(today_epoch + 15 * 3600, DateCondition("exact", today, today))

    def test_date_strings(self):
        after = DateCondition("compare", date(2024, 3, 1), op=">")
        assert match_date("2024-03-05", after)
        assert not match_date("2024-03-01", after)
        assert match_date("2024-03-01T18:30:00", DateCondition("compare", date(2024, 3, 1), op=">="))

    def test_range_is_inclusive(self):
        cond = DateCondition("range", date(2024, 1, 1), date(2024, 1, 31))
        assert match_date("2024-01-31T23:59:00", cond)
        assert not match_date("2024-02-01", cond)

    def test_date_objects(self):
        cond = DateCondition("exact", date(2024, 6, 1), date(2024, 6, 1))
        assert match_date(date(2024, 6, 1), cond)
        assert match_date(datetime(2024, 6, 1, 22, 15), cond)

    def test_unparseable_values_never_match(self):
        cond = DateCondition("compare", date(2000, 1, 1), op=">")
        assert not match_date("not a date", cond)
        assert not match_date(None, cond)
        assert not match_date(True, cond)


class TestHelpers:
    @pytest.mark.parametrize(
        "value, text",
        [(None, ""), (True, "true"), (False, "false"), (12.0, "12"), (1.5, "1.5"), (7, "7"),
         (date(2024, 1, 2), "2024-01-02"), ("x", "x")],
    )
    def test_stringify_value(self, value, text):
        assert stringify_value(value) == text

    def test_aware_strings_are_converted_to_target_zone(self):
        tokyo = timezone(timedelta(hours=9))
        assert coerce_local_date("2024-01-01T23:30:00+00:00", tokyo) == date(2024, 1, 2)
        assert coerce_local_date("2024-01-01T23:30:00", tokyo) == date(2024, 1, 1)

    def test_epoch_seconds_in_target_zone(self):
        utc_midnight = datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp()
        minus_five = timezone(timedelta(hours=-5))
        assert coerce_local_date(utc_midnight, minus_five) == date(2023, 12, 31)
        assert coerce_local_date(utc_midnight, timezone.utc) == date(2024, 1, 1)
