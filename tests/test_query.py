"""
Tests for the query construction helpers.

These are pure functions, so no database or client fixtures are needed
except for the SQL translation tests at the bottom.
"""

import pytest
from sqlalchemy import select

from app.models import Book
from app.services.query import (
    DEFAULT_SORT,
    SortField,
    build_search_query,
    calculate_pagination,
    filter_clauses,
    order_by_clauses,
    parse_filters,
    parse_float,
    parse_int,
    parse_sort,
    sort_to_dict,
)


class TestNumberParsing:
    @pytest.mark.parametrize(
        "value, expected",
        [("12", 12), (" 7 ", 7), ("3abc", 3), ("-4", -4), (5, 5), (2.9, 2)],
    )
    def test_parse_int_reads_leading_integer(self, value, expected):
        assert parse_int(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", True, float("nan")])
    def test_parse_int_returns_none_without_number(self, value):
        assert parse_int(value) is None

    def test_parse_float(self):
        assert parse_float("9.99") == 9.99
        assert parse_float("10.5usd") == 10.5
        assert parse_float(".5") == 0.5
        assert parse_float("abc") is None
        assert parse_float("inf") is None


class TestCalculatePagination:
    def test_middle_page(self):
        p = calculate_pagination("2", "5", 12)

        assert p.current_page == 2
        assert p.items_per_page == 5
        assert p.total_pages == 3
        assert p.skip == 5
        assert p.has_next_page is True
        assert p.has_previous_page is True

    def test_defaults_when_missing(self):
        p = calculate_pagination(None, None, 25)

        assert p.current_page == 1
        assert p.items_per_page == 10
        assert p.total_pages == 3
        assert p.skip == 0
        assert p.has_previous_page is False

    @pytest.mark.parametrize("page", ["0", "-3", "abc", ""])
    def test_invalid_page_becomes_first(self, page):
        assert calculate_pagination(page, "10", 50).current_page == 1

    @pytest.mark.parametrize("limit", ["0", "-1", "abc"])
    def test_invalid_limit_uses_default(self, limit):
        assert calculate_pagination("1", limit, 50).items_per_page == 10

    def test_limit_is_capped(self):
        assert calculate_pagination("1", "500", 50).items_per_page == 100

    def test_custom_bounds(self):
        p = calculate_pagination("1", "500", 50, default_limit=20, max_limit=25)
        assert p.items_per_page == 25
        assert calculate_pagination("1", None, 50, default_limit=20).items_per_page == 20

    def test_empty_result(self):
        p = calculate_pagination("1", "10", 0)

        assert p.total_pages == 0
        assert p.has_next_page is False
        assert p.has_previous_page is False

    def test_page_beyond_last(self):
        p = calculate_pagination("9", "10", 15)

        assert p.current_page == 9
        assert p.skip == 80
        assert p.has_next_page is False
        assert p.has_previous_page is True

    @pytest.mark.parametrize("total", [0, 1, 9, 10, 11, 99, 100, 101])
    def test_total_pages_is_ceiling(self, total):
        p = calculate_pagination("1", "10", total)
        assert p.total_pages == -(-total // 10)
        assert p.skip == (p.current_page - 1) * p.items_per_page


class TestParseSort:
    def test_default_when_empty(self):
        assert parse_sort(None) == list(DEFAULT_SORT)
        assert parse_sort("") == [SortField("createdAt", "desc")]

    def test_directions_and_order(self):
        result = parse_sort("-price,title", ["title", "price"])

        assert result == [SortField("price", "desc"), SortField("title", "asc")]

    def test_unknown_fields_dropped(self):
        assert parse_sort("-createdAt,title", ["title", "author"]) == [SortField("title", "asc")]

    def test_all_unknown_falls_back_to_default(self):
        assert parse_sort("bogus,-nope", ["title"]) == list(DEFAULT_SORT)

    def test_empty_allow_list_accepts_anything(self):
        assert parse_sort("whatever") == [SortField("whatever", "asc")]

    def test_repeated_field_keeps_first(self):
        result = parse_sort("title,-title,price", ["title", "price"])
        assert result == [SortField("title", "asc"), SortField("price", "asc")]

    def test_whitespace_and_empty_tokens(self):
        result = parse_sort(" -price , ,title ", ["title", "price"])
        assert result == [SortField("price", "desc"), SortField("title", "asc")]

    def test_sort_to_dict(self):
        assert sort_to_dict(parse_sort("-price,title", ["title", "price"])) == {
            "price": "desc",
            "title": "asc",
        }


class TestParseFilters:
    def test_exact_fields(self):
        params = {"genre": "Fiction", "author": "Jane Austen", "ignored": "x"}

        assert parse_filters(params, ["genre", "author"]) == {
            "genre": "Fiction",
            "author": "Jane Austen",
        }

    def test_absent_and_blank_fields_omitted(self):
        assert parse_filters({"genre": "", "author": None}, ["genre", "author"]) == {}

    def test_range_bounds(self):
        params = {"publishedYear_gte": "1990", "publishedYear_lte": "2000"}

        assert parse_filters(params, ["publishedYear"]) == {
            "publishedYear": {"gte": 1990, "lte": 2000}
        }

    def test_single_bound_without_bare_key(self):
        assert parse_filters({"price_lte": "20.5"}, ["price"]) == {"price": {"lte": 20.5}}

    def test_bare_range_field_is_exact(self):
        assert parse_filters({"price": "9.99"}, ["price"]) == {"price": 9.99}

    def test_bounds_take_precedence_over_exact(self):
        params = {"price": "9.99", "price_gte": "5"}
        assert parse_filters(params, ["price"]) == {"price": {"gte": 5.0}}

    def test_non_numeric_bounds_dropped(self):
        params = {"publishedYear_gte": "abc", "publishedYear_lte": "2000", "price": "cheap"}

        assert parse_filters(params, ["publishedYear", "price"]) == {
            "publishedYear": {"lte": 2000}
        }

    def test_unlisted_fields_ignored(self):
        assert parse_filters({"genre": "Fiction"}, ["author"]) == {}


class TestSqlTranslation:
    def test_empty_search_matches_everything(self):
        assert str(build_search_query("   ")) == "true"
        assert str(build_search_query(None)) == "true"

    def test_search_covers_text_columns(self):
        sql = str(select(Book).where(build_search_query("orwell")))

        for column in ("title", "author", "description", "isbn"):
            assert f"books.{column}" in sql

    def test_filter_clauses(self):
        clauses = filter_clauses({
            "genre": "Fiction",
            "price": {"gte": 5.0, "lte": 20.0},
            "unknown": "x",
        })
        assert len(clauses) == 3

    def test_order_by_appends_id_tiebreaker(self):
        clauses = order_by_clauses([SortField("price", "desc")])

        assert len(clauses) == 2
        assert "books.id" in str(clauses[-1])
