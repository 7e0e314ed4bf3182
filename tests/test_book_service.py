"""
Tests for BookService

Exercises the catalog rules directly against the session, without HTTP.
"""

import uuid

import pytest

from app.exceptions import BadRequestError, ConflictError, NotFoundError, ValidationError
from app.models import BookStatus
from app.schemas import BookCreate, BookUpdate
from app.services.books import BookService, validate_book_id
from app.services.query import PaginationConfig
from tests.conftest import book_payload


@pytest.fixture
def service(db_session) -> BookService:
    return BookService(db_session)


class TestValidateBookId:
    def test_accepts_uuid(self):
        book_id = str(uuid.uuid4())
        assert validate_book_id(book_id) == book_id

    @pytest.mark.parametrize("book_id", ["123", "not-an-id", ""])
    def test_rejects_malformed(self, book_id):
        with pytest.raises(BadRequestError, match="Invalid book ID format"):
            validate_book_id(book_id)


class TestListBooks:
    def test_default_lists_active_only(self, service, catalog):
        page = service.list_books({})

        assert page.pagination.total_items == 6
        assert all(book.status == "active" for book in page.items)
        assert page.filters == {"status": "active"}
        assert page.sort == {"createdAt": "desc"}

    def test_default_order_is_newest_first(self, service, catalog):
        titles = [book.title for book in service.list_books({}).items]
        assert titles[0] == "Brave New World"
        assert titles[-1] == "The Hobbit"

    def test_status_filter_overrides_default(self, service, catalog):
        page = service.list_books({"status": "discontinued"})

        assert [book.title for book in page.items] == ["Old Edition"]

    def test_genre_and_price_range(self, service, catalog):
        page = service.list_books({"genre": "Science Fiction", "price_lte": "12", "sort": "price"})

        assert [book.title for book in page.items] == ["1984", "Brave New World"]
        assert page.filters["price"] == {"lte": 12.0}

    def test_year_range_inclusive(self, service, catalog):
        page = service.list_books({"publishedYear_gte": "1945", "publishedYear_lte": "1965"})

        assert {book.published_year for book in page.items} == {1945, 1949, 1965}

    def test_search_is_case_insensitive_substring(self, service, catalog):
        page = service.list_books({"search": "ORWELL"})

        assert {book.title for book in page.items} == {"1984", "Animal Farm"}
        assert page.filters["search"] == "ORWELL"

    def test_search_matches_description_and_isbn(self, service, catalog):
        assert [b.title for b in service.list_books({"search": "farm is taken"}).items] == [
            "Animal Farm"
        ]
        assert [b.title for b in service.list_books({"search": "0441172719"}).items] == ["Dune"]

    def test_search_treats_wildcards_literally(self, service, catalog):
        assert service.list_books({"search": "%"}).pagination.total_items == 0

    def test_multi_field_sort(self, service, catalog):
        page = service.list_books({"sort": "author,-publishedYear", "limit": "3"})

        assert [book.title for book in page.items] == ["Brave New World", "Dune", "1984"]

    def test_unknown_sort_falls_back(self, service, catalog):
        assert service.list_books({"sort": "bogus"}).sort == {"createdAt": "desc"}

    def test_pagination_never_overlaps(self, service, make_book):
        for i in range(7):
            make_book(title=f"Same {i}", isbn=f"978000000{i:04d}", price=5.0)

        first = service.list_books({"sort": "price", "limit": "4", "page": "1"})
        second = service.list_books({"sort": "price", "limit": "4", "page": "2"})

        ids = [b.id for b in first.items] + [b.id for b in second.items]
        assert len(ids) == 7
        assert len(set(ids)) == 7
        assert second.pagination.has_next_page is False

    def test_configured_limits(self, db_session, catalog):
        service = BookService(db_session, PaginationConfig(default_limit=2, max_limit=3))

        assert service.list_books({}).pagination.items_per_page == 2
        assert service.list_books({"limit": "50"}).pagination.items_per_page == 3


class TestLookups:
    def test_get_book_any_status(self, service, catalog):
        discontinued = catalog[-1]
        assert service.get_book(discontinued.id).title == "Old Edition"

    def test_get_book_not_found(self, service):
        with pytest.raises(NotFoundError):
            service.get_book(str(uuid.uuid4()))

    def test_get_book_by_isbn_ignores_hyphens(self, service, sample_book):
        assert service.get_book_by_isbn("978-0-451-52493-5").id == sample_book.id

    def test_isbn_exists(self, service, sample_book):
        assert service.isbn_exists("9780451524935") is True
        assert service.isbn_exists("9780000000000") is False

    def test_books_by_genre(self, service, catalog):
        page = service.get_books_by_genre("Fantasy", {"sort": "-publishedYear"})

        assert [book.title for book in page.items] == ["The Silmarillion", "The Hobbit"]
        assert page.filters == {"genre": "Fantasy"}

    def test_books_by_genre_excludes_inactive(self, service, catalog):
        titles = {book.title for book in service.get_books_by_genre("Fiction", {}).items}
        assert titles == {"Animal Farm"}

    def test_books_by_author_substring(self, service, catalog):
        page = service.get_books_by_author("orwell", {})

        assert {book.title for book in page.items} == {"1984", "Animal Farm"}

    def test_count_matches_default_listing(self, service, catalog):
        assert service.count_books() == {"total": 6, "active": 6}


class TestStats:
    def test_stats(self, service, catalog):
        stats = service.get_stats()
        overview = stats["overview"]

        assert overview["total_books"] == 8
        assert overview["active_books"] == 6
        assert overview["total_stock"] == sum(book.stock for book in catalog)
        assert overview["total_value"] == pytest.approx(
            sum(book.price * book.stock for book in catalog)
        )
        assert overview["avg_price"] == pytest.approx(
            sum(book.price for book in catalog) / len(catalog)
        )

        assert stats["genre_distribution"][0] == {"genre": "Science Fiction", "count": 3}
        years = [entry["year"] for entry in stats["year_distribution"]]
        assert years == sorted(years, reverse=True)

    def test_stats_empty_catalog(self, service):
        stats = service.get_stats()

        assert stats["overview"]["total_books"] == 0
        assert stats["overview"]["avg_price"] == 0
        assert stats["genre_distribution"] == []


class TestCreateBook:
    def test_create_defaults(self, service):
        data = BookCreate.model_validate(
            {k: v for k, v in book_payload().items() if k not in ("price", "stock")}
        )
        book = service.create_book(data)

        assert book.isbn == "9780743273565"
        assert book.price == 0
        assert book.stock == 0
        assert book.status == BookStatus.ACTIVE.value
        uuid.UUID(book.id)

    def test_duplicate_isbn_conflicts(self, service, sample_book):
        data = BookCreate.model_validate(book_payload(isbn="978-0451524935"))

        with pytest.raises(ConflictError, match="ISBN already exists"):
            service.create_book(data)

    def test_isbn_of_discontinued_book_still_taken(self, service, catalog):
        data = BookCreate.model_validate(book_payload(isbn="9780000000024"))

        with pytest.raises(ConflictError):
            service.create_book(data)

    def test_duplicate_caught_at_commit(self, service, sample_book, monkeypatch):
        # Another writer inserted the ISBN between the lookup and the commit
        monkeypatch.setattr(BookService, "_find_by_isbn", lambda self, isbn, exclude_id=None: None)
        book_id = sample_book.id
        data = BookCreate.model_validate(book_payload(isbn=sample_book.isbn))

        with pytest.raises(ConflictError, match="A book with this ISBN already exists"):
            service.create_book(data)

        # Only the failed insert was rolled back
        assert service.get_book(book_id).title == "1984"
        assert service.count_books()["total"] == 1


class TestUpdateBook:
    def test_partial_update(self, service, sample_book):
        book = service.update_book(sample_book.id, BookUpdate(price=15.5))

        assert book.price == 15.5
        assert book.title == "1984"

    def test_empty_update_rejected(self, service, sample_book):
        with pytest.raises(ValidationError, match="At least one field"):
            service.update_book(sample_book.id, BookUpdate())

    def test_malformed_id_checked_before_empty_body(self, service):
        with pytest.raises(BadRequestError, match="Invalid book ID format"):
            service.update_book("not-a-uuid", BookUpdate())

    def test_explicit_null_rejected(self, service, sample_book):
        with pytest.raises(ValidationError) as exc_info:
            service.update_book(sample_book.id, BookUpdate.model_validate({"title": None}))

        assert exc_info.value.errors[0]["field"] == "title"

    def test_same_isbn_is_not_a_conflict(self, service, sample_book):
        book = service.update_book(sample_book.id, BookUpdate(isbn="978-0-451-52493-5"))
        assert book.isbn == "9780451524935"

    def test_isbn_of_other_book_conflicts(self, service, catalog):
        with pytest.raises(ConflictError):
            service.update_book(catalog[0].id, BookUpdate(isbn=catalog[1].isbn))

    def test_update_missing_book(self, service):
        with pytest.raises(NotFoundError):
            service.update_book(str(uuid.uuid4()), BookUpdate(price=1))


class TestDeleteBook:
    def test_soft_delete_keeps_record(self, service, sample_book):
        service.soft_delete_book(sample_book.id)

        book = service.get_book(sample_book.id)
        assert book.status == BookStatus.DISCONTINUED.value
        assert service.list_books({}).pagination.total_items == 0

    def test_hard_delete(self, service, sample_book):
        book_id = sample_book.id
        deleted = service.hard_delete_book(book_id)

        assert deleted == {"id": book_id, "title": "1984", "author": "George Orwell"}
        with pytest.raises(NotFoundError):
            service.get_book(deleted["id"])


class TestUpdateStock:
    def test_add_and_remove(self, service, sample_book):
        assert service.update_stock(sample_book.id, 5).stock == 15
        assert service.update_stock(sample_book.id, -15).stock == 0

    def test_large_withdrawal_refused(self, service, make_book):
        book = make_book(stock=5)

        with pytest.raises(BadRequestError):
            service.update_stock(book.id, -1000)

        assert service.get_book(book.id).stock == 5

    def test_insufficient_stock_leaves_stock_unchanged(self, service, sample_book):
        with pytest.raises(BadRequestError, match="Insufficient stock"):
            service.update_stock(sample_book.id, -11)

        assert service.get_book(sample_book.id).stock == 10
