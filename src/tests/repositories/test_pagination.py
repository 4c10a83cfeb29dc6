"""Test pagination request/result types and list options."""

import pytest
from pydantic import ValidationError

from inkwell.repositories.pagination import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    Join,
    ListOptions,
    PaginatedResult,
    PaginationMeta,
    PaginationQuery,
    Relation,
)


class TestPaginationQuery:
    """Test PaginationQuery defaults and validation."""

    def test_empty_query_is_not_requested(self) -> None:
        assert PaginationQuery().is_requested() is False

    @pytest.mark.parametrize(
        "kwargs",
        [{"page": 1}, {"limit": 5}, {"search_key": "x"}, {"sort_by": "slug"}, {"sort_order": "asc"}],
    )
    def test_any_field_requests_pagination(self, kwargs: dict) -> None:
        assert PaginationQuery(**kwargs).is_requested() is True

    def test_defaults(self) -> None:
        query = PaginationQuery(search_key="x")
        assert query.resolved_page == 1
        assert query.resolved_limit == DEFAULT_LIMIT
        assert query.resolved_sort_order == "desc"
        assert query.skip == 0

    def test_skip(self) -> None:
        assert PaginationQuery(page=3, limit=10).skip == 20

    def test_page_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            PaginationQuery(page=0)

    def test_limit_is_capped(self) -> None:
        with pytest.raises(ValidationError):
            PaginationQuery(limit=MAX_LIMIT + 1)

    def test_sort_order_is_asc_or_desc(self) -> None:
        with pytest.raises(ValidationError):
            PaginationQuery(sort_order="sideways")


class TestPaginationMeta:
    """Test page metadata arithmetic."""

    def test_middle_page(self) -> None:
        meta = PaginationMeta.build(page=2, limit=10, total=25)
        assert meta.total_pages == 3
        assert meta.has_next is True
        assert meta.has_prev is True

    def test_last_page(self) -> None:
        meta = PaginationMeta.build(page=3, limit=10, total=25)
        assert meta.has_next is False
        assert meta.has_prev is True

    def test_empty_result(self) -> None:
        meta = PaginationMeta.build(page=1, limit=10, total=0)
        assert meta.total_pages == 0
        assert meta.has_next is False
        assert meta.has_prev is False

    def test_camel_case_dump(self) -> None:
        dumped = PaginationMeta.build(page=1, limit=10, total=5).model_dump(by_alias=True)
        assert dumped == {
            "page": 1,
            "limit": 10,
            "total": 5,
            "totalPages": 1,
            "hasNext": False,
            "hasPrev": False,
        }

    def test_result_to_dict(self) -> None:
        result = PaginatedResult(data=["a"], pagination=PaginationMeta.build(1, 10, 1))
        assert result.to_dict()["data"] == ["a"]
        assert result.to_dict()["pagination"]["totalPages"] == 1


class TestRelation:
    """Test relation resolution."""

    defaults = (Join("author", ["email"]),)

    def test_none(self) -> None:
        assert Relation.none().resolve(self.defaults) == ()

    def test_default(self) -> None:
        assert Relation.default().resolve(self.defaults) == self.defaults

    def test_explicit(self) -> None:
        join = Join("post", ["slug"])
        assert Relation.explicit(join).resolve(self.defaults) == (join,)

    def test_join_fields_are_frozen(self) -> None:
        assert Join("author", ["a", "b"]).fields == ("a", "b")
        assert Join("author").fields is None


class TestListOptions:
    """Test sort field fallback."""

    def test_allowed_sort_field(self) -> None:
        options = ListOptions(sort_fields=["view_count"])
        assert options.resolve_sort_field("view_count") == "view_count"

    def test_unknown_sort_field_falls_back(self) -> None:
        options = ListOptions(sort_fields=["view_count"], default_sort_field="published_at")
        assert options.resolve_sort_field("password") == "published_at"

    def test_missing_sort_field_falls_back(self) -> None:
        assert ListOptions().resolve_sort_field(None) == "created_at"
