import mongomock
import pytest
from pymongo import ASCENDING, DESCENDING

from ewa_backend.pagination import (
    PopulateSpec,
    build_pagination_response,
    build_text_search_query,
    combine_filters,
    paginate_query,
    parse_pagination_params,
    parse_search_params,
)


@pytest.mark.parametrize("raw_page", ["0", "-4", "abc", None, ""])
def test_page_below_one_or_unparsable_uses_first_page(raw_page):
    params = parse_pagination_params({"page": raw_page})
    assert params["page"] == 1
    assert params["skip"] == 0


def test_limit_is_clamped_to_max_limit():
    assert parse_pagination_params({"limit": "500"})["limit"] == 100
    assert parse_pagination_params({"limit": "500"}, max_limit=25)["limit"] == 25


def test_limit_falls_back_to_default_and_never_drops_below_one():
    assert parse_pagination_params({})["limit"] == 10
    assert parse_pagination_params({"limit": "many"}, default_limit=20)["limit"] == 20
    assert parse_pagination_params({"limit": "-3"})["limit"] == 1


def test_skip_follows_page_and_limit():
    params = parse_pagination_params({"page": "3", "limit": "15"})
    assert params == {"page": 3, "limit": 15, "skip": 30}


def test_leading_digits_are_read_like_a_query_string_integer():
    assert parse_pagination_params({"page": "2abc", "limit": "7.9"}) == {
        "page": 2,
        "limit": 7,
        "skip": 7,
    }


def test_sort_order_only_ascending_for_asc():
    assert parse_search_params({"sortOrder": "asc"})["sort_order"] == ASCENDING
    assert parse_search_params({"sortOrder": "ASC"})["sort_order"] == DESCENDING
    assert parse_search_params({})["sort_order"] == DESCENDING
    assert parse_search_params({})["sort_by"] == "createdAt"


def test_pagination_envelope_for_last_page():
    assert build_pagination_response(2, 15, 10) == {
        "currentPage": 2,
        "totalPages": 2,
        "totalItems": 15,
        "itemsPerPage": 10,
        "hasNextPage": False,
        "hasPrevPage": True,
    }


def test_pagination_envelope_for_empty_result():
    envelope = build_pagination_response(3, 0, 10)
    assert envelope["totalPages"] == 0
    assert envelope["hasNextPage"] is False
    assert envelope["hasPrevPage"] is True


def test_empty_search_term_matches_everything():
    assert build_text_search_query("", ["name"]) == {}
    assert build_text_search_query("   ", ["name"]) == {}


def test_search_term_is_escaped_and_case_insensitive():
    query = build_text_search_query("c++ (new)", ["name", "description"])
    assert [list(clause) for clause in query["$or"]] == [["name"], ["description"]]
    regex = query["$or"][0]["name"]
    assert regex.search("Learning C++ (NEW) edition")
    assert not regex.search("c plus plus")


def test_combine_filters_skips_empty_parts():
    assert combine_filters({}, None) == {}
    assert combine_filters({"a": 1}, {}) == {"a": 1}
    assert combine_filters({"a": 1}, {"b": 2}) == {"$and": [{"a": 1}, {"b": 2}]}


@pytest.fixture
def store():
    database = mongomock.MongoClient().pagination_test
    brand_id = database.brands.insert_one({"name": "Acme", "country": "US"}).inserted_id
    category_ids = database.categories.insert_many(
        [{"name": "Phones"}, {"name": "Tablets"}]
    ).inserted_ids
    database.products.insert_many(
        [
            {
                "name": f"Item {index:02d}",
                "rank": index,
                "proBrand": brand_id,
                "proCategories": list(category_ids),
            }
            for index in range(15)
        ]
    )
    return database


def test_paginate_query_returns_requested_slice(store):
    page = paginate_query(
        store.products, {"page": "2", "limit": "10", "sortBy": "rank", "sortOrder": "asc"}
    )
    assert [item["rank"] for item in page["data"]] == [10, 11, 12, 13, 14]
    assert page["pagination"]["totalItems"] == 15
    assert page["pagination"]["totalPages"] == 2
    assert page["pagination"]["hasNextPage"] is False


def test_paginate_query_counts_only_matching_documents(store):
    search = build_text_search_query("item 1", ["name"])
    page = paginate_query(store.products, {"limit": "3"}, search)
    assert page["pagination"]["totalItems"] == 5
    assert len(page["data"]) == 3
    assert page["pagination"]["hasNextPage"] is True


def test_paginate_query_populates_references_in_sequence(store):
    page = paginate_query(
        store.products,
        {"limit": "1"},
        populate=(
            PopulateSpec("proBrand", store.brands, ("name",)),
            PopulateSpec("proCategories", store.categories, None),
        ),
    )
    product = page["data"][0]
    assert product["proBrand"]["name"] == "Acme"
    assert "country" not in product["proBrand"]
    assert [category["name"] for category in product["proCategories"]] == ["Phones", "Tablets"]
