import math
import re
from collections import namedtuple
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from pymongo import ASCENDING, DESCENDING

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
DEFAULT_SORT_FIELD = "createdAt"

_leading_int = re.compile(r"^\s*([+-]?\d+)")

# path: reference field on the paged documents; collection: where the
# referenced documents live; fields: projection applied to them (None keeps
# the whole document).
PopulateSpec = namedtuple("PopulateSpec", ["path", "collection", "fields"])


def _parse_int(value) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _leading_int.match(str(value))
    if not match:
        return None
    return int(match.group(1))


def parse_pagination_params(
    raw_query: Mapping, default_limit: int = DEFAULT_LIMIT, max_limit: int = MAX_LIMIT
) -> Dict[str, int]:
    page = max(_parse_int(raw_query.get("page")) or 1, 1)
    limit = min(max(_parse_int(raw_query.get("limit")) or default_limit, 1), max_limit)
    return {"page": page, "limit": limit, "skip": (page - 1) * limit}


def parse_search_params(raw_query: Mapping, default_sort: str = DEFAULT_SORT_FIELD) -> Dict:
    search = str(raw_query.get("search") or "").strip()
    sort_by = str(raw_query.get("sortBy") or "").strip() or default_sort
    sort_order = ASCENDING if raw_query.get("sortOrder") == "asc" else DESCENDING
    return {"search": search, "sort_by": sort_by, "sort_order": sort_order}


def build_pagination_response(current_page: int, total_items: int, items_per_page: int) -> Dict:
    total_pages = math.ceil(total_items / items_per_page) if items_per_page else 0
    return {
        "currentPage": current_page,
        "totalPages": total_pages,
        "totalItems": total_items,
        "itemsPerPage": items_per_page,
        "hasNextPage": current_page < total_pages,
        "hasPrevPage": current_page > 1,
    }


def build_text_search_query(search_term: Optional[str], fields: Sequence[str]) -> Dict:
    term = str(search_term or "").strip()
    if not term or not fields:
        return {}
    regex = re.compile(re.escape(term), re.IGNORECASE)
    return {"$or": [{field: regex} for field in fields]}


def combine_filters(*filters: Optional[Dict]) -> Dict:
    parts = [item for item in filters if item]
    if not parts:
        return {}
    if len(parts) == 1:
        return dict(parts[0])
    return {"$and": parts}


def _projection(fields: Optional[Iterable[str]]):
    if fields is None:
        return None
    return {name: 1 for name in fields if name not in ("_id", "id")}


def populate_documents(documents: List[Dict], populate: Sequence[PopulateSpec]) -> List[Dict]:
    for spec in populate:
        referenced_ids = set()
        for document in documents:
            value = document.get(spec.path)
            if isinstance(value, list):
                referenced_ids.update(item for item in value if item is not None)
            elif value is not None:
                referenced_ids.add(value)
        if not referenced_ids:
            continue

        cursor = spec.collection.find(
            {"_id": {"$in": list(referenced_ids)}}, _projection(spec.fields)
        )
        referenced = {item["_id"]: item for item in cursor}

        for document in documents:
            value = document.get(spec.path)
            if isinstance(value, list):
                document[spec.path] = [referenced[item] for item in value if item in referenced]
            elif value is not None:
                document[spec.path] = referenced.get(value)
    return documents


def paginate_query(
    collection,
    raw_query: Mapping,
    search_query: Optional[Dict] = None,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
    populate: Sequence[PopulateSpec] = (),
    default_sort: str = DEFAULT_SORT_FIELD,
) -> Dict:
    """Count, then fetch one sorted page of ``collection`` matching ``search_query``.

    The count and the page fetch are two separate reads, so a write landing
    between them can make the reported totals and the returned slice
    disagree.
    """
    search_query = search_query or {}
    params = parse_pagination_params(raw_query, default_limit, max_limit)
    search_params = parse_search_params(raw_query, default_sort)

    total_items = collection.count_documents(search_query)

    cursor = (
        collection.find(search_query)
        .sort(search_params["sort_by"], search_params["sort_order"])
        .skip(params["skip"])
        .limit(params["limit"])
    )
    data = populate_documents(list(cursor), populate)

    return {
        "data": data,
        "pagination": build_pagination_response(params["page"], total_items, params["limit"]),
    }
