"""
Filter / sort / paginate over a collection.

Pagination is offset based with 1-indexed pages. ``limit`` takes precedence
over the legacy ``show`` alias; a missing or non-positive value falls through
to the next one and finally to DEFAULT_PAGE_LIMIT.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection

import settings
from errors import ValidationFailed


@dataclass
class ListingQuery:
    page: int = 1
    limit: int = settings.DEFAULT_PAGE_LIMIT
    filters: Dict[str, Any] = field(default_factory=dict)
    sort: Optional[Tuple[str, int]] = None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def sort_spec(self) -> List[Tuple[str, int]]:
        if not self.sort:
            return [("_id", ASCENDING)]
        if self.sort[0] == "_id":
            return [self.sort]
        # _id tiebreak in the same direction keeps pages stable
        return [self.sort, ("_id", self.sort[1])]


def csv_values(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def resolve_page(page: Optional[int]) -> int:
    return page if page and page > 0 else 1


def resolve_limit(limit: Optional[int], show: Optional[int]) -> int:
    for candidate in (limit, show):
        if candidate and candidate > 0:
            return candidate
    return settings.DEFAULT_PAGE_LIMIT


def resolve_sort(
    sort_by: Optional[str],
    sort_order: Optional[str],
    sortable: Dict[str, str],
    default: Optional[Tuple[str, int]] = None,
) -> Optional[Tuple[str, int]]:
    """Map a public sort field (stored name or camelCase alias) to a (field, direction) pair."""
    if not sort_by:
        return default
    if sort_by not in sortable:
        allowed = ", ".join(sorted(set(sortable)))
        raise ValidationFailed(f"Cannot sort by '{sort_by}'. Allowed: {allowed}")
    direction = DESCENDING if (sort_order or "").lower() == "desc" else ASCENDING
    return sortable[sort_by], direction


def build_query(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    show: Optional[int] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    sortable: Optional[Dict[str, str]] = None,
    default_sort: Optional[Tuple[str, int]] = None,
    equals: Optional[Dict[str, Optional[str]]] = None,
    any_of: Optional[Dict[str, List[str]]] = None,
) -> ListingQuery:
    filters: Dict[str, Any] = {}
    for name, value in (equals or {}).items():
        if value:
            filters[name] = value
    for name, values in (any_of or {}).items():
        if values:
            filters[name] = {"$in": values}
    return ListingQuery(
        page=resolve_page(page),
        limit=resolve_limit(limit, show),
        filters=filters,
        sort=resolve_sort(sort_by, sort_order, sortable or {}, default_sort),
    )


def run_listing(collection: Collection, query: ListingQuery, serialize: Callable[[dict], dict]) -> dict:
    total = collection.count_documents(query.filters)
    cursor = (
        collection.find(query.filters)
        .sort(query.sort_spec())
        .skip(query.skip)
        .limit(query.limit)
    )
    return {
        "total": total,
        "page": query.page,
        "pages": math.ceil(total / query.limit),
        "limit": query.limit,
        "data": [serialize(doc) for doc in cursor],
    }
