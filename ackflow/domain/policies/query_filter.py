"""QueryFilterEngine — shared filter / sort / paginate for every listing path.

Predicates are combined with logical AND. Sorting is stable on a single key
with the record id as tie-break, and ``None`` values always sort last.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from ackflow.domain.errors import ValidationError

T = TypeVar("T")

Accessor = Callable[[Any, str], Any]

MAX_PAGE_SIZE = 500


def attribute_accessor(item: Any, name: str) -> Any:
    value = getattr(item, name)
    # Enums compare by their wire value so filters can use plain strings.
    return getattr(value, "value", value)


# ─── Predicates ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any

    def matches(self, item: Any, get: Accessor) -> bool:
        return get(item, self.field) == _plain(self.value)


@dataclass(frozen=True)
class In:
    field: str
    values: frozenset

    def matches(self, item: Any, get: Accessor) -> bool:
        return get(item, self.field) in {_plain(v) for v in self.values}


@dataclass(frozen=True)
class Range:
    """Inclusive range; either bound may be omitted."""

    field: str
    lower: Any = None
    upper: Any = None

    def matches(self, item: Any, get: Accessor) -> bool:
        value = get(item, self.field)
        if value is None:
            return False
        if self.lower is not None and value < self.lower:
            return False
        if self.upper is not None and value > self.upper:
            return False
        return True


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match against any of ``fields``."""

    fields: tuple[str, ...]
    text: str

    def matches(self, item: Any, get: Accessor) -> bool:
        needle = self.text.casefold()
        for name in self.fields:
            value = get(item, name)
            if value is not None and needle in str(value).casefold():
                return True
        return False


@dataclass(frozen=True)
class Has:
    """Membership of ``value`` in a collection-valued field (e.g. tags)."""

    field: str
    value: Any

    def matches(self, item: Any, get: Accessor) -> bool:
        return _plain(self.value) in (get(item, self.field) or ())


Predicate = Eq | In | Range | Contains | Has


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


# ─── Sort & page ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class SortSpec:
    key: str = "id"
    descending: bool = False


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    size: int = 20

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValidationError("page must be >= 1", page=self.page)
        if not 1 <= self.size <= MAX_PAGE_SIZE:
            raise ValidationError(
                f"size must be between 1 and {MAX_PAGE_SIZE}", size=self.size
            )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size


@dataclass
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    size: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.size) if self.total else 0


@dataclass
class Query:
    predicates: list[Predicate] = field(default_factory=list)
    sort: SortSpec = field(default_factory=SortSpec)
    page: PageRequest = field(default_factory=PageRequest)


# ─── Engine ──────────────────────────────────────────────────────────


def filter_items(
    items: Iterable[T],
    predicates: Sequence[Predicate],
    get: Accessor = attribute_accessor,
) -> list[T]:
    return [item for item in items if all(p.matches(item, get) for p in predicates)]


def sort_items(
    items: Iterable[T],
    sort: SortSpec,
    get: Accessor = attribute_accessor,
    id_field: str = "id",
) -> list[T]:
    """Stable sort on ``sort.key``; ids ascend among equal keys either way."""
    by_id = sorted(items, key=lambda item: get(item, id_field))
    present = [item for item in by_id if get(item, sort.key) is not None]
    missing = [item for item in by_id if get(item, sort.key) is None]
    present.sort(key=lambda item: get(item, sort.key), reverse=sort.descending)
    return present + missing


def paginate(items: Sequence[T], request: PageRequest) -> Page[T]:
    window = list(items[request.offset:request.offset + request.size])
    return Page(items=window, total=len(items), page=request.page, size=request.size)


def run_query(
    items: Iterable[T],
    query: Query,
    get: Accessor = attribute_accessor,
) -> Page[T]:
    matched = filter_items(items, query.predicates, get)
    ordered = sort_items(matched, query.sort, get)
    return paginate(ordered, query.page)
