"""
Normalized document cache for GraphQL results.

Objects that carry a `__typename` and an `id` are stored once under an
entity key (`Post:12`) and referenced from wherever they appear, so an update
to one entity shows up in every cached query that contains it. Root query
fields are stored on the `Query` record under a field key built from the
field name and its arguments.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..logging import get_logger

logger = get_logger(__name__)

ROOT = "Query"


class CacheMiss(LookupError):
    """Raised when a query cannot be answered from the cache alone."""


@dataclass(frozen=True)
class Ref:
    """Link from a stored value to an entity record."""

    key: str


@dataclass(frozen=True)
class FieldInfo:
    field_name: str
    arguments: dict[str, Any] | None
    field_key: str


KeyFn = Callable[[dict[str, Any]], Any]
Resolver = Callable[["NormalizedCache", str, dict[str, Any] | None], Any]


def field_key(field_name: str, arguments: dict[str, Any] | None = None) -> str:
    """Build the storage key for a field, e.g. `posts({"cursor":null,"limit":10})`."""
    if not arguments:
        return field_name
    encoded = json.dumps(arguments, sort_keys=True, separators=(",", ":"))
    return f"{field_name}({encoded})"


class NormalizedCache:
    """In-memory normalized cache.

    Args:
        keys: Per-typename key functions. A function returning None marks the
            type as unkeyed, so its objects are stored embedded in the parent.
        resolvers: Per-root-field read resolvers, used instead of a plain
            lookup when reading that field.
    """

    def __init__(
        self,
        keys: dict[str, KeyFn] | None = None,
        resolvers: dict[str, Resolver] | None = None,
    ):
        self.keys = keys or {}
        self.resolvers = resolvers or {}
        self.records: dict[str, dict[str, Any]] = {ROOT: {}}
        self._arguments: dict[tuple[str, str], dict[str, Any] | None] = {}

    def key_of(self, data: dict[str, Any]) -> str | None:
        """Entity key for an object, or None when it should be embedded."""
        typename = data.get("__typename")
        if typename is None:
            return None
        if typename in self.keys:
            custom = self.keys[typename](data)
            return None if custom is None else f"{typename}:{custom}"
        if data.get("id") is None:
            return None
        return f"{typename}:{data['id']}"

    # Writing

    def _normalize(self, value: Any) -> Any:
        if isinstance(value, list):
            return [self._normalize(item) for item in value]
        if isinstance(value, dict):
            fields = {name: self._normalize(item) for name, item in value.items()}
            key = self.key_of(value)
            if key is None:
                return fields
            self.records.setdefault(key, {}).update(fields)
            return Ref(key)
        return value

    def write_entities(self, value: Any) -> None:
        """Merge every keyed entity found in `value` into the cache."""
        self._normalize(value)

    def write_query(
        self, field_name: str, arguments: dict[str, Any] | None, value: Any
    ) -> None:
        """Store the result of a root query field."""
        key = field_key(field_name, arguments)
        self.records[ROOT][key] = self._normalize(value)
        self._arguments[(ROOT, key)] = arguments or None

    def write_fragment(self, typename: str, id: Any, values: dict[str, Any]) -> None:
        """Merge `values` into the `typename:id` entity, creating it if needed."""
        key = f"{typename}:{id}"
        fields = {name: self._normalize(item) for name, item in values.items()}
        self.records.setdefault(key, {}).update(fields)

    # Reading

    def denormalize(self, value: Any) -> Any:
        """Follow entity links in a stored value.

        Raises:
            CacheMiss: A linked entity is no longer cached.
        """
        if isinstance(value, Ref):
            record = self.records.get(value.key)
            if record is None:
                raise CacheMiss(value.key)
            return self.denormalize(record)
        if isinstance(value, list):
            return [self.denormalize(item) for item in value]
        if isinstance(value, dict):
            return {name: self.denormalize(item) for name, item in value.items()}
        return value

    def read_query(
        self, field_name: str, arguments: dict[str, Any] | None = None
    ) -> Any:
        """Read a root query field.

        Raises:
            CacheMiss: The field, or an entity it links to, is not cached.
        """
        resolver = self.resolvers.get(field_name)
        if resolver is not None:
            result = resolver(self, field_name, arguments)
            if result is None:
                raise CacheMiss(field_key(field_name, arguments))
            return result

        key = field_key(field_name, arguments)
        if key not in self.records[ROOT]:
            raise CacheMiss(key)
        return self.denormalize(self.records[ROOT][key])

    def read_fragment(
        self, typename: str, id: Any, fields: list[str]
    ) -> dict[str, Any] | None:
        """Read selected fields of an entity, or None if any of them is missing."""
        record = self.records.get(f"{typename}:{id}")
        if record is None or any(name not in record for name in fields):
            return None
        try:
            return {name: self.denormalize(record[name]) for name in fields}
        except CacheMiss:
            return None

    def resolve(self, entity_key: str, field: str) -> Any:
        """Raw value of one field; links are returned as entity keys."""
        record = self.records.get(entity_key)
        if record is None:
            return None
        value = record.get(field)
        if isinstance(value, Ref):
            return value.key
        return value

    def inspect_fields(self, entity_key: str) -> list[FieldInfo]:
        """List the fields cached on an entity (or on `Query`)."""
        record = self.records.get(entity_key, {})
        infos = []
        for key in record:
            name = key.split("(", 1)[0]
            infos.append(FieldInfo(name, self._arguments.get((entity_key, key)), key))
        return infos

    # Mutating

    def invalidate(
        self,
        entity_key: str,
        field_name: str | None = None,
        arguments: dict[str, Any] | None = None,
    ) -> None:
        """Drop an entity, or one of its fields.

        With only `field_name`, every cached variant of that field is dropped.
        """
        if field_name is None:
            if entity_key == ROOT:
                self.records[ROOT] = {}
            else:
                self.records.pop(entity_key, None)
            self._arguments = {
                k: v for k, v in self._arguments.items() if k[0] != entity_key
            }
            logger.debug("Invalidated cache entity", entity=entity_key)
            return

        record = self.records.get(entity_key)
        if record is None:
            return
        if arguments is not None:
            targets = [field_key(field_name, arguments)]
        else:
            targets = [
                info.field_key
                for info in self.inspect_fields(entity_key)
                if info.field_name == field_name
            ]
        for key in targets:
            record.pop(key, None)
            self._arguments.pop((entity_key, key), None)
        logger.debug(
            "Invalidated cache field", entity=entity_key, field=field_name, count=len(targets)
        )

    def update_query(
        self,
        field_name: str,
        arguments: dict[str, Any] | None,
        updater: Callable[[Any], Any],
    ) -> None:
        """Replace a root field with `updater(current)`.

        `current` is None when the field is not cached.
        """
        try:
            current = self.read_query(field_name, arguments)
        except CacheMiss:
            current = None
        self.write_query(field_name, arguments, updater(current))


def cursor_pagination(
    cache: NormalizedCache, field_name: str, arguments: dict[str, Any] | None
) -> dict[str, Any] | None:
    """Merge every cached page of a cursor-paginated field.

    Returns None unless the requested page itself is cached. Pages are merged
    in the order they were fetched, and entries whose entity has been
    invalidated are left out.
    """
    requested = field_key(field_name, arguments)
    infos = [
        info for info in cache.inspect_fields(ROOT) if info.field_name == field_name
    ]
    if not any(info.field_key == requested for info in infos):
        return None

    has_more = True
    posts: list[Any] = []
    typename = None
    for info in infos:
        page = cache.records[ROOT][info.field_key]
        typename = page.get("__typename", typename)
        if not page.get("hasMore", False):
            has_more = False
        for item in page.get("posts", []):
            try:
                posts.append(cache.denormalize(item))
            except CacheMiss:
                continue

    return {"__typename": typename or "PaginatedPosts", "hasMore": has_more, "posts": posts}


def create_cache() -> NormalizedCache:
    """Cache configured for the Repostit schema."""
    return NormalizedCache(
        keys={"PaginatedPosts": lambda data: None},
        resolvers={"posts": cursor_pagination},
    )
