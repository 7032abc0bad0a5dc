"""Namespace and location indexes over one scope's schemas.

A SchemaSet is built in a single pass and never changes afterwards. Transforms
produce new SchemaSets, so a reader holding an old one keeps a consistent view
while the cache publishes a newer generation.
"""

from collections.abc import Iterable, Iterator

from scoped_schemas.schema.errors import (
    AmbiguousLocationError,
    ConflictingLocationError,
    SchemaError,
    SchemaNotFoundError,
)
from scoped_schemas.schema.model import Schema


class SchemaSet:
    """All schemas discovered for one scope generation, with lookup indexes.

    Indexes:
      namespace          -> tuple of Schemas, in builder order
      location           -> Schema (advertised location, unique)
      canonical location -> Schema (unique)

    Raises:
        ConflictingLocationError: If two schemas share an advertised or a
            canonical location.
    """

    def __init__(self, schemas: Iterable[Schema]) -> None:
        self._schemas: tuple[Schema, ...] = tuple(schemas)

        namespaces: dict[str, list[Schema]] = {}
        locations: dict[str, Schema] = {}
        canonical: dict[str, Schema] = {}

        for schema in self._schemas:
            _insert_unique(canonical, schema.canonical_location, schema)
            _insert_unique(locations, schema.location, schema)
            if schema.namespace:
                namespaces.setdefault(schema.namespace, []).append(schema)

        self._namespaces = {ns: tuple(items) for ns, items in namespaces.items()}
        self._locations = locations
        self._canonical = canonical

    # --- Collection ---

    @property
    def schemas(self) -> tuple[Schema, ...]:
        return self._schemas

    def __iter__(self) -> Iterator[Schema]:
        return iter(self._schemas)

    def __len__(self) -> int:
        return len(self._schemas)

    def __contains__(self, schema: object) -> bool:
        return (
            isinstance(schema, Schema)
            and self._canonical.get(schema.canonical_location) == schema
        )

    def __repr__(self) -> str:
        return f"SchemaSet(schemas={len(self._schemas)}, namespaces={len(self._namespaces)})"

    # --- Namespace index ---

    @property
    def namespaces(self) -> list[str]:
        """Namespace keys in the order they were first seen."""
        return list(self._namespaces)

    def by_namespace(self, namespace: str) -> tuple[Schema, ...]:
        return self._namespaces.get(namespace, ())

    def first_for_namespace(self, namespace: str) -> Schema | None:
        """First schema (builder order) defining the namespace."""
        schemas = self._namespaces.get(namespace)
        return schemas[0] if schemas else None

    # --- Location index ---

    @property
    def locations(self) -> list[str]:
        return list(self._locations)

    def by_canonical_location(self, location: str) -> Schema | None:
        return self._canonical.get(location)

    def lookup_location(self, location: str) -> Schema:
        """Find the schema for a possibly partial location string.

        Lookup order:
        1. Exact advertised location
        2. Exact canonical location
        3. Unique schema whose advertised or canonical location ends with
           the given string on a path segment boundary (`a.xsd` matches
           `/lib/a.xsd` but not `/lib/beta.xsd`)

        Raises:
            SchemaNotFoundError: If nothing matches.
            AmbiguousLocationError: If the suffix matches several schemas.
        """
        if not location:
            raise SchemaNotFoundError(location, "empty location")

        schema = self._locations.get(location) or self._canonical.get(location)
        if schema is not None:
            return schema

        # Keyed by canonical location: a schema matching through both of its
        # locations is still one candidate
        candidates = {
            s.canonical_location: s
            for s in self._schemas
            if _ends_with_segments(s.location, location)
            or _ends_with_segments(s.canonical_location, location)
        }

        if len(candidates) == 1:
            return next(iter(candidates.values()))
        if candidates:
            raise AmbiguousLocationError(location, sorted(candidates))
        raise SchemaNotFoundError(location)

    def find_schema(self, location: str) -> Schema | None:
        """Like lookup_location, but returns None for missing or ambiguous locations."""
        try:
            return self.lookup_location(location)
        except SchemaError:
            return None


def _ends_with_segments(candidate: str, suffix: str) -> bool:
    if not candidate.endswith(suffix):
        return False
    if len(candidate) == len(suffix) or suffix.startswith("/"):
        return True
    return candidate[-len(suffix) - 1] == "/"


def _insert_unique(index: dict[str, Schema], key: str, schema: Schema) -> None:
    existing = index.get(key)
    if existing is not None and existing is not schema:
        raise ConflictingLocationError(key, existing.canonical_location, schema.canonical_location)
    index[key] = schema
