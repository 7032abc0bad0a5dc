"""Schema graph builder.

Discovers every schema reachable from a scope's roots:

  1. Seed a FIFO queue with every source of every root
     (root declaration order, then enumeration order)
  2. Pop a location; skip it if already visited, otherwise mark it visited
  3. Read and parse it; unreadable or malformed sources are reported and dropped
  4. Enqueue each sub-reference, loaded through the resolver

Marking before loading bounds the work to the number of distinct locations,
so cyclic includes terminate and the first discovery of a location wins.
"""

from collections import deque
from collections.abc import Callable
from dataclasses import replace

from loguru import logger

from scoped_schemas.events import EventSink, LoguruEventSink
from scoped_schemas.schema.errors import MalformedSchemaError, SchemaNotFoundError
from scoped_schemas.schema.index import SchemaSet
from scoped_schemas.schema.model import Schema
from scoped_schemas.schema.parser import SchemaParser
from scoped_schemas.schema.resolver import ResourceResolver


class SchemaGraphBuilder:
    """Build the pre-transform SchemaSet for a scope."""

    def __init__(
        self,
        resolver: ResourceResolver,
        parser: SchemaParser,
        events: EventSink | None = None,
    ) -> None:
        self.resolver = resolver
        self.parser = parser
        self.events = events or LoguruEventSink()

    def build(self, scope) -> SchemaSet:
        queue: deque[tuple[str, Callable[[], bytes], str | None]] = deque()

        for root in self.resolver.list_roots(scope):
            for source in self.resolver.enumerate(root):
                queue.append((source.location, source.read, None))

        visited: set[str] = set()
        absent: set[str] = set()
        schemas: list[Schema] = []
        missing = 0
        malformed = 0

        while queue:
            location, read, referrer = queue.popleft()
            if location in visited:
                continue
            visited.add(location)

            try:
                schema = self.parser.parse(location, read())
            except SchemaNotFoundError as e:
                missing += 1
                absent.add(location)
                self.events.emit(
                    "source.not_found",
                    {"location": location, "referrer": referrer, "reason": e.reason},
                )
                continue
            except MalformedSchemaError as e:
                malformed += 1
                absent.add(location)
                self.events.emit("schema.malformed", {"location": location, "reason": e.reason})
                continue

            schemas.append(schema)

            for sub_location in schema.sub_references:
                if sub_location not in visited:
                    queue.append((sub_location, self._loader(sub_location), location))

        # Referrers keep only the sub-references that made it into the set
        if absent:
            schemas = [_drop_references(schema, absent) for schema in schemas]

        logger.debug(
            f"Built schema graph for {scope}: {len(schemas)} schemas, "
            f"{missing} missing, {malformed} malformed"
        )
        self.events.emit(
            "schemas.built",
            {
                "scope": str(scope),
                "schemas": len(schemas),
                "missing": missing,
                "malformed": malformed,
            },
        )
        return SchemaSet(schemas)

    def _loader(self, location: str) -> Callable[[], bytes]:
        return lambda: self.resolver.load(location)


def _drop_references(schema: Schema, absent: set[str]) -> Schema:
    """Remove sub-references that could not be loaded or parsed."""
    kept = tuple(ref for ref in schema.references if ref.location not in absent)
    if len(kept) == len(schema.references):
        return schema
    return replace(schema, references=kept)
