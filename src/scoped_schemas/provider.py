"""Schema provider: the query surface used by host integrations.

Every query first finds the owning scope through the ScopeResolver, then asks
the ScopeCache for that scope's SchemaSet. Queries never raise for resolution
problems. An unknown scope, a failed build or an unknown reference all become
None or an empty set, with the reason reported to the event sink.
"""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from scoped_schemas.config import ScopedSchemasConfig
from scoped_schemas.events import EventSink, LoguruEventSink
from scoped_schemas.schema.builder import SchemaGraphBuilder
from scoped_schemas.schema.cache import CacheEntry, ScopeCache
from scoped_schemas.schema.errors import (
    AmbiguousLocationError,
    SchemaError,
    SchemaNotFoundError,
)
from scoped_schemas.schema.index import SchemaSet
from scoped_schemas.schema.model import Schema
from scoped_schemas.schema.parser import SchemaParser, XsdSchemaParser
from scoped_schemas.schema.resolver import FileSystemResourceResolver, ResourceResolver
from scoped_schemas.schema.transform import TransformPipeline, add_prefix_transformer
from scoped_schemas.scope import Scope, ScopeLike, ScopeRegistry, ScopeResolver

# Document kinds eligible for schema resolution
SUPPORTED_SUFFIXES = frozenset({".xml", ".xsd"})


@dataclass(frozen=True)
class SchemaDocument:
    """A materialized schema document.

    text is the schema source with its sub-reference locations pointing at
    the advertised locations of the referenced schemas.
    """

    scope: Scope
    schema: Schema
    text: str

    @property
    def location(self) -> str:
        return self.schema.location


type DocumentFactory = Callable[[Scope, Schema, str], Any]


class SchemaProvider:
    """Resolve schema references per scope.

    Args:
        scope_resolver: Finds the scope owning a document
        cache: Per-scope SchemaSet cache
        resource_resolver: Loads raw schema content for materialization
        parser: Dialect parser used to rewrite sub-references
        events: Diagnostic sink
        document_factory: Builds the host's document object from
            (scope, schema, text); defaults to SchemaDocument
    """

    def __init__(
        self,
        scope_resolver: ScopeResolver,
        cache: ScopeCache,
        resource_resolver: ResourceResolver,
        parser: SchemaParser,
        events: Optional[EventSink] = None,
        document_factory: DocumentFactory = SchemaDocument,
    ) -> None:
        self.scope_resolver = scope_resolver
        self.cache = cache
        self.resource_resolver = resource_resolver
        self.parser = parser
        self.events = events or LoguruEventSink()
        self.document_factory = document_factory

    @property
    def registry(self) -> ScopeRegistry:
        return self.scope_resolver.registry

    # --- Host-facing queries ---

    def is_available(self, document: Any) -> bool:
        """Whether a document is eligible for schema resolution."""
        if isinstance(document, SchemaDocument):
            return True
        path = document if isinstance(document, (str, Path)) else getattr(document, "path", None)
        return path is not None and Path(path).suffix.lower() in SUPPORTED_SUFFIXES

    def get_schema(
        self,
        ref: str,
        scope_hint: Optional[ScopeLike] = None,
        base_document: Any = None,
    ) -> Any:
        """Resolve a namespace or location to a materialized document.

        Args:
            ref: Namespace URI or schemaLocation; may be empty
            scope_hint: Optional scope to resolve in
            base_document: Document containing the reference

        Returns:
            The materialized document, or None if it cannot be resolved
        """
        # The reference may be an empty namespace
        if not ref or not ref.strip():
            return None

        scope = self._find_scope(scope_hint, base_document)
        if scope is None:
            return None

        logger.debug(f"Loading {ref} within {base_document} in scope {scope}")

        schema = self.resolve(scope, ref)
        if schema is None:
            return None

        try:
            document = self.materialize(scope, schema)
        except SchemaError as e:
            self.events.emit(
                "source.not_found",
                {"scope": str(scope), "location": schema.location, "reason": str(e)},
            )
            return None

        logger.debug(f"  - returns {schema.location}")
        return document

    def available_namespaces(
        self,
        document: Any,
        tag_filter: Optional[str] = None,
        scope_hint: Optional[ScopeLike] = None,
    ) -> set[str]:
        """Namespaces known in the document's scope.

        With tag_filter, only namespaces whose schemas declare a top-level
        element of that name (prefix ignored) are returned.
        """
        schema_set = self._schema_set(self._find_scope(scope_hint, document))
        if schema_set is None:
            return set()

        if not tag_filter:
            return set(schema_set.namespaces)

        local_name = tag_filter.rsplit(":", 1)[-1]
        return {
            namespace
            for namespace in schema_set.namespaces
            if any(local_name in s.element_names for s in schema_set.by_namespace(namespace))
        }

    def default_prefix(
        self, namespace: str, context: Any, scope_hint: Optional[ScopeLike] = None
    ) -> Optional[str]:
        """Display prefix of the first schema defining the namespace."""
        schema_set = self._schema_set(self._find_scope(scope_hint, context))
        if schema_set is None:
            return None

        schema = schema_set.first_for_namespace(namespace)
        return schema.namespace_prefix if schema else None

    def locations(
        self, namespace: str, context: Any, scope_hint: Optional[ScopeLike] = None
    ) -> Optional[set[str]]:
        """Advertised locations of every schema defining the namespace."""
        schema_set = self._schema_set(self._find_scope(scope_hint, context))
        if schema_set is None:
            return None

        schemas = schema_set.by_namespace(namespace)
        if not schemas:
            return None
        return {schema.location for schema in schemas}

    # --- Scope-level operations ---

    def resolve(self, scope: ScopeLike, ref: str) -> Optional[Schema]:
        """Resolve a reference within a known scope.

        Resolution order:
        1. Namespace: first schema defining it, in builder order
        2. Location: exact or unique-suffix match

        Returns:
            The Schema, or None if empty, unknown or ambiguous
        """
        if not ref or not ref.strip():
            return None

        schema_set = self._schema_set(scope)
        if schema_set is None:
            return None

        # Case 1: ref is a namespace
        schema = schema_set.first_for_namespace(ref)
        if schema is not None:
            return schema

        # Case 2: ref is a schema location
        try:
            return schema_set.lookup_location(ref)
        except AmbiguousLocationError as e:
            self.events.emit(
                "location.ambiguous",
                {"scope": str(scope), "location": ref, "candidates": e.candidates},
            )
        except SchemaNotFoundError:
            self.events.emit("location.not_found", {"scope": str(scope), "location": ref})
        return None

    def materialize(self, scope: ScopeLike, schema: Schema) -> Any:
        """Produce the document for a resolved schema.

        Documents are memoized per cache generation, so repeated calls for a
        schema of the current generation return the same object.

        Raises:
            SchemaNotFoundError: If the schema's source can no longer be read.
        """
        scope = scope if isinstance(scope, Scope) else Scope(scope)
        entry = self._entry_containing(scope, schema)
        schema_set = entry.schema_set if entry else SchemaSet([schema])

        if entry is not None:
            cached = entry.documents.get(schema.canonical_location)
            if cached is not None:
                return cached

        content = self.resource_resolver.load(schema.canonical_location)
        text = self.parser.decode(content)

        replacements = {}
        for ref in schema.references:
            target = schema_set.by_canonical_location(ref.location)
            if target is not None:
                replacements[ref.raw_location] = target.location

        text = self.parser.rewrite_references(text, replacements)
        document = self.document_factory(scope, schema, text)

        if entry is not None:
            document = entry.documents.setdefault(schema.canonical_location, document)
        return document

    def schemas(self, scope: ScopeLike) -> tuple[Schema, ...]:
        """Every schema in the scope, in builder order."""
        schema_set = self._schema_set(scope)
        return schema_set.schemas if schema_set is not None else ()

    def remove_scope(self, scope: ScopeLike) -> None:
        """Forget a scope that no longer exists."""
        scope = scope if isinstance(scope, Scope) else Scope(scope)
        self.registry.remove(scope)
        self.cache.drop(scope)

    # --- Internals ---

    def _find_scope(self, hint: Optional[ScopeLike], document: Any) -> Optional[Scope]:
        resolved = self.scope_resolver.resolve(hint, document)
        if not resolved.is_resolved:
            self.events.emit("scope.not_found", {"document": str(document), "reason": resolved.reason})
            return None
        return resolved.scope

    def _entry(self, scope: Optional[ScopeLike]) -> Optional[CacheEntry]:
        if scope is None:
            return None
        scope = scope if isinstance(scope, Scope) else Scope(scope)
        try:
            return self.cache.get_entry(scope)
        except SchemaError as e:
            self.events.emit("scope.unavailable", {"scope": str(scope), "error": str(e)})
            return None

    def _schema_set(self, scope: Optional[ScopeLike]) -> Optional[SchemaSet]:
        entry = self._entry(scope)
        return entry.schema_set if entry else None

    def _entry_containing(self, scope: Scope, schema: Schema) -> Optional[CacheEntry]:
        entry = self._entry(scope)
        if entry is not None and schema in entry.schema_set:
            return entry
        return None


def create_provider(
    config: ScopedSchemasConfig,
    registry: Optional[ScopeRegistry] = None,
    events: Optional[EventSink] = None,
) -> SchemaProvider:
    """Wire the standard provider stack from config.

    Schemas are read from the filesystem, parsed as XML Schema, and
    advertised under ``config.external_prefix``.
    """
    registry = registry or ScopeRegistry.from_config(config)
    events = events or LoguruEventSink()

    resolver = FileSystemResourceResolver(
        registry,
        suffixes=config.schema_suffixes,
        ignore_patterns=config.ignore_patterns,
        events=events,
    )
    parser = XsdSchemaParser()
    builder = SchemaGraphBuilder(resolver, parser, events)
    pipeline = TransformPipeline([add_prefix_transformer(config.external_prefix)])

    def compute(scope: Scope) -> SchemaSet:
        return pipeline.apply(builder.build(scope))

    cache = ScopeCache(compute, registry.current_token, events)
    return SchemaProvider(ScopeResolver(registry), cache, resolver, parser, events)
