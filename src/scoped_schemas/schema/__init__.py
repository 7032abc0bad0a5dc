"""Schema discovery, indexing and caching for scoped-schemas.

Pipeline per scope: resolver -> graph builder -> transform pipeline -> SchemaSet,
published through the ScopeCache.
"""

from scoped_schemas.schema.errors import (
    AmbiguousLocationError,
    ConflictingLocationError,
    MalformedSchemaError,
    NoScopeError,
    SchemaBuildError,
    SchemaError,
    SchemaNotFoundError,
)
from scoped_schemas.schema.model import Schema, SchemaReference, SchemaSource
from scoped_schemas.schema.resolver import (
    FileSystemResourceResolver,
    ResourceResolver,
    resolve_location,
)
from scoped_schemas.schema.parser import SchemaParser, XsdSchemaParser
from scoped_schemas.schema.index import SchemaSet
from scoped_schemas.schema.builder import SchemaGraphBuilder
from scoped_schemas.schema.transform import (
    SchemaTransformer,
    TransformPipeline,
    add_prefix_transformer,
)
from scoped_schemas.schema.cache import CacheEntry, ScopeCache

__all__ = [
    # Errors
    "SchemaError",
    "SchemaNotFoundError",
    "MalformedSchemaError",
    "AmbiguousLocationError",
    "NoScopeError",
    "SchemaBuildError",
    "ConflictingLocationError",
    # Model
    "Schema",
    "SchemaReference",
    "SchemaSource",
    # Resolver
    "ResourceResolver",
    "FileSystemResourceResolver",
    "resolve_location",
    # Parser
    "SchemaParser",
    "XsdSchemaParser",
    # Index
    "SchemaSet",
    # Builder
    "SchemaGraphBuilder",
    # Transform
    "SchemaTransformer",
    "TransformPipeline",
    "add_prefix_transformer",
    # Cache
    "CacheEntry",
    "ScopeCache",
]
