"""Transform pipeline for schema sets.

Transformers are pure functions SchemaSet -> SchemaSet. The pipeline applies
them in registration order and only hands back the final result, so a
partially transformed set is never published.
"""

from collections.abc import Callable, Iterable
from dataclasses import replace

from loguru import logger

from scoped_schemas.schema.index import SchemaSet


type SchemaTransformer = Callable[[SchemaSet], SchemaSet]


def add_prefix_transformer(prefix: str) -> SchemaTransformer:
    """Advertise every schema at ``prefix + schema.name``.

    The name comes from the canonical location, which transforms never
    touch, so applying the same prefix twice gives the same locations.

    Raises (when applied):
        ConflictingLocationError: If two schemas end up with the same name.
    """

    def transform(schema_set: SchemaSet) -> SchemaSet:
        return SchemaSet(
            replace(schema, location=f"{prefix}{schema.name}") for schema in schema_set
        )

    transform.__name__ = f"add_prefix({prefix})"
    return transform


class TransformPipeline:
    """Ordered list of schema set transformers."""

    def __init__(self, transformers: Iterable[SchemaTransformer] = ()) -> None:
        self._transformers: list[SchemaTransformer] = list(transformers)

    def add(self, transformer: SchemaTransformer) -> "TransformPipeline":
        self._transformers.append(transformer)
        return self

    @property
    def transformers(self) -> tuple[SchemaTransformer, ...]:
        return tuple(self._transformers)

    def __len__(self) -> int:
        return len(self._transformers)

    def apply(self, schema_set: SchemaSet) -> SchemaSet:
        """Run every transformer in order and return the final set.

        Any exception from a transformer propagates; the input set is left
        untouched either way.
        """
        result = schema_set
        for transformer in self._transformers:
            logger.trace(f"Applying transformer {getattr(transformer, '__name__', transformer)}")
            result = transformer(result)
        return result
