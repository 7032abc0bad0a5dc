"""
Exceptions raised while discovering, indexing and resolving schemas.
"""


class SchemaError(Exception):
    """Base exception for all schema resolution errors."""

    pass


class SchemaNotFoundError(SchemaError):
    """Raised when a single schema source cannot be read or located."""

    def __init__(self, location: str, reason: str | None = None):
        self.location = location
        self.reason = reason
        message = f"Schema not found: {location}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class MalformedSchemaError(SchemaError):
    """Raised when a schema source cannot be parsed."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Malformed schema {location}: {reason}")


class AmbiguousLocationError(SchemaError):
    """Raised when a partial location matches more than one schema."""

    def __init__(self, location: str, candidates: list[str]):
        self.location = location
        self.candidates = candidates
        super().__init__(
            f"Location {location!r} is ambiguous, matches: {', '.join(candidates)}"
        )


class NoScopeError(SchemaError):
    """Raised when a query cannot be associated with any scope."""

    pass


class SchemaBuildError(SchemaError):
    """Raised when a scope's schema set cannot be built as a whole."""

    pass


class ConflictingLocationError(SchemaBuildError):
    """Raised when two schemas claim the same location."""

    def __init__(self, location: str, first: str, second: str):
        self.location = location
        self.first = first
        self.second = second
        super().__init__(
            f"Location {location!r} claimed by both {first} and {second}"
        )
