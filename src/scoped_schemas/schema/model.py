"""Schema data model.

A Schema is the identity of one parsed schema document: where it came from,
which namespace it defines and which other documents it pulls in. Schemas are
frozen so a SchemaSet can be shared by concurrent readers; rewrites produce new
values via dataclasses.replace.
"""

import posixpath
from collections.abc import Callable
from dataclasses import dataclass, field


# --- Data Model ---


@dataclass(frozen=True)
class SchemaReference:
    """A sub-reference from one schema document to another."""

    kind: str  # "include" | "import" | "redefine" | "override"
    raw_location: str  # schemaLocation exactly as written
    location: str  # Resolved against the referring schema's canonical location
    namespace: str | None = None  # Only set for imports


@dataclass(frozen=True)
class Schema:
    """A parsed schema document within one scope generation.

    canonical_location is assigned once by the graph builder and is the
    deduplication key. location is the externally advertised address, equal to
    canonical_location until a transformer rewrites it.
    """

    canonical_location: str
    location: str
    namespace: str | None = None
    namespace_prefix: str | None = None
    references: tuple[SchemaReference, ...] = ()
    element_names: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        """Final path segment of the canonical location, e.g. ``beans.xsd``."""
        return posixpath.basename(self.canonical_location.rstrip("/"))

    @property
    def sub_references(self) -> tuple[str, ...]:
        """Resolved locations of every sub-reference, in document order."""
        return tuple(ref.location for ref in self.references)

    def __repr__(self) -> str:
        return f"Schema(location={self.location!r}, namespace={self.namespace!r})"


@dataclass(frozen=True)
class SchemaSource:
    """A raw schema source found while enumerating a root.

    read() returns the raw bytes, or raises SchemaNotFoundError when the
    source disappeared or cannot be read.
    """

    location: str
    read: Callable[[], bytes] = field(compare=False, repr=False)
