"""Resource resolution for scoped-schemas.

A ResourceResolver answers three questions for the graph builder:
  1. Which roots does a scope search?     -> list_roots(scope)
  2. Which schema sources live in a root? -> enumerate(root), lazily
  3. What are the bytes at a location?    -> load(location)

No caching happens here. A root or source that cannot be read is reported and
skipped so one broken dependency never hides the rest of the scope.
"""

import os
import posixpath
import re
from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Protocol
from urllib.parse import unquote, urljoin, urlparse

import pathspec
from loguru import logger

from scoped_schemas.events import EventSink, LoguruEventSink
from scoped_schemas.schema.errors import SchemaNotFoundError
from scoped_schemas.schema.model import SchemaSource

if TYPE_CHECKING:
    from scoped_schemas.scope import Scope, ScopeRegistry  # pragma: no cover


# Two or more characters so Windows drive letters are not taken for schemes.
_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]+:")

DEFAULT_SUFFIXES = (".xsd",)

DEFAULT_IGNORE_PATTERNS = (
    ".git/",
    ".svn/",
    ".idea/",
    ".vscode/",
    "node_modules/",
    "__pycache__/",
    ".venv/",
    "target/classes/META-INF/maven/",
)


class ResourceResolver(Protocol):
    """Contract for enumerating and loading raw schema sources."""

    def list_roots(self, scope: "Scope") -> list[str]:
        """Ordered root locators searched for the scope."""
        ...

    def enumerate(self, root: str) -> Iterator[SchemaSource]:
        """Lazily yield every schema source under a root."""
        ...

    def load(self, location: str) -> bytes:
        """Return raw content at a location or raise SchemaNotFoundError."""
        ...


def has_scheme(location: str) -> bool:
    return bool(_SCHEME.match(location))


def canonical_path(path: str | Path) -> str:
    """Normalize a filesystem path into a canonical location string."""
    return posixpath.normpath(Path(path).absolute().as_posix())


def resolve_location(base: str, ref: str) -> str:
    """Resolve a raw sub-reference against the location of its referrer.

    Examples:
        ("/lib/a.xsd", "b.xsd")             -> "/lib/b.xsd"
        ("/lib/x/a.xsd", "../b.xsd")        -> "/lib/b.xsd"
        ("/lib/a.xsd", "/other/c.xsd")      -> "/other/c.xsd"
        ("/lib/a.xsd", "http://h/s/c.xsd")  -> "http://h/s/c.xsd"
        ("http://h/s/a.xsd", "c.xsd")       -> "http://h/s/c.xsd"
        ("/lib/a.xsd", "file:///lib/b.xsd") -> "/lib/b.xsd"
        ("/lib/a.xsd", "my%20types.xsd")    -> "/lib/my types.xsd"

    Local files always come back as plain normalized paths, the same form
    root enumeration produces, so one file has one location.
    """
    ref = ref.strip()

    if has_scheme(ref):
        parsed = urlparse(ref)
        if parsed.scheme == "file":
            return posixpath.normpath(unquote(parsed.path))
        return ref

    if has_scheme(base):
        return urljoin(base, ref)

    # schemaLocation is a URI reference
    ref = unquote(ref)

    if ref.startswith("/"):
        return posixpath.normpath(ref)

    return posixpath.normpath(posixpath.join(posixpath.dirname(base), ref))


class FileSystemResourceResolver:
    """ResourceResolver over local directories and files.

    Roots come from the scope registry's dependency roots. Directories are
    walked in sorted order so enumeration order, and therefore which
    duplicate wins, is deterministic.
    """

    def __init__(
        self,
        registry: "ScopeRegistry",
        suffixes: tuple[str, ...] | list[str] = DEFAULT_SUFFIXES,
        ignore_patterns: tuple[str, ...] | list[str] = DEFAULT_IGNORE_PATTERNS,
        events: EventSink | None = None,
    ) -> None:
        self.registry = registry
        self.suffixes = tuple(s.lower() for s in suffixes)
        self.ignore_spec = pathspec.PathSpec.from_lines("gitwildmatch", list(ignore_patterns))
        self.events = events or LoguruEventSink()

    def list_roots(self, scope: "Scope") -> list[str]:
        return [canonical_path(root) for root in self.registry.dependency_roots(scope)]

    def enumerate(self, root: str) -> Iterator[SchemaSource]:
        root_path = Path(root)

        if root_path.is_file():
            yield self._source(canonical_path(root_path))
            return

        if not root_path.is_dir():
            self.events.emit("source.not_found", {"location": root, "reason": "missing root"})
            return

        def on_error(error: OSError) -> None:
            self.events.emit(
                "source.not_found", {"location": str(error.filename), "reason": str(error)}
            )

        for dirpath, dirnames, filenames in os.walk(root_path, onerror=on_error):
            current = Path(dirpath)
            relative_dir = current.relative_to(root_path).as_posix()

            # Prune ignored directories in place so os.walk skips them
            dirnames[:] = sorted(
                d for d in dirnames if not self._ignored(_join(relative_dir, d) + "/")
            )

            for filename in sorted(filenames):
                if not filename.lower().endswith(self.suffixes):
                    continue
                if self._ignored(_join(relative_dir, filename)):
                    continue
                yield self._source(canonical_path(current / filename))

    def load(self, location: str) -> bytes:
        if has_scheme(location):
            parsed = urlparse(location)
            if parsed.scheme != "file":
                raise SchemaNotFoundError(location, "remote locations are not fetched")
            path = Path(unquote(parsed.path))
        else:
            path = Path(location)

        try:
            return path.read_bytes()
        except OSError as e:
            raise SchemaNotFoundError(location, e.strerror or str(e)) from e

    def _ignored(self, relative_path: str) -> bool:
        return self.ignore_spec.match_file(relative_path)

    def _source(self, location: str) -> SchemaSource:
        logger.trace(f"Found schema source {location}")
        return SchemaSource(location=location, read=lambda: self.load(location))


def _join(relative_dir: str, name: str) -> str:
    return name if relative_dir == "." else f"{relative_dir}/{name}"
