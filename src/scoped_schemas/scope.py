"""Scopes and scope resolution.

A scope is a logical project unit (a module) whose schemas are cached
independently of every other scope. The ScopeRegistry records each scope's
content roots (which documents belong to it) and dependency roots (where its
schemas are searched), and hands out dependency tokens that change whenever
either is modified.

Scope lookup for a document follows an ordered fallback chain:

1. EXPLICIT: Scope hint passed directly to the query
2. MATERIALIZED: Document was produced by the provider and carries its scope
3. FILE: Document path lies under a scope's content root
4. FOLDER: Document's containing folder lies under a content root
5. NONE: No scope, queries degrade to empty results
"""

import threading
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from loguru import logger

from scoped_schemas.schema.errors import NoScopeError


@dataclass(frozen=True)
class Scope:
    """Opaque scope identity. Equal names are the same scope."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class DependencyToken:
    """Snapshot of the configuration a scope's schemas were built from."""

    scope_name: str
    modification_count: int
    dependency_roots: tuple[str, ...]


@dataclass(frozen=True)
class DocumentRef:
    """Minimal handle for a document the host wants resolved.

    Attributes:
        path: File path, or None for an unsaved buffer
        folder: Containing folder when the path is unknown
    """

    path: Optional[Path] = None
    folder: Optional[Path] = None


ScopeLike = Union[Scope, str]


@dataclass
class _ScopeState:
    content_roots: tuple[Path, ...]
    dependency_roots: tuple[Path, ...]
    modification_count: int = 0


class ScopeRegistry:
    """Thread-safe registry of scopes and their roots."""

    def __init__(self) -> None:
        self._scopes: dict[str, _ScopeState] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config) -> "ScopeRegistry":
        """Create a registry holding every scope declared in config.

        Args:
            config: ScopedSchemasConfig with a ``scopes`` mapping

        Returns:
            Populated ScopeRegistry
        """
        registry = cls()
        for name, scope_config in config.scopes.items():
            registry.register(
                name,
                content_roots=scope_config.content_roots,
                dependency_roots=scope_config.dependency_roots,
            )
        return registry

    def register(
        self,
        name: str,
        content_roots: Iterable[Union[str, Path]] = (),
        dependency_roots: Iterable[Union[str, Path]] = (),
    ) -> Scope:
        with self._lock:
            previous = self._scopes.get(name)
            self._scopes[name] = _ScopeState(
                content_roots=_paths(content_roots),
                dependency_roots=_paths(dependency_roots),
                # A re-registered scope must not reuse an old token
                modification_count=previous.modification_count + 1 if previous else 0,
            )
        logger.debug(f"Registered scope {name}")
        return Scope(name)

    def remove(self, scope: ScopeLike) -> bool:
        with self._lock:
            return self._scopes.pop(_name(scope), None) is not None

    def get(self, name: str) -> Optional[Scope]:
        with self._lock:
            return Scope(name) if name in self._scopes else None

    def scopes(self) -> list[Scope]:
        with self._lock:
            return [Scope(name) for name in self._scopes]

    def __contains__(self, scope: object) -> bool:
        if not isinstance(scope, (Scope, str)):
            return False
        with self._lock:
            return _name(scope) in self._scopes

    # --- Roots ---

    def dependency_roots(self, scope: ScopeLike) -> list[Path]:
        return list(self._state(scope).dependency_roots)

    def content_roots(self, scope: ScopeLike) -> list[Path]:
        return list(self._state(scope).content_roots)

    def set_dependency_roots(self, scope: ScopeLike, roots: Iterable[Union[str, Path]]) -> None:
        with self._lock:
            state = self._state_locked(scope)
            state.dependency_roots = _paths(roots)
            state.modification_count += 1

    def set_content_roots(self, scope: ScopeLike, roots: Iterable[Union[str, Path]]) -> None:
        with self._lock:
            state = self._state_locked(scope)
            state.content_roots = _paths(roots)
            state.modification_count += 1

    def touch(self, scope: ScopeLike) -> None:
        """Signal that the contents under a scope's roots changed."""
        with self._lock:
            self._state_locked(scope).modification_count += 1

    # --- Tokens and membership ---

    def current_token(self, scope: ScopeLike) -> DependencyToken:
        with self._lock:
            state = self._state_locked(scope)
            return DependencyToken(
                scope_name=_name(scope),
                modification_count=state.modification_count,
                dependency_roots=tuple(root.as_posix() for root in state.dependency_roots),
            )

    def find_scope_for_path(self, path: Union[str, Path]) -> Optional[Scope]:
        """Return the scope whose content root most specifically contains path."""
        target = Path(path).absolute()
        best: Optional[tuple[int, str]] = None

        with self._lock:
            for name, state in self._scopes.items():
                for root in state.content_roots:
                    if target == root or target.is_relative_to(root):
                        depth = len(root.parts)
                        if best is None or depth > best[0]:
                            best = (depth, name)

        return Scope(best[1]) if best else None

    def _state(self, scope: ScopeLike) -> _ScopeState:
        with self._lock:
            return self._state_locked(scope)

    def _state_locked(self, scope: ScopeLike) -> _ScopeState:
        state = self._scopes.get(_name(scope))
        if state is None:
            raise NoScopeError(f"Unknown scope: {_name(scope)}")
        return state


class ResolutionMode(Enum):
    """How the scope was resolved."""

    EXPLICIT = auto()  # Scope hint passed to the query
    MATERIALIZED = auto()  # Document produced by the provider
    FILE = auto()  # Document path under a content root
    FOLDER = auto()  # Containing folder under a content root
    NONE = auto()  # No resolution possible


@dataclass(frozen=True)
class ResolvedScope:
    """Result of scope resolution.

    Attributes:
        scope: The resolved scope, or None if not resolved
        mode: How the scope was resolved
        reason: Human-readable explanation of resolution
    """

    scope: Optional[Scope]
    mode: ResolutionMode
    reason: str

    @property
    def is_resolved(self) -> bool:
        """Whether a scope was successfully resolved."""
        return self.scope is not None


@dataclass
class ScopeResolver:
    """Find the scope owning a document.

    Args:
        registry: Registry of known scopes and their content roots
    """

    registry: ScopeRegistry

    def resolve(
        self,
        hint: Optional[ScopeLike] = None,
        document: Any = None,
    ) -> ResolvedScope:
        """Resolve a scope using the ordered fallback chain.

        Args:
            hint: Optional scope or scope name supplied by the caller
            document: A DocumentRef, a path, or a document produced by the
                provider (anything with a ``scope`` attribute)

        Returns:
            ResolvedScope with scope, resolution mode, and reason
        """
        # --- Priority 1: Explicit hint ---
        if hint is not None:
            if hint in self.registry:
                scope = hint if isinstance(hint, Scope) else Scope(hint)
                logger.trace(f"Using explicit scope: {scope}")
                return ResolvedScope(scope, ResolutionMode.EXPLICIT, f"Explicit scope: {scope}")
            logger.debug(f"Ignoring unknown scope hint: {hint}")

        # --- Priority 2: Document remembers its scope ---
        materialized = getattr(document, "scope", None)
        if isinstance(materialized, Scope) and materialized in self.registry:
            return ResolvedScope(
                materialized,
                ResolutionMode.MATERIALIZED,
                f"Materialized in scope: {materialized}",
            )

        path, folder = _document_location(document)

        # --- Priority 3: Document file ---
        if path is not None:
            scope = self.registry.find_scope_for_path(path)
            if scope is not None:
                return ResolvedScope(scope, ResolutionMode.FILE, f"File {path} in scope {scope}")
            folder = folder or path.parent

        # --- Priority 4: Containing folder ---
        if folder is not None:
            scope = self.registry.find_scope_for_path(folder)
            if scope is not None:
                return ResolvedScope(
                    scope, ResolutionMode.FOLDER, f"Folder {folder} in scope {scope}"
                )

        logger.trace("No scope resolution possible")
        return ResolvedScope(None, ResolutionMode.NONE, "Document is not part of any scope")

    def require_scope(self, hint: Optional[ScopeLike] = None, document: Any = None) -> Scope:
        """Resolve a scope, raising NoScopeError if none is found."""
        result = self.resolve(hint, document)
        if result.scope is None:
            raise NoScopeError(result.reason)
        return result.scope


def _name(scope: ScopeLike) -> str:
    return scope.name if isinstance(scope, Scope) else scope


def _paths(roots: Iterable[Union[str, Path]]) -> tuple[Path, ...]:
    return tuple(Path(root).absolute() for root in roots)


def _document_location(document: Any) -> tuple[Optional[Path], Optional[Path]]:
    if document is None:
        return None, None
    if isinstance(document, (str, Path)):
        return Path(document), None
    path = getattr(document, "path", None)
    folder = getattr(document, "folder", None)
    return (
        Path(path) if path is not None else None,
        Path(folder) if folder is not None else None,
    )


__all__ = [
    "DependencyToken",
    "DocumentRef",
    "ResolutionMode",
    "ResolvedScope",
    "Scope",
    "ScopeRegistry",
    "ScopeResolver",
]
