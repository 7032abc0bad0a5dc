"""Shared fixtures for scoped-schemas tests."""

from pathlib import Path
from typing import Any, Optional

import pytest

from scoped_schemas.config import ScopedSchemasConfig
from scoped_schemas.provider import SchemaProvider, create_provider
from scoped_schemas.scope import ScopeRegistry

PREFIX = "http://host/schema/"


def schema_xml(
    target_namespace: Optional[str] = None,
    prefix: Optional[str] = None,
    includes: tuple[str, ...] = (),
    imports: tuple[tuple[Optional[str], str], ...] = (),
    elements: tuple[str, ...] = (),
) -> str:
    """Render a small XML Schema document."""
    attrs = ['xmlns:xsd="http://www.w3.org/2001/XMLSchema"']
    if target_namespace:
        attrs.append(f'targetNamespace="{target_namespace}"')
        if prefix:
            attrs.append(f'xmlns:{prefix}="{target_namespace}"')

    body = []
    for namespace, location in imports:
        ns_attr = f' namespace="{namespace}"' if namespace else ""
        body.append(f'  <xsd:import{ns_attr} schemaLocation="{location}"/>')
    for location in includes:
        body.append(f'  <xsd:include schemaLocation="{location}"/>')
    for name in elements:
        body.append(f'  <xsd:element name="{name}" type="xsd:string"/>')

    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f"<xsd:schema {' '.join(attrs)}>\n" + "\n".join(body) + "\n</xsd:schema>\n"
    )


class RecordingEventSink:
    """EventSink that keeps every event for assertions."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, event: str, properties: Optional[dict[str, Any]] = None) -> None:
        self.events.append((event, dict(properties or {})))

    def named(self, event: str) -> list[dict[str, Any]]:
        return [props for name, props in self.events if name == event]


@pytest.fixture
def events() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture
def write_schema(tmp_path: Path):
    """Write a schema file under tmp_path and return its path."""

    def _write(relative: str, content: Optional[str] = None, **kwargs) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content if content is not None else schema_xml(**kwargs), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def lib_dir(tmp_path: Path) -> Path:
    path = tmp_path / "lib"
    path.mkdir(exist_ok=True)
    return path


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    path = tmp_path / "app"
    path.mkdir(exist_ok=True)
    return path


@pytest.fixture
def registry(lib_dir: Path, app_dir: Path) -> ScopeRegistry:
    registry = ScopeRegistry()
    registry.register("app", content_roots=[app_dir], dependency_roots=[lib_dir])
    return registry


@pytest.fixture
def config() -> ScopedSchemasConfig:
    return ScopedSchemasConfig(external_prefix=PREFIX)


@pytest.fixture
def provider(config, registry, events) -> SchemaProvider:
    return create_provider(config, registry=registry, events=events)
