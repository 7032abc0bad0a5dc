"""Tests for scoped_schemas.schema.resolver -- root enumeration and loading."""

import pytest

from scoped_schemas.schema.errors import SchemaNotFoundError
from scoped_schemas.schema.resolver import (
    FileSystemResourceResolver,
    canonical_path,
    resolve_location,
)
from scoped_schemas.scope import Scope


@pytest.fixture
def resolver(registry, events):
    return FileSystemResourceResolver(registry, events=events)


# --- resolve_location ---


class TestResolveLocation:
    @pytest.mark.parametrize(
        "base, ref, expected",
        [
            ("/lib/a.xsd", "b.xsd", "/lib/b.xsd"),
            ("/lib/x/a.xsd", "../b.xsd", "/lib/b.xsd"),
            ("/lib/a.xsd", "./sub/c.xsd", "/lib/sub/c.xsd"),
            ("/lib/a.xsd", "/other/c.xsd", "/other/c.xsd"),
            ("/lib/a.xsd", "http://h/s/c.xsd", "http://h/s/c.xsd"),
            ("http://h/s/a.xsd", "c.xsd", "http://h/s/c.xsd"),
            ("http://h/s/a.xsd", "../c.xsd", "http://h/c.xsd"),
            ("/lib/a.xsd", "  b.xsd ", "/lib/b.xsd"),
            ("/lib/a.xsd", "file:///lib/x/../b.xsd", "/lib/b.xsd"),
            ("/lib/a.xsd", "file:///lib/my%20types.xsd", "/lib/my types.xsd"),
            ("/lib/a.xsd", "sub/my%20types.xsd", "/lib/sub/my types.xsd"),
            ("http://h/s/a.xsd", "my%20types.xsd", "http://h/s/my%20types.xsd"),
        ],
    )
    def test_resolution(self, base, ref, expected):
        assert resolve_location(base, ref) == expected


# --- list_roots / enumerate ---


class TestEnumerate:
    def test_roots_follow_registry(self, resolver, registry, lib_dir, tmp_path):
        other = tmp_path / "other"
        registry.set_dependency_roots("app", [other, lib_dir])
        assert resolver.list_roots(Scope("app")) == [canonical_path(other), canonical_path(lib_dir)]

    def test_walks_directories_in_sorted_order(self, resolver, write_schema, lib_dir):
        write_schema("lib/b.xsd", target_namespace="urn:b")
        write_schema("lib/a.xsd", target_namespace="urn:a")
        write_schema("lib/nested/c.xsd", target_namespace="urn:c")

        locations = [s.location for s in resolver.enumerate(canonical_path(lib_dir))]

        assert locations == [
            canonical_path(lib_dir / "a.xsd"),
            canonical_path(lib_dir / "b.xsd"),
            canonical_path(lib_dir / "nested" / "c.xsd"),
        ]

    def test_skips_other_suffixes(self, resolver, write_schema, lib_dir):
        write_schema("lib/a.xsd")
        (lib_dir / "notes.txt").write_text("not a schema")
        (lib_dir / "beans.xml").write_text("<beans/>")

        names = [s.location.rsplit("/", 1)[-1] for s in resolver.enumerate(str(lib_dir))]
        assert names == ["a.xsd"]

    def test_suffix_match_is_case_insensitive(self, resolver, write_schema, lib_dir):
        write_schema("lib/UPPER.XSD")
        assert len(list(resolver.enumerate(str(lib_dir)))) == 1

    def test_skips_ignored_directories(self, resolver, write_schema, lib_dir):
        write_schema("lib/a.xsd")
        write_schema("lib/.git/objects/x.xsd")
        write_schema("lib/node_modules/pkg/y.xsd")

        names = [s.location.rsplit("/", 1)[-1] for s in resolver.enumerate(str(lib_dir))]
        assert names == ["a.xsd"]

    def test_custom_ignore_patterns(self, registry, write_schema, lib_dir):
        write_schema("lib/a.xsd")
        write_schema("lib/generated/b.xsd")
        write_schema("lib/draft-c.xsd")
        resolver = FileSystemResourceResolver(
            registry, ignore_patterns=["generated/", "draft-*.xsd"]
        )

        names = [s.location.rsplit("/", 1)[-1] for s in resolver.enumerate(str(lib_dir))]
        assert names == ["a.xsd"]

    def test_file_root_yields_itself(self, resolver, write_schema):
        path = write_schema("single/only.xsd")
        sources = list(resolver.enumerate(str(path)))
        assert [s.location for s in sources] == [canonical_path(path)]

    def test_missing_root_is_reported_not_raised(self, resolver, events, tmp_path):
        missing = tmp_path / "does-not-exist"

        assert list(resolver.enumerate(str(missing))) == []
        assert events.named("source.not_found")[0]["location"] == str(missing)

    def test_source_read_returns_bytes(self, resolver, write_schema, lib_dir):
        path = write_schema("lib/a.xsd", target_namespace="urn:a")
        (source,) = list(resolver.enumerate(str(lib_dir)))
        assert source.read() == path.read_bytes()


# --- load ---


class TestLoad:
    def test_load_file(self, resolver, write_schema):
        path = write_schema("lib/a.xsd", content="<x/>")
        assert resolver.load(canonical_path(path)) == b"<x/>"

    def test_load_file_url(self, resolver, write_schema):
        path = write_schema("lib/a.xsd", content="<x/>")
        assert resolver.load(path.as_uri()) == b"<x/>"

    def test_missing_file_raises_not_found(self, resolver, tmp_path):
        with pytest.raises(SchemaNotFoundError) as exc:
            resolver.load(str(tmp_path / "missing.xsd"))
        assert exc.value.location.endswith("missing.xsd")

    def test_remote_location_not_fetched(self, resolver):
        with pytest.raises(SchemaNotFoundError, match="remote"):
            resolver.load("http://www.springframework.org/schema/beans/spring-beans.xsd")
