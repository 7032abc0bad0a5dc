"""Tests for scoped_schemas.schema.parser -- XSD parsing."""

import pytest

from conftest import schema_xml
from scoped_schemas.schema.errors import MalformedSchemaError
from scoped_schemas.schema.parser import XsdSchemaParser


@pytest.fixture
def parser():
    return XsdSchemaParser()


def _parse(parser, content: str, location: str = "/lib/a.xsd"):
    return parser.parse(location, content.encode("utf-8"))


# --- Identity ---


class TestSchemaIdentity:
    def test_target_namespace(self, parser):
        schema = _parse(parser, schema_xml("urn:a"))
        assert schema.namespace == "urn:a"
        assert schema.canonical_location == "/lib/a.xsd"
        assert schema.location == "/lib/a.xsd"
        assert schema.name == "a.xsd"

    def test_missing_target_namespace_is_none(self, parser):
        schema = _parse(parser, schema_xml())
        assert schema.namespace is None

    def test_empty_target_namespace_is_none(self, parser):
        content = '<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema" targetNamespace=""/>'
        assert _parse(parser, content).namespace is None

    def test_prefix_bound_to_target_namespace(self, parser):
        schema = _parse(parser, schema_xml("urn:beans", prefix="beans"))
        assert schema.namespace_prefix == "beans"

    def test_default_namespace_is_not_a_prefix(self, parser):
        content = (
            '<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema" '
            'xmlns="urn:a" targetNamespace="urn:a"/>'
        )
        assert _parse(parser, content).namespace_prefix is None

    def test_prefix_ignores_nested_declarations(self, parser):
        content = (
            '<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema" targetNamespace="urn:a">'
            '<xs:element name="x" xmlns:inner="urn:a" type="xs:string"/>'
            "</xs:schema>"
        )
        assert _parse(parser, content).namespace_prefix is None

    def test_top_level_elements(self, parser):
        schema = _parse(parser, schema_xml("urn:a", elements=("bean", "alias")))
        assert schema.element_names == ("bean", "alias")


# --- References ---


class TestReferences:
    def test_include_resolved_against_parent(self, parser):
        schema = _parse(parser, schema_xml("urn:a", includes=("b.xsd",)))
        assert schema.sub_references == ("/lib/b.xsd",)
        ref = schema.references[0]
        assert ref.kind == "include"
        assert ref.raw_location == "b.xsd"
        assert ref.namespace is None

    def test_import_keeps_namespace(self, parser):
        schema = _parse(parser, schema_xml("urn:a", imports=(("urn:c", "../other/c.xsd"),)))
        ref = schema.references[0]
        assert ref.kind == "import"
        assert ref.namespace == "urn:c"
        assert ref.location == "/other/c.xsd"

    def test_import_without_location_is_skipped(self, parser):
        content = (
            '<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema" targetNamespace="urn:a">'
            '<xs:import namespace="http://www.w3.org/XML/1998/namespace"/>'
            "</xs:schema>"
        )
        assert _parse(parser, content).references == ()

    def test_references_keep_document_order(self, parser):
        content = schema_xml("urn:a", imports=((None, "x.xsd"),), includes=("y.xsd", "z.xsd"))
        assert _parse(parser, content).sub_references == ("/lib/x.xsd", "/lib/y.xsd", "/lib/z.xsd")

    def test_url_reference_kept(self, parser):
        schema = _parse(parser, schema_xml(includes=("http://example.com/s/b.xsd",)))
        assert schema.sub_references == ("http://example.com/s/b.xsd",)


# --- Malformed input ---


class TestMalformed:
    def test_not_xml(self, parser):
        with pytest.raises(MalformedSchemaError) as exc:
            _parse(parser, "this is not xml")
        assert exc.value.location == "/lib/a.xsd"

    def test_truncated_document(self, parser):
        with pytest.raises(MalformedSchemaError):
            _parse(parser, '<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">')

    def test_wrong_root_element(self, parser):
        with pytest.raises(MalformedSchemaError, match="not xs:schema"):
            _parse(parser, "<beans/>")

    def test_entity_declarations_forbidden(self, parser):
        content = (
            '<?xml version="1.0"?>\n'
            '<!DOCTYPE schema [<!ENTITY boom "boom">]>\n'
            '<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema">&boom;</xs:schema>'
        )
        with pytest.raises(MalformedSchemaError, match="forbidden"):
            _parse(parser, content)


# --- Rewriting ---


class TestRewriteReferences:
    def test_rewrites_matching_attributes(self, parser):
        text = schema_xml("urn:a", includes=("b.xsd",), imports=(("urn:c", "c.xsd"),))
        result = parser.rewrite_references(
            text, {"b.xsd": "http://host/schema/b.xsd", "c.xsd": "http://host/schema/c.xsd"}
        )
        assert 'schemaLocation="http://host/schema/b.xsd"' in result
        assert 'schemaLocation="http://host/schema/c.xsd"' in result
        assert 'schemaLocation="b.xsd"' not in result

    def test_single_quotes(self, parser):
        text = "<xs:include schemaLocation='b.xsd'/>"
        result = parser.rewrite_references(text, {"b.xsd": "http://host/schema/b.xsd"})
        assert result == "<xs:include schemaLocation='http://host/schema/b.xsd'/>"

    def test_does_not_touch_longer_values(self, parser):
        text = '<xs:include schemaLocation="sub/b.xsd"/>'
        assert parser.rewrite_references(text, {"b.xsd": "X"}) == text

    def test_whitespace_around_value(self, parser):
        text = '<xsd:include schemaLocation=" b.xsd "/>'
        result = parser.rewrite_references(text, {"b.xsd": "http://host/schema/b.xsd"})
        assert result == '<xsd:include schemaLocation="http://host/schema/b.xsd"/>'

    def test_entity_references_in_value(self, parser):
        text = '<xsd:include schemaLocation="a&amp;b.xsd"/>'
        result = parser.rewrite_references(text, {"a&b.xsd": "http://host/schema/a&b.xsd"})
        assert result == '<xsd:include schemaLocation="http://host/schema/a&amp;b.xsd"/>'

    def test_replacement_escaped_for_quote_style(self, parser):
        text = "<xsd:include schemaLocation='b.xsd'/>"
        result = parser.rewrite_references(text, {"b.xsd": "http://host/it's.xsd"})
        assert result == "<xsd:include schemaLocation='http://host/it&apos;s.xsd'/>"

    def test_xsi_schema_location_untouched(self, parser):
        text = '<beans xsi:schemaLocation="urn:b b.xsd"><xsd:include schemaLocation="b.xsd"/>'
        result = parser.rewrite_references(text, {"b.xsd": "X"})
        assert result == '<beans xsi:schemaLocation="urn:b b.xsd"><xsd:include schemaLocation="X"/>'


# --- Decoding ---


class TestDecode:
    def test_utf8_default(self, parser):
        assert parser.decode("<x>café</x>".encode("utf-8")) == "<x>café</x>"

    def test_declared_latin1(self, parser):
        text = '<?xml version="1.0" encoding="ISO-8859-1"?>\n<x>café</x>'
        assert parser.decode(text.encode("iso-8859-1")) == text

    def test_utf8_bom_stripped(self, parser):
        content = b"\xef\xbb\xbf" + "<x>café</x>".encode("utf-8")
        assert parser.decode(content) == "<x>café</x>"

    def test_utf16_with_bom(self, parser):
        text = '<?xml version="1.0" encoding="UTF-16"?>\n<x>café</x>'
        assert parser.decode(text.encode("utf-16")) == text

    def test_utf16_without_bom(self, parser):
        text = '<?xml version="1.0" encoding="UTF-16"?><x/>'
        assert parser.decode(text.encode("utf-16-be")) == text

    def test_unknown_declared_encoding_falls_back_to_utf8(self, parser):
        text = '<?xml version="1.0" encoding="no-such-codec"?><x>café</x>'
        assert parser.decode(text.encode("utf-8")) == text

    def test_latin1_schema_still_parses(self, parser):
        content = (
            '<?xml version="1.0" encoding="ISO-8859-1"?>\n'
            '<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema" targetNamespace="urn:caf\xe9"/>'
        ).encode("iso-8859-1")
        assert parser.parse("/lib/a.xsd", content).namespace == "urn:café"
