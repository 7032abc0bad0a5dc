"""XML Schema parser for scoped-schemas.

Reads just enough of an XSD document to place it in the schema graph:

  XSD construct                       -> Schema field
  ---------------------------------------------------------
  xs:schema/@targetNamespace          -> namespace
  xmlns:p bound to targetNamespace    -> namespace_prefix
  xs:include|import|redefine|override -> references (with schemaLocation only)
  top-level xs:element/@name          -> element_names

Parsing goes through defusedxml so entity expansion and external DTDs in a
dependency cannot be abused.
"""

import codecs
import html
import io
import re
from typing import Protocol
from xml.sax.saxutils import escape

import defusedxml
import defusedxml.ElementTree as ET
from loguru import logger

from scoped_schemas.schema.errors import MalformedSchemaError
from scoped_schemas.schema.model import Schema, SchemaReference
from scoped_schemas.schema.resolver import resolve_location


XSD_NS = "http://www.w3.org/2001/XMLSchema"
XS = f"{{{XSD_NS}}}"

# Sub-reference element names. Imports may omit schemaLocation and are then
# resolved by namespace only, which is outside the graph.
REFERENCE_KINDS = ("include", "import", "redefine", "override")

# Unprefixed schemaLocation attributes only; xsi:schemaLocation holds
# namespace/location pairs
_SCHEMA_LOCATION = re.compile(r"(?<![\w:.-])(schemaLocation\s*=\s*)([\"'])(.*?)\2", re.DOTALL)

_QUOTE_ENTITIES = {'"': {'"': "&quot;"}, "'": {"'": "&apos;"}}

_BOMS = (
    (codecs.BOM_UTF32_LE, "utf-32-le"),
    (codecs.BOM_UTF32_BE, "utf-32-be"),
    (codecs.BOM_UTF8, "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)

_XML_DECLARATION_ENCODING = re.compile(
    rb"^<\?xml[^>]*?encoding\s*=\s*[\"']([A-Za-z][A-Za-z0-9._\-]*)[\"']"
)


class SchemaParser(Protocol):
    """Contract for schema dialect parsers."""

    def parse(self, location: str, content: bytes) -> Schema:
        """Parse raw content found at a canonical location into a Schema."""
        ...

    def decode(self, content: bytes) -> str:
        """Decode raw document content to text."""
        ...

    def rewrite_references(self, content: str, replacements: dict[str, str]) -> str:
        """Replace sub-reference locations in document text."""
        ...


class XsdSchemaParser:
    """SchemaParser for W3C XML Schema documents."""

    def parse(self, location: str, content: bytes) -> Schema:
        root, declared = _parse_document(location, content)

        if root.tag != f"{XS}schema":
            raise MalformedSchemaError(location, f"root element is {root.tag}, not xs:schema")

        namespace = root.get("targetNamespace") or None

        return Schema(
            canonical_location=location,
            location=location,
            namespace=namespace,
            namespace_prefix=_find_prefix(declared, namespace),
            references=tuple(_iter_references(root, location)),
            element_names=tuple(
                child.get("name")
                for child in root
                if child.tag == f"{XS}element" and child.get("name")
            ),
        )

    def decode(self, content: bytes) -> str:
        """Decode a schema document the way an XML processor would.

        A byte order mark wins, then the encoding in the XML declaration,
        then UTF-8. Undecodable bytes become U+FFFD rather than failing.
        """
        encoding, bom_length = _detect_encoding(content)
        try:
            return content[bom_length:].decode(encoding, errors="replace")
        except LookupError:
            logger.debug(f"Unknown XML encoding {encoding}, decoding as UTF-8")
            return content[bom_length:].decode("utf-8", errors="replace")

    def rewrite_references(self, content: str, replacements: dict[str, str]) -> str:
        """Point schemaLocation attributes at new addresses.

        Attribute values are compared the way the parser saw them: with
        character and entity references expanded and surrounding whitespace
        removed. Replacements are escaped for the attribute's quote style.

        Args:
            content: Decoded schema document text.
            replacements: Raw schemaLocation value -> replacement value.

        Returns:
            The document text with every matching attribute value replaced.
            Attributes with no replacement are left untouched.
        """
        if not replacements:
            return content

        def substitute(match: re.Match) -> str:
            prefix, quote, value = match.groups()
            replacement = replacements.get(html.unescape(value).strip())
            if replacement is None:
                return match.group(0)
            escaped = escape(replacement, _QUOTE_ENTITIES[quote])
            return f"{prefix}{quote}{escaped}{quote}"

        return _SCHEMA_LOCATION.sub(substitute, content)


def _parse_document(location: str, content: bytes):
    """Parse content, returning the root element and its prefix declarations.

    Only namespace declarations seen before the root element starts are
    collected, i.e. the ones declared on the root itself.
    """
    declared: list[tuple[str, str]] = []
    root = None

    try:
        for event, item in ET.iterparse(io.BytesIO(content), events=("start-ns", "start")):
            if event == "start-ns" and root is None:
                declared.append(item)
            elif event == "start" and root is None:
                root = item
    except ET.ParseError as e:
        raise MalformedSchemaError(location, str(e)) from e
    except defusedxml.DefusedXmlException as e:
        raise MalformedSchemaError(location, f"forbidden XML construct: {e}") from e

    if root is None:
        raise MalformedSchemaError(location, "empty document")

    return root, declared


def _find_prefix(declared: list[tuple[str, str]], namespace: str | None) -> str | None:
    """Return the first non-default prefix bound to the target namespace."""
    if not namespace:
        return None
    for prefix, uri in declared:
        if prefix and uri == namespace:
            return prefix
    return None


def _iter_references(root, location: str):
    for child in root:
        if not isinstance(child.tag, str) or not child.tag.startswith(XS):
            continue
        kind = child.tag[len(XS) :]
        if kind not in REFERENCE_KINDS:
            continue

        raw = (child.get("schemaLocation") or "").strip()
        if not raw:
            continue

        yield SchemaReference(
            kind=kind,
            raw_location=raw,
            location=resolve_location(location, raw),
            namespace=child.get("namespace") if kind == "import" else None,
        )


def _detect_encoding(content: bytes) -> tuple[str, int]:
    """Return (encoding, BOM length) following XML's autodetection rules."""
    for bom, encoding in _BOMS:
        if content.startswith(bom):
            return encoding, len(bom)

    # UTF-16 without a byte order mark still opens with "<?"
    if content.startswith(b"<\x00?\x00"):
        return "utf-16-le", 0
    if content.startswith(b"\x00<\x00?"):
        return "utf-16-be", 0

    match = _XML_DECLARATION_ENCODING.match(content)
    if match:
        return match.group(1).decode("ascii"), 0
    return "utf-8", 0
