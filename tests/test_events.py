"""Tests for the loguru-backed event sink."""

from loguru import logger

from scoped_schemas.events import LoguruEventSink


def _capture(level="DEBUG"):
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level=level)
    return records, handler_id


def test_emit_binds_event_and_properties():
    records, handler_id = _capture()
    try:
        LoguruEventSink().emit("schema.malformed", {"location": "/lib/a.xsd", "reason": "bad"})
    finally:
        logger.remove(handler_id)

    (record,) = records
    assert record["level"].name == "DEBUG"
    assert record["extra"]["event"] == "schema.malformed"
    assert record["extra"]["location"] == "/lib/a.xsd"
    assert record["message"] == "schema.malformed location=/lib/a.xsd reason=bad"


def test_emit_without_properties():
    records, handler_id = _capture()
    try:
        LoguruEventSink(level="INFO").emit("cache.rebuild")
    finally:
        logger.remove(handler_id)

    (record,) = records
    assert record["level"].name == "INFO"
    assert record["message"] == "cache.rebuild"


def test_emit_never_raises():
    # loguru rejects unknown levels
    LoguruEventSink(level="NOT_A_LEVEL").emit("scope.not_found", {"reason": "none"})
