"""
Tests for the logging formatter and the session context manager.
"""
import json
import logging

import pytest
from sqlalchemy import select

from slotbook.lib.db import SessionLocal, get_db_context
from slotbook.lib.logging import JSONFormatter, log_with_context, set_correlation_id
from slotbook.models.users import User, UserRole


def _record(message="Booking created", **extra_fields):
    record = logging.LogRecord("slotbook.test", logging.INFO, __file__, 1, message, None, None)
    if extra_fields:
        record.extra_fields = extra_fields
    return record


@pytest.mark.unit
def test_json_formatter_includes_correlation_and_extra_fields():
    set_correlation_id("req-42")
    try:
        payload = json.loads(JSONFormatter().format(_record(booking_id="b-1", rating=5)))
    finally:
        set_correlation_id(None)

    assert payload["message"] == "Booking created"
    assert payload["level"] == "INFO"
    assert payload["correlation_id"] == "req-42"
    assert (payload["booking_id"], payload["rating"]) == ("b-1", 5)


@pytest.mark.unit
def test_json_formatter_omits_missing_correlation_id():
    payload = json.loads(JSONFormatter().format(_record()))

    assert "correlation_id" not in payload


@pytest.mark.unit
def test_log_with_context_attaches_fields(caplog):
    logger = logging.getLogger("slotbook.test.context")

    with caplog.at_level(logging.WARNING, logger="slotbook.test.context"):
        log_with_context(logger, "warning", "Slot already booked", provider_id="p-1")

    assert caplog.records[-1].levelno == logging.WARNING
    assert caplog.records[-1].extra_fields == {"provider_id": "p-1"}


@pytest.mark.unit
def test_db_context_commits(db_session):
    with get_db_context() as db:
        db.add(User(name="Rahim", email="rahim@example.com", role=UserRole.CUSTOMER))

    check = SessionLocal()
    try:
        assert check.execute(select(User.email)).scalars().all() == ["rahim@example.com"]
    finally:
        check.close()


@pytest.mark.unit
def test_db_context_rolls_back_on_error(db_session):
    with pytest.raises(RuntimeError):
        with get_db_context() as db:
            db.add(User(name="Karim", email="karim@example.com", role=UserRole.CUSTOMER))
            db.flush()
            raise RuntimeError("abort")

    check = SessionLocal()
    try:
        assert check.execute(select(User)).scalars().all() == []
    finally:
        check.close()
