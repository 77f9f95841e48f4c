"""Tests for the call lifecycle (pure functions, no I/O)."""

from datetime import datetime, timedelta, timezone

import pytest

from calltracker.exceptions.custom import CallValidationError, InvalidTransitionError
from calltracker.lifecycle import create_call, field_errors, is_terminal, transition
from calltracker.schemas.calls import CallStatus, Workflow


# --- create_call ---


def test_create_call_valid_is_pending_without_provider():
    call = create_call("Ada Lovelace", "+1 (555) 010-9999", "SUPPORT")

    assert call.status == CallStatus.PENDING
    assert call.provider_id is None
    assert call.workflow == Workflow.SUPPORT
    assert call.scheduled_at is None
    assert call.created_at.tzinfo is not None
    assert len(call.id) == 32


def test_create_call_trims_fields():
    call = create_call("  Ada  ", "  5550100  ", "SALES")
    assert call.customer_name == "Ada"
    assert call.phone_number == "5550100"


def test_create_call_ids_are_unique():
    ids = {create_call("Ada", "5550100", "REMINDER").id for _ in range(50)}
    assert len(ids) == 50


def test_create_call_uses_given_now():
    now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    call = create_call("Ada", "5550100", "SALES", now=now)
    assert call.created_at == now


def test_create_call_reports_every_invalid_field():
    with pytest.raises(CallValidationError) as exc_info:
        create_call("", "abc", "MARKETING", "not-a-date")

    errors = exc_info.value.errors
    assert set(errors) == {"customerName", "phoneNumber", "workflow", "scheduledAt"}


def test_create_call_missing_fields():
    with pytest.raises(CallValidationError) as exc_info:
        create_call(None, None, None)

    assert set(exc_info.value.errors) == {"customerName", "phoneNumber", "workflow"}


def test_create_call_blank_name_rejected():
    with pytest.raises(CallValidationError) as exc_info:
        create_call("   ", "5550100", "SALES")
    assert "customerName" in exc_info.value.errors


def test_create_call_name_too_long():
    with pytest.raises(CallValidationError) as exc_info:
        create_call("x" * 81, "5550100", "SALES")
    assert list(exc_info.value.errors) == ["customerName"]


def test_create_call_name_at_limit():
    call = create_call("x" * 80, "5550100", "SALES")
    assert len(call.customer_name) == 80


@pytest.mark.parametrize("phone", ["123456", "1" * 21, "555-0100 ext", "555.0100.22"])
def test_create_call_invalid_phone(phone):
    with pytest.raises(CallValidationError) as exc_info:
        create_call("Ada", phone, "SALES")
    assert list(exc_info.value.errors) == ["phoneNumber"]


@pytest.mark.parametrize("phone", ["1234567", "+44 (20) 7946-0958", "1" * 20])
def test_create_call_valid_phone(phone):
    assert create_call("Ada", phone, "SALES").phone_number == phone


def test_create_call_lowercase_workflow_rejected():
    with pytest.raises(CallValidationError) as exc_info:
        create_call("Ada", "5550100", "support")
    assert list(exc_info.value.errors) == ["workflow"]


def test_create_call_scheduled_at_with_offset_normalized_to_utc():
    call = create_call("Ada", "5550100", "SALES", "2026-05-01T10:00:00+02:00")
    assert call.scheduled_at == datetime(2026, 5, 1, 8, 0, tzinfo=timezone.utc)


def test_create_call_naive_scheduled_at_is_utc():
    call = create_call("Ada", "5550100", "SALES", "2026-05-01T10:00:00")
    assert call.scheduled_at == datetime(2026, 5, 1, 10, 0, tzinfo=timezone.utc)


def test_create_call_accepts_datetime_instance():
    when = datetime.now(timezone.utc) + timedelta(hours=1)
    call = create_call("Ada", "5550100", "SALES", when)
    assert call.scheduled_at == when


# --- transition ---


def test_transition_pending_to_completed():
    call = create_call("Ada", "5550100", "SALES")
    result = transition(call, CallStatus.COMPLETED)

    assert result.changed is True
    assert result.already_final is False
    assert result.call.status == CallStatus.COMPLETED
    assert result.call.id == call.id
    assert call.status == CallStatus.PENDING  # original untouched


def test_transition_pending_to_failed():
    call = create_call("Ada", "5550100", "SALES")
    assert transition(call, CallStatus.FAILED).call.status == CallStatus.FAILED


@pytest.mark.parametrize("final", [CallStatus.COMPLETED, CallStatus.FAILED])
@pytest.mark.parametrize("target", [CallStatus.COMPLETED, CallStatus.FAILED])
def test_transition_from_terminal_is_noop(final, target):
    call = create_call("Ada", "5550100", "SALES").model_copy(update={"status": final})
    result = transition(call, target)

    assert result.changed is False
    assert result.already_final is True
    assert result.call == call


def test_transition_to_pending_rejected():
    call = create_call("Ada", "5550100", "SALES")
    with pytest.raises(InvalidTransitionError):
        transition(call, CallStatus.PENDING)


@pytest.mark.parametrize("final", [CallStatus.COMPLETED, CallStatus.FAILED])
def test_transition_from_terminal_to_pending_is_noop(final):
    call = create_call("Ada", "5550100", "SALES").model_copy(update={"status": final})
    result = transition(call, CallStatus.PENDING)

    assert result.changed is False
    assert result.already_final is True
    assert result.call.status == final


def test_is_terminal():
    assert is_terminal(CallStatus.COMPLETED)
    assert is_terminal(CallStatus.FAILED)
    assert not is_terminal(CallStatus.PENDING)


# --- field_errors ---


def test_field_errors_strips_body_prefix():
    errors = field_errors([
        {"loc": ("body", "status"), "msg": "bad status"},
        {"loc": ("body", "status"), "msg": "still bad"},
        {"loc": ("body",), "msg": "missing body"},
    ])
    assert errors == {"status": ["bad status", "still bad"], "body": ["missing body"]}
