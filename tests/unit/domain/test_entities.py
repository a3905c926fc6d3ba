"""Tests for the Assignment entity and EscalationPolicy."""

from datetime import timedelta

import pytest

from ackflow.domain.errors import StateTransitionError
from ackflow.domain.value_objects.enums import AssignmentStatus, ReminderCadence
from ackflow.domain.value_objects.escalation_policy import EscalationPolicy
from tests.fakes import T0, make_assignment


def test_new_assignment_is_open():
    a = make_assignment(1)
    assert a.is_open()
    assert not a.has_terminal_fact()
    assert a.reminder_anchor() == a.created_at


def test_acknowledge_after_decline_rejected():
    a = make_assignment(1)
    a.mark_declined(T0, "not my area")
    with pytest.raises(StateTransitionError):
        a.mark_acknowledged(T0)


def test_decline_after_acknowledge_rejected():
    a = make_assignment(1)
    a.mark_acknowledged(T0)
    with pytest.raises(StateTransitionError):
        a.mark_declined(T0, "changed my mind")


def test_record_reminder_moves_anchor():
    a = make_assignment(1)
    a.record_reminder(T0)
    a.record_reminder(T0 + timedelta(days=1))
    assert a.reminders_sent == 2
    assert a.reminder_anchor() == T0 + timedelta(days=1)


def test_supersede_once():
    a = make_assignment(1)
    a.supersede(2, T0)
    assert not a.is_open()
    assert a.superseded_at == T0
    with pytest.raises(StateTransitionError):
        a.supersede(3, T0)


def test_superseded_only_from_reassignment_onwards():
    a = make_assignment(1)
    assert not a.is_superseded_at(T0)
    a.supersede(2, T0)
    assert not a.is_superseded_at(T0 - timedelta(seconds=1))
    assert a.is_superseded_at(T0)

    legacy = make_assignment(3, superseded_by_id=4)
    assert legacy.is_superseded_at(T0 - timedelta(days=365))


def test_terminal_statuses():
    assert AssignmentStatus.ACKNOWLEDGED.is_terminal
    assert AssignmentStatus.EXPIRED.is_terminal
    assert not AssignmentStatus.OVERDUE.is_terminal


def test_cadence_intervals():
    assert ReminderCadence.NONE.interval is None
    assert ReminderCadence.EVERY_3_DAYS.interval == timedelta(days=3)
    assert ReminderCadence.WEEKLY.interval == timedelta(days=7)


def test_policy_rejects_negative_values():
    with pytest.raises(ValueError):
        EscalationPolicy(grace_period=timedelta(days=-1))
    with pytest.raises(ValueError):
        EscalationPolicy(escalation_threshold=-1)
