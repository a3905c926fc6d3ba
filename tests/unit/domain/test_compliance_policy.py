"""Tests for compliance arithmetic."""

from datetime import timedelta

from ackflow.domain.policies.compliance import (
    UNASSIGNED_GROUP,
    build_snapshot,
    group_key_for,
    percentage,
)
from ackflow.domain.value_objects.enums import AssignmentStatus, GroupBy
from tests.fakes import T0, make_assignment

S = AssignmentStatus


def test_sixty_twenty_twenty():
    statuses = [S.ACKNOWLEDGED] * 6 + [S.PENDING] * 2 + [S.OVERDUE] * 2
    snap = build_snapshot(statuses, scope={}, computed_at=T0)
    assert snap.total_assigned == 10
    assert snap.percentages["acknowledged"] == 60.0
    assert snap.percentages["pending"] == 20.0
    assert snap.percentages["overdue"] == 20.0
    assert snap.compliance_rate == 60.0


def test_empty_scope_is_all_zero():
    snap = build_snapshot([], scope={}, computed_at=T0)
    assert snap.total_assigned == 0
    assert set(snap.percentages.values()) == {0.0}


def test_half_up_rounding():
    # 1/8 = 12.5 exactly; 1/3 = 33.33..; 2/3 = 66.66..
    assert percentage(1, 8) == 12.5
    assert percentage(1, 3) == 33.3
    assert percentage(2, 3) == 66.7
    # 0.05 boundary: 1/2000 * 100 = 0.05 → 0.1 with half-up
    assert percentage(1, 2000) == 0.1


def test_counts_cover_every_status():
    snap = build_snapshot([S.DECLINED, S.EXPIRED], scope={}, computed_at=T0)
    assert snap.count_for(S.DECLINED) == 1
    assert snap.count_for(S.EXPIRED) == 1
    assert snap.count_for(S.PENDING) == 0


def test_group_keys():
    a = make_assignment(1, department=None, created_at=T0 - timedelta(days=40))
    assert group_key_for(a, GroupBy.DEPARTMENT) == UNASSIGNED_GROUP
    assert group_key_for(a, GroupBy.DOCUMENT) == "sop-1"
    assert group_key_for(a, GroupBy.USER) == "u1"
    assert group_key_for(a, GroupBy.MONTH) == "2026-01"
