"""Audit hash chain — tamper evidence for the append-only event log."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from dataclasses import dataclass

from ackflow.domain.entities.audit_event import AuditEvent
from ackflow.domain.value_objects.timeutil import ensure_utc

GENESIS_HASH = ""


def compute_event_hash(event: AuditEvent, prev_hash: str) -> str:
    """sha256 over the canonical JSON of the event's content and ``prev_hash``.

    The database id is excluded because it is assigned after hashing.
    """
    material = {
        "organization_id": event.organization_id,
        "assignment_id": event.assignment_id,
        "event_type": event.event_type.value,
        "actor_id": event.actor_id,
        "timestamp": ensure_utc(event.timestamp).isoformat(),
        "payload": event.payload,
        "category": event.category.value,
        "severity": event.severity.value,
        "prev_hash": prev_hash,
    }
    blob = json.dumps(
        material, sort_keys=True, ensure_ascii=True, separators=(",", ":"), default=str
    )
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


def link_event(event: AuditEvent, prev_hash: str) -> AuditEvent:
    event.prev_hash = prev_hash
    event.hash = compute_event_hash(event, prev_hash)
    return event


@dataclass(frozen=True)
class ChainVerification:
    valid: bool
    checked: int
    broken_event_id: int | None = None
    reason: str | None = None


def verify_chain(events: Iterable[AuditEvent]) -> ChainVerification:
    """Walk events in append order and report the first broken link."""
    prev_hash = GENESIS_HASH
    checked = 0
    for event in events:
        checked += 1
        if event.prev_hash != prev_hash:
            return ChainVerification(False, checked, event.id, "prev_hash_mismatch")
        if event.hash != compute_event_hash(event, event.prev_hash):
            return ChainVerification(False, checked, event.id, "hash_mismatch")
        prev_hash = event.hash
    return ChainVerification(True, checked)
