"""EscalationPolicy — the tunable constants behind status and reminder rules."""

from dataclasses import dataclass
from datetime import timedelta

from ackflow.domain.value_objects.enums import ReminderCadence


@dataclass(frozen=True)
class EscalationPolicy:
    """Policy constants consulted at read time.

    Changing any of these never requires a backfill: status is re-derived
    from stored facts on every read.
    """

    auto_expire_enabled: bool = False
    grace_period: timedelta = timedelta(days=14)
    reminder_cadence: ReminderCadence = ReminderCadence.DAILY
    escalation_threshold: int = 3

    def __post_init__(self) -> None:
        if self.grace_period < timedelta(0):
            raise ValueError("grace_period must not be negative")
        if self.escalation_threshold < 0:
            raise ValueError("escalation_threshold must not be negative")
