# rota/models/domain/slot_domain.py
"""
Slot Domain Models
Slot identifiers, claim records and the derived claim state.
Used by the store, claim and reconciliation services.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

# Wire field names of a slot record
CLAIMED_BY = "claimedBy"
CLAIMANT_NAME = "claimantName"
CLAIMANT_COLOR = "claimantColor"
CLAIMED_AT = "claimedAt"

CLAIM_FIELDS = (CLAIMED_BY, CLAIMANT_NAME, CLAIMANT_COLOR, CLAIMED_AT)

_WHITESPACE = re.compile(r"\s")
_SLOT_ID = re.compile(r"^(\d{4}-\d{2}-\d{2})_(.+)$")


class InvalidSlotIdError(ValueError):
    """Raised when a slot id does not follow the <YYYY-MM-DD>_<task> format."""

    pass


class ClaimState(str, Enum):
    """Claim state of a slot as seen by one observing identity."""

    UNCLAIMED = "unclaimed"
    CLAIMED_BY_ME = "claimed_by_me"
    CLAIMED_BY_OTHER = "claimed_by_other"


def normalize_task(task: str) -> str:
    """Replace every whitespace character with an underscore."""
    return _WHITESPACE.sub("_", task)


def slot_id_for(day: date, task: str) -> str:
    """Build the store key for a (date, task) slot, e.g. 2024-01-01_Breakfast."""
    return f"{day.isoformat()}_{normalize_task(task)}"


def parse_slot_id(slot_id: str) -> tuple[date, str]:
    """
    Split a slot id back into its date and normalized task name.

    Raises:
        InvalidSlotIdError: If the id is malformed or the date is not a real date
    """
    match = _SLOT_ID.match(slot_id or "")
    if not match:
        raise InvalidSlotIdError(f"Invalid slot id: {slot_id!r}")

    date_part, task_part = match.groups()
    if _WHITESPACE.search(task_part):
        raise InvalidSlotIdError(f"Slot id task contains whitespace: {slot_id!r}")

    try:
        day = date.fromisoformat(date_part)
    except ValueError as e:
        raise InvalidSlotIdError(f"Invalid slot date in {slot_id!r}") from e

    return day, task_part


@dataclass(frozen=True, slots=True)
class SlotClaim:
    """A fully populated claim on one slot. Partial claims never exist."""

    slot_id: str
    claimed_by: str
    claimant_name: str
    claimant_color: str
    claimed_at: int  # epoch milliseconds

    @classmethod
    def from_record(cls, slot_id: str, record: Mapping[str, Any] | None) -> "SlotClaim | None":
        """
        Parse a raw wire record.

        Returns None for unclaimed, malformed or partially populated records so
        callers never see a half-claimed slot.
        """
        if not isinstance(record, Mapping):
            return None

        claimed_by = _text(record.get(CLAIMED_BY))
        claimant_name = _text(record.get(CLAIMANT_NAME))
        claimant_color = _text(record.get(CLAIMANT_COLOR))
        claimed_at = _millis(record.get(CLAIMED_AT))

        if not (claimed_by and claimant_name and claimant_color) or claimed_at is None:
            return None

        return cls(
            slot_id=slot_id,
            claimed_by=claimed_by,
            claimant_name=claimant_name,
            claimant_color=claimant_color,
            claimed_at=claimed_at,
        )

    def to_record(self) -> dict[str, Any]:
        return {
            CLAIMED_BY: self.claimed_by,
            CLAIMANT_NAME: self.claimant_name,
            CLAIMANT_COLOR: self.claimant_color,
            CLAIMED_AT: self.claimed_at,
        }


def empty_record() -> dict[str, Any]:
    """Wire fields written to release a claim."""
    return {field: None for field in CLAIM_FIELDS}


def claim_state(claim: SlotClaim | None, user_id: str | None) -> ClaimState:
    """Derive the claim state of a slot for the observing identity."""
    if claim is None:
        return ClaimState.UNCLAIMED
    if user_id and claim.claimed_by == user_id:
        return ClaimState.CLAIMED_BY_ME
    return ClaimState.CLAIMED_BY_OTHER


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value:
        return value
    return None


def _millis(value: Any) -> int | None:
    # bool is an int subclass but never a valid timestamp
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return int(value)
    if isinstance(value, str) and value:
        try:
            return int(float(value))
        except ValueError:
            return None
    return None
