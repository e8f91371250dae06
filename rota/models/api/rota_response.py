# rota/models/api/rota_response.py
"""
Rota API response models.
Used by routes for output formatting.
"""

import datetime as dt

from pydantic import BaseModel, Field


class IdentityResponse(BaseModel):
    """The caller as the rota sees them."""

    user_id: str = Field(..., description="Opaque identity from authentication")
    display_name: str = Field(default="", description="Chosen display name")
    color: str | None = Field(None, description="Color derived from the display name")
    can_claim: bool = Field(..., description="Whether toggles will be attempted")


class SlotResponse(BaseModel):
    """One claimable (date, task) slot."""

    slot_id: str = Field(..., description="Slot key, <YYYY-MM-DD>_<task>")
    task: str = Field(..., description="Task name")
    state: str = Field(..., description="unclaimed, claimed_by_me or claimed_by_other")
    claimant_name: str | None = Field(None, description="Display name of the claimant")
    claimant_color: str | None = Field(None, description="Color of the claimant")
    claimed_at: int | None = Field(None, description="Claim time, epoch milliseconds")


class DayResponse(BaseModel):
    date: dt.date = Field(..., description="Calendar date")
    day_name: str = Field(..., description="Mon..Sun")
    label: str = Field(..., description="Short date, e.g. 01 Jan")
    is_today: bool = Field(..., description="Whether this day is today")
    slots: list[SlotResponse] = Field(..., description="Slots in task order")


class WeekResponse(BaseModel):
    id: str = Field(..., description="Date of the week's Monday")
    label: str = Field(..., description="Week range label")
    days: list[DayResponse] = Field(..., description="Seven days, Monday first")


class RotaBoardResponse(BaseModel):
    """The rota grid with every slot's state for the caller."""

    mode: str = Field(..., description="live or offline")
    sync_status: str = Field(..., description="connecting, live, sync_lost, offline or stopped")
    can_claim: bool = Field(..., description="Whether the caller can toggle slots")
    identity: IdentityResponse = Field(..., description="The caller")
    tasks: list[str] = Field(..., description="Task columns in order")
    weeks: list[WeekResponse] = Field(..., description="Weeks in chronological order")
    claimed_count: int = Field(..., description="Claimed slots in the whole collection")


class ToggleResponse(BaseModel):
    """Outcome of a toggle request. The grid updates with the next snapshot."""

    slot_id: str = Field(..., description="Slot that was toggled")
    status: str = Field(..., description="claimed, released or ignored")
    previous_state: str | None = Field(None, description="State the decision was based on")
