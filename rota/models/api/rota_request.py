# rota/models/api/rota_request.py
"""
Rota API request models.
Used by routes for input validation.
"""

from pydantic import BaseModel, Field


class DisplayNameRequest(BaseModel):
    """Request to set the caller's display name."""

    display_name: str = Field(..., min_length=1, max_length=40, description="Name or initials")
