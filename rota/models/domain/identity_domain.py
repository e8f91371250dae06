# rota/models/domain/identity_domain.py
"""
Identity Domain Model
The local actor: opaque id from the auth collaborator, a mutable display name,
and a color derived from that name.
"""

from dataclasses import dataclass

from rota.services.identity.color import color_for

# Ids handed out when the client runs read-only (offline host, failed init)
OFFLINE_USER_ID = "UI_USER"
INITIALIZATION_FAILED_ID = "INITIALIZATION_FAILED"
READ_ONLY_IDS = frozenset({OFFLINE_USER_ID, INITIALIZATION_FAILED_ID})


@dataclass(frozen=True, slots=True)
class Identity:
    user_id: str | None
    display_name: str = ""

    @property
    def color(self) -> str:
        """Recomputed from the name on every access."""
        return color_for(self.display_name)

    @property
    def has_valid_id(self) -> bool:
        return bool(self.user_id) and self.user_id not in READ_ONLY_IDS

    @property
    def is_ready(self) -> bool:
        """Whether this identity may claim slots."""
        return self.has_valid_id and bool(self.display_name.strip())

    def renamed(self, display_name: str) -> "Identity":
        return Identity(user_id=self.user_id, display_name=display_name)
