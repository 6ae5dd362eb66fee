"""
API credential pair for the generative-text backend.

DESIGN DECISION: The active key is never stored in shared mutable state.
Callers pass a GeminiCredentials value with every request and the client
derives the attempt order from it, so two concurrent callers can never
flip each other onto the backup key.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class GeminiCredentials(BaseModel):
    """Primary and optional backup API key."""

    model_config = ConfigDict(frozen=True)

    primary: Optional[str] = None
    backup: Optional[str] = None

    @property
    def has_any(self) -> bool:
        return bool(self.primary or self.backup)

    def attempt_order(self) -> list[tuple[str, str]]:
        """
        Keys to try, in order, as (slot, key) pairs.

        The backup slot is only listed when it holds a key that differs
        from the primary one.
        """
        order = []
        if self.primary:
            order.append(("primary", self.primary))
        if self.backup and self.backup != self.primary:
            order.append(("backup", self.backup))
        return order
