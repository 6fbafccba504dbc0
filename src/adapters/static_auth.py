"""Fixed-identity auth provider.

Stands in for the authentication service where the caller's uid is known up
front (CLI configured with `CRM_SYNC_USER_ID`, tests).
"""

from __future__ import annotations


class StaticAuthProvider:
    """Reports a fixed uid; `None` means signed out."""

    def __init__(self, uid: str | None = None) -> None:
        self.uid = uid

    async def current_uid(self) -> str | None:
        return self.uid
