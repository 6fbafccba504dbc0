"""Contract of the authentication service.

Only the identity of the signed-in caller is consumed; sign-in flows and
role gating live upstream.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class AuthProvider(Protocol):
    async def current_uid(self) -> str | None:
        """Uid of the signed-in user, or None when nobody is signed in."""

        ...
