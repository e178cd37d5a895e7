from __future__ import annotations

from typing import Protocol


class IAdService(Protocol):
    async def request_load(self, unit_id: str) -> None:
        """Ask the shell to load one interstitial for ``unit_id``."""
        ...

    async def show(self, unit_id: str) -> None: ...
