# Copyright 2026 StockDash
# SPDX-License-Identifier: MIT
"""User session: an opaque API token held for the lifetime of a login.

Not a security boundary, just a convenience cache. The store is owned by the
composition root (API app state, CLI main) and passed where needed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    credential: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Public view; the credential itself is never echoed back."""
        return {"authenticated": True, "created_at": self.created_at.isoformat()}


class SessionStore:
    """Lifecycle: login() creates, logout() destroys. One session at a time."""

    def __init__(self) -> None:
        self._session: Optional[Session] = None

    @property
    def current(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def login(self, token: str) -> Session:
        credential = str(token or "").strip()
        if not credential:
            raise ValueError("API token is required")
        self._session = Session(credential=credential, created_at=datetime.now(timezone.utc))
        logger.info("session created")
        return self._session

    def logout(self) -> None:
        """Idempotent."""
        if self._session is not None:
            logger.info("session destroyed")
        self._session = None


__all__ = ["Session", "SessionStore"]
