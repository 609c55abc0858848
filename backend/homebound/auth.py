"""
Authentication helpers: a single static dashboard credential.
"""
from __future__ import annotations

import hmac
from typing import Optional

from homebound import config


def check_password(password: str, expected: Optional[str] = None) -> bool:
    """True only when a password is configured and matches."""
    expected = config.ADMIN_PASSWORD if expected is None else expected
    if not expected:
        return False
    return hmac.compare_digest((password or "").encode("utf-8"), expected.encode("utf-8"))
