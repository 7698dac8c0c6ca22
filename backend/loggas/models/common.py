from __future__ import annotations

import uuid


def new_id() -> str:
    """Generated document id (32 hex chars)."""
    return uuid.uuid4().hex
