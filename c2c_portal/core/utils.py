"""
Shared utility functions for the portal.

This module contains common utilities used across the codebase.
"""

from __future__ import annotations

import hashlib
import secrets
import uuid
from datetime import datetime, timezone


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.

    Args:
        prefix: Optional prefix (e.g., "usr", "intern", "tok")

    Returns:
        A unique ID like "usr_a1b2c3d4e5f6"
    """
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def generate_token(nbytes: int = 32) -> str:
    """Random hex token for email links (verification, password reset)."""
    return secrets.token_hex(nbytes)


def hash_token(token: str) -> str:
    """SHA-256 digest of a link token; only the digest is ever stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def normalize_email(email: str) -> str:
    return email.strip().lower()
