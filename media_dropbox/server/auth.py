"""Shared-password authentication for the dropbox API."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request


logger = logging.getLogger(__name__)

_FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


class AuthenticationError(RuntimeError):
    """Raised when a request does not carry the configured password."""


def bearer_matches(header: Optional[str], password: str) -> bool:
    """Return True when an ``Authorization`` header carries the password.

    The header only has to start with ``Bearer`` and end with the password,
    so longer tokens that end in the password are accepted as well.
    """

    if not header or not password:
        return False
    return header.startswith("Bearer") and header.endswith(password)


async def body_password(request: Request) -> Optional[str]:
    """Return the ``password`` field of a JSON or form body, if any."""

    content_type = request.headers.get("content-type", "").lower()
    value: object = None
    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except (ValueError, UnicodeDecodeError):
            return None
        if isinstance(payload, dict):
            value = payload.get("password")
    elif content_type.startswith(_FORM_TYPES):
        form = await request.form()
        value = form.get("password")
    return value if isinstance(value, str) else None


class PasswordAuth:
    """Dependency accepting either a Bearer header or a body ``password`` field."""

    def __init__(self, password: Optional[str]) -> None:
        self._expected = password or ""

    async def __call__(self, request: Request) -> None:
        if not self._expected:
            logger.warning("Rejecting %s %s: no password configured", request.method, request.url.path)
            raise AuthenticationError("Password is not configured.")
        if bearer_matches(request.headers.get("authorization"), self._expected):
            return
        if await body_password(request) == self._expected:
            return
        raise AuthenticationError("Invalid password.")


__all__ = ["AuthenticationError", "PasswordAuth", "bearer_matches", "body_password"]
