"""JWT helpers for decoding bearer tokens."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import jwt


def decode_token(
    token: str,
    *,
    secret: str,
    algorithms: Sequence[str],
    audience: str | None = None,
    issuer: str | None = None,
) -> dict[str, Any]:
    """Decode a JWT and return its payload. ``sub`` is always required."""

    return jwt.decode(
        token,
        secret,
        algorithms=list(algorithms),
        audience=audience,
        issuer=issuer,
        options={"require": ["sub"]},
    )
