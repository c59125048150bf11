from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated viewer extracted from a validated bearer token.

    user_id is the token's subject, passed through to the progress store
    as an opaque owner id.
    """

    user_id: str
