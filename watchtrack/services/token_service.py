"""Bearer token verification (ES256) for tokens minted by the identity provider.

Production: AUTH_PUBLIC_KEY holds the provider's PEM-encoded EC public
key and this service can only verify.

Dev/test: no key configured, so an ephemeral EC key pair is generated on
import and create_access_token() can mint tokens locally.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import load_pem_public_key

from watchtrack.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = "auth-service"
AUDIENCE = "auth-service"
ACCESS_TOKEN_TTL_MIN = 15

_private_key: ec.EllipticCurvePrivateKey | None
_public_key: ec.EllipticCurvePublicKey

if SETTINGS.auth_public_key:
    _private_key = None
    _loaded = load_pem_public_key(SETTINGS.auth_public_key.encode())
    if not isinstance(_loaded, ec.EllipticCurvePublicKey):
        raise ValueError("AUTH_PUBLIC_KEY must be an EC public key for ES256")
    _public_key = _loaded
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(*, sub: str) -> str:
    """Mint an access token with the local dev key.

    Raises RuntimeError when running against a real identity provider
    key, since only the provider holds the private half.
    """
    if _private_key is None:
        raise RuntimeError("token minting is disabled when AUTH_PUBLIC_KEY is set")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins algorithm to ES256 to prevent alg:none and alg-switching attacks.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
