"""
SMART Health Card Hashing

SHA-256 digests and RFC 7638 JWK thumbprints. Issuer key ids are the
base64url thumbprint of the public key.
"""

import hashlib
from typing import Any, Dict, Union

from .canonicalization import canonicalize
from .util import b64url_encode


# Required members per key type (RFC 7638 Section 3.2, RFC 8037 Section 2)
THUMBPRINT_MEMBERS = {
    "EC": ("crv", "kty", "x", "y"),
    "OKP": ("crv", "kty", "x"),
    "RSA": ("e", "kty", "n"),
}


def sha256_digest(data: Union[bytes, str]) -> bytes:
    """Compute the raw SHA-256 digest."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).digest()


def jwk_thumbprint(jwk: Dict[str, Any]) -> str:
    """
    Compute the RFC 7638 thumbprint of a JWK.

    Only the required public members take part, so the private and
    public halves of a key share a thumbprint.
    """
    kty = jwk.get("kty")
    members = THUMBPRINT_MEMBERS.get(kty)
    if members is None:
        raise ValueError(f"Unsupported key type for thumbprint: {kty}")

    missing = [m for m in members if m not in jwk]
    if missing:
        raise ValueError(f"JWK missing required members: {missing}")

    canonical_bytes = canonicalize({m: jwk[m] for m in members})
    return b64url_encode(sha256_digest(canonical_bytes))
