"""
Key management module for the SMART Health Card generator.

Loads issuer signing keys from JWKS files, selects one by issuer index,
and generates the key sets used by the fault cases.

EC keys (P-256, P-384) sign through `cryptography`; OKP Ed25519 keys
sign through PyNaCl.
"""

import json
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature
from nacl.signing import SigningKey

from . import config
from .errors import KeyMaterialFailure
from .hashing import jwk_thumbprint
from .util import b64url_decode, b64url_encode, bytes_to_int, int_to_bytes


# curve name -> (curve, coordinate size, hash, JWS alg)
EC_CURVES = {
    "P-256": (ec.SECP256R1, 32, hashes.SHA256, "ES256"),
    "P-384": (ec.SECP384R1, 48, hashes.SHA384, "ES384"),
}

PRIVATE_MEMBERS = ("d", "p", "q", "dp", "dq", "qi")


class IssuerKey(ABC):
    """A private JWK able to produce JWS signatures."""

    def __init__(self, jwk: Dict[str, Any]):
        self.jwk = dict(jwk)

    @property
    def kid(self) -> Optional[str]:
        return self.jwk.get("kid")

    @property
    def kty(self) -> str:
        return self.jwk["kty"]

    @property
    @abstractmethod
    def alg(self) -> str:
        """JWS algorithm name for the protected header."""
        pass

    @abstractmethod
    def sign(self, signing_input: bytes) -> bytes:
        """
        Sign the JWS signing input.

        Returns:
            Raw signature bytes in JWS form
        """
        pass

    def public_jwk(self) -> Dict[str, Any]:
        """Public half of the key, as published in a JWKS."""
        return {k: v for k, v in self.jwk.items() if k not in PRIVATE_MEMBERS}


class EcIssuerKey(IssuerKey):
    """ECDSA key; signatures are the fixed-width r || s concatenation."""

    def __init__(self, jwk: Dict[str, Any]):
        super().__init__(jwk)
        crv = jwk.get("crv")
        if crv not in EC_CURVES:
            raise KeyMaterialFailure(f"Unsupported EC curve: {crv}")
        curve, self._size, self._hash, self._alg = EC_CURVES[crv]
        try:
            d = bytes_to_int(b64url_decode(jwk["d"]))
            self._key = ec.derive_private_key(d, curve())
        except (KeyError, ValueError) as e:
            raise KeyMaterialFailure(f"Invalid EC private key: {e}") from e

    @property
    def alg(self) -> str:
        return self._alg

    def sign(self, signing_input: bytes) -> bytes:
        der = self._key.sign(signing_input, ec.ECDSA(self._hash()))
        r, s = decode_dss_signature(der)
        return int_to_bytes(r, self._size) + int_to_bytes(s, self._size)


class OkpIssuerKey(IssuerKey):
    """Ed25519 key (RFC 8037)."""

    def __init__(self, jwk: Dict[str, Any]):
        super().__init__(jwk)
        if jwk.get("crv") != "Ed25519":
            raise KeyMaterialFailure(f"Unsupported OKP curve: {jwk.get('crv')}")
        try:
            self._sk = SigningKey(b64url_decode(jwk["d"]))
        except (KeyError, TypeError, ValueError) as e:
            raise KeyMaterialFailure(f"Invalid Ed25519 private key: {e}") from e

    @property
    def alg(self) -> str:
        return "EdDSA"

    def sign(self, signing_input: bytes) -> bytes:
        return self._sk.sign(signing_input).signature


def key_from_jwk(jwk: Dict[str, Any]) -> IssuerKey:
    """Build the signing key matching a JWK's kty."""
    if not isinstance(jwk, dict):
        raise KeyMaterialFailure("JWK must be an object")
    kty = jwk.get("kty")
    if kty == "EC":
        return EcIssuerKey(jwk)
    if kty == "OKP":
        return OkpIssuerKey(jwk)
    raise KeyMaterialFailure(f"Unsupported key type: {kty}")


@dataclass
class KeySet:
    """Private keys loaded from one JWKS file."""
    path: str
    keys: List[IssuerKey]

    def select(self, index: int) -> IssuerKey:
        """Select an issuer key by index."""
        if index < 0 or index >= len(self.keys):
            raise KeyMaterialFailure(
                f"Issuer index {index} out of range ({len(self.keys)} keys)", self.path
            )
        return self.keys[index]


def load_key_set(path: Union[str, Path]) -> KeySet:
    """
    Load a private JWKS file.

    Raises:
        KeyMaterialFailure: if the file is missing, unparseable, or empty
    """
    path = str(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise KeyMaterialFailure("Key file not found", path) from e
    except (OSError, json.JSONDecodeError) as e:
        raise KeyMaterialFailure(f"Cannot parse key file: {e}", path) from e

    jwks = raw.get("keys") if isinstance(raw, dict) else None
    if not isinstance(jwks, list) or not jwks:
        raise KeyMaterialFailure("Key file has no keys", path)

    return KeySet(path=path, keys=[key_from_jwk(jwk) for jwk in jwks])


class KeyStore:
    """
    Read-only cache of key sets in a directory.

    Each file is parsed once per process and shared by every pipeline run.
    """

    def __init__(self, key_dir: Union[str, Path] = config.KEY_DIR):
        self._key_dir = Path(key_dir)
        self._lock = threading.RLock()
        self._sets: Dict[str, KeySet] = {}

    def key_set(self, file_name: str) -> KeySet:
        with self._lock:
            if file_name not in self._sets:
                self._sets[file_name] = load_key_set(self._key_dir / file_name)
            return self._sets[file_name]

    def signing_key(self, file_name: str, index: int = 0) -> IssuerKey:
        return self.key_set(file_name).select(index)


# ============================================================
# Key Generation
# ============================================================

def generate_ec_jwk(crv: str = "P-256", kid: Optional[str] = None) -> Dict[str, Any]:
    """
    Generate a private EC JWK.

    Args:
        crv: "P-256" or "P-384"
        kid: Key id; defaults to the RFC 7638 thumbprint
    """
    curve, size, _, alg = EC_CURVES[crv]
    key = ec.generate_private_key(curve())
    numbers = key.private_numbers()
    jwk = {
        "kty": "EC",
        "use": "sig",
        "alg": alg,
        "crv": crv,
        "x": b64url_encode(int_to_bytes(numbers.public_numbers.x, size)),
        "y": b64url_encode(int_to_bytes(numbers.public_numbers.y, size)),
        "d": b64url_encode(int_to_bytes(numbers.private_value, size)),
    }
    jwk["kid"] = kid or jwk_thumbprint(jwk)
    return jwk


def generate_okp_jwk(kid: Optional[str] = None) -> Dict[str, Any]:
    """Generate a private Ed25519 JWK."""
    sk = SigningKey.generate()
    jwk = {
        "kty": "OKP",
        "use": "sig",
        "alg": "EdDSA",
        "crv": "Ed25519",
        "x": b64url_encode(bytes(sk.verify_key)),
        "d": b64url_encode(bytes(sk)),
    }
    jwk["kid"] = kid or jwk_thumbprint(jwk)
    return jwk


def generate_key_sets(key_dir: Union[str, Path]) -> Dict[str, str]:
    """
    Write the issuer key set and every wrong-key variant.

    Each private JWKS gets a public counterpart beside it.

    Returns:
        Dict of private file name -> path written
    """
    key_dir = Path(key_dir)
    key_dir.mkdir(parents=True, exist_ok=True)

    # The wrong-kid key carries the thumbprint of an unrelated key
    decoy_kid = jwk_thumbprint(generate_ec_jwk("P-256"))

    key_sets = {
        config.ISSUER_KEY_FILE: generate_ec_jwk("P-256"),
        config.SECOND_ISSUER_KEY_FILE: generate_ec_jwk("P-256"),
        config.WRONG_CURVE_KEY_FILE: generate_ec_jwk("P-384"),
        config.WRONG_KID_KEY_FILE: generate_ec_jwk("P-256", kid=decoy_kid),
        config.WRONG_KTY_KEY_FILE: generate_okp_jwk(),
    }

    written = {}
    for file_name, jwk in key_sets.items():
        private_path = key_dir / file_name
        with open(private_path, "w", encoding="utf-8") as f:
            json.dump({"keys": [jwk]}, f, indent=2)

        public = key_from_jwk(jwk).public_jwk()
        with open(key_dir / config.public_key_file(file_name), "w", encoding="utf-8") as f:
            json.dump({"keys": [public]}, f, indent=2)

        written[file_name] = str(private_path)

    return written
