"""
SMART Health Card JWS Signing

Serializes a payload, compresses it with raw DEFLATE (RFC 1951) and signs
it as a JWS (RFC 7515). Compact serialization is the correct form; the
flattened JSON form exists only as a fault case.
"""

import json
import zlib
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from .canonicalization import serialize
from .errors import KeyMaterialFailure
from .faults import DeflateMode, JwsFormat, PipelineParameters
from .keys import IssuerKey
from .logging_config import event_log
from .payload import CredentialPayload
from .util import b64url_encode


@dataclass(frozen=True)
class SignedToken:
    """
    A signed JWS.

    `value` is the wire string: three dot-separated base64url segments
    for compact serialization, a JSON object for flattened.
    """
    value: str
    protected_header: Dict[str, Any] = field(hash=False)
    body: bytes
    serialization: JwsFormat = JwsFormat.COMPACT

    @property
    def is_compact(self) -> bool:
        return self.serialization is JwsFormat.COMPACT

    def __str__(self) -> str:
        return self.value

    def __len__(self) -> int:
        return len(self.value)


def deflate_raw(data: bytes) -> bytes:
    """DEFLATE without zlib header or checksum."""
    compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, -zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


def deflate_wrapped(data: bytes) -> bytes:
    """DEFLATE with zlib header and Adler-32 trailer (RFC 1950)."""
    return zlib.compress(data)


def compress_body(data: bytes, mode: DeflateMode) -> bytes:
    if mode is DeflateMode.RAW:
        return deflate_raw(data)
    if mode is DeflateMode.ZLIB:
        return deflate_wrapped(data)
    return data


def protected_header(key: IssuerKey, compressed: bool) -> Dict[str, Any]:
    """
    Build the JWS protected header.

    The zip field is declared whenever the body is compressed, even when
    the compression is not raw DEFLATE.
    """
    header: Dict[str, Any] = {}
    if compressed:
        header["zip"] = "DEF"
    header["alg"] = key.alg
    if key.kid:
        header["kid"] = key.kid
    return header


def sign_payload(
    payload: Union[CredentialPayload, Dict[str, Any]],
    key: Optional[IssuerKey],
    params: Optional[PipelineParameters] = None,
) -> SignedToken:
    """
    Sign a health card payload.

    Args:
        payload: CredentialPayload or claims dict
        key: Issuer signing key
        params: Pipeline parameters (default: correct construction)

    Returns:
        SignedToken

    Raises:
        SerializationFailure: if the payload cannot be serialized
        KeyMaterialFailure: if no key is available
    """
    params = params or PipelineParameters()
    if key is None:
        raise KeyMaterialFailure("No signing key available")

    claims = payload.to_dict() if isinstance(payload, CredentialPayload) else payload
    body = compress_body(serialize(claims), params.deflate)
    compressed = params.deflate is not DeflateMode.NONE

    header = protected_header(key, compressed)
    encoded_header = b64url_encode(serialize(header))
    encoded_body = b64url_encode(body)
    signing_input = f"{encoded_header}.{encoded_body}".encode("ascii")
    encoded_signature = b64url_encode(key.sign(signing_input))

    if params.jws_format is JwsFormat.FLATTENED:
        value = json.dumps(
            {"payload": encoded_body, "protected": encoded_header, "signature": encoded_signature},
            separators=(",", ":"),
        )
    else:
        value = f"{encoded_header}.{encoded_body}.{encoded_signature}"

    event_log.token_signed(key.kid, key.alg, len(value), compressed)

    return SignedToken(
        value=value,
        protected_header=header,
        body=body,
        serialization=params.jws_format,
    )
