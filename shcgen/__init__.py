"""
SMART Health Card Example Generator

Version: 1.0.0
License: Apache 2.0

Turns a FHIR Bundle into a SMART Health Card: a trimmed bundle inside a
signed, DEFLATE-compressed JWS, split into QR-sized chunks, each rendered
as a numeric "shc:/" string and an SVG QR code.

Every stage can be bent by one fault-injection case, producing negative
fixtures for health card verifiers.

Usage:
    from shcgen import (
        KeyStore,
        resolve_parameters,
        process_bundle,
    )

    params = resolve_parameters("no_deflate")
    key = KeyStore("config/keys").signing_key(params.key_file)

    result = asyncio.run(process_bundle(bundle, key, params))

    result.token.value      # the JWS
    result.qr_numeric       # ["shc:/5676290952432060346029..."]
    result.qr_svg           # ["<?xml version='1.0' ...<svg ..."]
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

# Errors
from .errors import (
    GeneratorError,
    SourceFetchFailure,
    KeyMaterialFailure,
    SerializationFailure,
)

# Serialization and hashing
from .canonicalization import canonicalize, serialize, serialize_str, serialize_pretty
from .hashing import jwk_thumbprint

# Fault-injection matrix
from .faults import (
    FaultCase,
    PipelineParameters,
    SegmentMode,
    JwsFormat,
    DeflateMode,
    resolve_parameters,
)

# Pipeline stages
from .trimming import trim_bundle, BundleTrimmer, PruneRule, PRUNE_RULES
from .payload import CredentialPayload, build_payload, credential_type_tags
from .keys import (
    IssuerKey,
    KeySet,
    KeyStore,
    load_key_set,
    generate_key_sets,
)
from .signing import SignedToken, sign_payload
from .chunking import chunk_token
from .qr import QRSegment, QRCodeSegments, encode_chunks, encode_numeric, decode_numeric, render_svg

# Orchestration
from .pipeline import ExampleResult, GenerationReport, process_bundle, generate_examples


__all__ = [
    "__version__",

    # Errors
    "GeneratorError",
    "SourceFetchFailure",
    "KeyMaterialFailure",
    "SerializationFailure",

    # Serialization
    "canonicalize",
    "serialize",
    "serialize_str",
    "serialize_pretty",
    "jwk_thumbprint",

    # Faults
    "FaultCase",
    "PipelineParameters",
    "SegmentMode",
    "JwsFormat",
    "DeflateMode",
    "resolve_parameters",

    # Stages
    "trim_bundle",
    "BundleTrimmer",
    "PruneRule",
    "PRUNE_RULES",
    "CredentialPayload",
    "build_payload",
    "credential_type_tags",
    "IssuerKey",
    "KeySet",
    "KeyStore",
    "load_key_set",
    "generate_key_sets",
    "SignedToken",
    "sign_payload",
    "chunk_token",
    "QRSegment",
    "QRCodeSegments",
    "encode_chunks",
    "encode_numeric",
    "decode_numeric",
    "render_svg",

    # Orchestration
    "ExampleResult",
    "GenerationReport",
    "process_bundle",
    "generate_examples",
]
