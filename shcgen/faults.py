"""
SMART Health Card Fault-Injection Matrix

Each FaultCase swaps exactly one correct construction choice for a
deliberately wrong one. resolve_parameters() turns the selected case into
the single PipelineParameters value every pipeline stage reads.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
from urllib.parse import urlsplit

from . import config


class FaultCase(str, Enum):
    """Closed set of negative fixtures a verifier is expected to reject."""
    NONE = "none"
    NO_DEFLATE = "no_deflate"
    INVALID_DEFLATE = "invalid_deflate"
    INVALID_JWS_FORMAT = "invalid_jws_format"
    INVALID_ISSUER_URL = "invalid_issuer_url"
    ISSUER_URL_HTTP = "issuer_url_http"
    ISSUER_URL_TRAILING_SLASH = "issuer_url_trailing_slash"
    WRONG_QR_HEADER = "wrong_qr_header"
    WRONG_QR_MODE = "wrong_qr_mode"
    WRONG_ISSUER_KEY = "wrong_issuer_key"
    WRONG_ISSUER_CURVE_KEY = "wrong_issuer_curve_key"
    WRONG_ISSUER_KID_KEY = "wrong_issuer_kid_key"
    WRONG_ISSUER_KTY_KEY = "wrong_issuer_kty_key"
    INVALID_HEALTHCARD_URI = "invalid_healthcard_uri"
    JWS_TOO_LONG = "jws_too_long"
    IAT_MILLISECONDS = "iat_milliseconds"
    TRAILING_CHARS = "trailing_chars"

    @classmethod
    def parse(cls, value: Union[str, "FaultCase", None]) -> "FaultCase":
        """Accept None or an empty string as the correct pipeline."""
        if value is None or value == "":
            return cls.NONE
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = [c.value for c in cls]
            raise ValueError(f"Unknown fault case '{value}': must be one of {valid}")

    @property
    def file_suffix(self) -> str:
        """Suffix appended to artifact file names."""
        return "" if self is FaultCase.NONE else f"-{self.value}"


class SegmentMode(str, Enum):
    """QR segment encoding modes."""
    BYTE = "byte"
    NUMERIC = "numeric"


class JwsFormat(str, Enum):
    COMPACT = "compact"
    FLATTENED = "flattened"


class DeflateMode(str, Enum):
    """Compression applied to the JWS body."""
    RAW = "raw"
    ZLIB = "zlib"
    NONE = "none"


KEY_FILE_BY_CASE = {
    FaultCase.WRONG_ISSUER_KEY: config.SECOND_ISSUER_KEY_FILE,
    FaultCase.WRONG_ISSUER_CURVE_KEY: config.WRONG_CURVE_KEY_FILE,
    FaultCase.WRONG_ISSUER_KID_KEY: config.WRONG_KID_KEY_FILE,
    FaultCase.WRONG_ISSUER_KTY_KEY: config.WRONG_KTY_KEY_FILE,
}

# Whitespace wrapped around text artifacts under TRAILING_CHARS
PADDING = "\n  \t"


@dataclass(frozen=True)
class PipelineParameters:
    """
    Every construction choice made by the pipeline.

    The defaults describe a correct SMART Health Card.
    """
    case: FaultCase = FaultCase.NONE

    # Payload
    issuer_scheme: Optional[str] = None
    issuer_suffix: str = ""
    health_card_uri: str = config.HEALTH_CARD_URI
    iat_divisor: int = 1000
    oversize_bundle: bool = False

    # Signer
    deflate: DeflateMode = DeflateMode.RAW
    jws_format: JwsFormat = JwsFormat.COMPACT
    key_file: str = config.ISSUER_KEY_FILE

    # Chunker
    max_single_jws_size: int = config.MAX_SINGLE_JWS_SIZE
    max_chunk_size: int = config.MAX_CHUNK_SIZE

    # Encoder
    qr_header: str = config.QR_HEADER
    qr_mode: SegmentMode = SegmentMode.NUMERIC

    # Artifacts
    padding: str = ""

    def issuer(self, base_url: str) -> str:
        """Build the iss claim from a base issuer URL."""
        url = base_url
        if self.issuer_scheme:
            parts = urlsplit(base_url)
            url = self.issuer_scheme + base_url[len(parts.scheme):]
        return url + self.issuer_suffix

    def pad(self, text: str) -> str:
        if not self.padding:
            return text
        return f"{self.padding}{text}{self.padding}"


def resolve_parameters(case: Union[str, FaultCase, None] = None) -> PipelineParameters:
    """
    Resolve a fault case into pipeline parameters.

    Any case other than NONE deviates at exactly one point. JWS_TOO_LONG
    deviates at the capacity threshold and also enlarges the bundle so the
    inflated threshold is actually crossed.
    """
    case = FaultCase.parse(case)

    if case is FaultCase.NO_DEFLATE:
        return PipelineParameters(case=case, deflate=DeflateMode.NONE)
    if case is FaultCase.INVALID_DEFLATE:
        return PipelineParameters(case=case, deflate=DeflateMode.ZLIB)
    if case is FaultCase.INVALID_JWS_FORMAT:
        return PipelineParameters(case=case, jws_format=JwsFormat.FLATTENED)
    if case is FaultCase.INVALID_ISSUER_URL:
        return PipelineParameters(case=case, issuer_suffix="invalid_url")
    if case is FaultCase.ISSUER_URL_HTTP:
        return PipelineParameters(case=case, issuer_scheme="http")
    if case is FaultCase.ISSUER_URL_TRAILING_SLASH:
        return PipelineParameters(case=case, issuer_suffix="/")
    if case is FaultCase.WRONG_QR_HEADER:
        return PipelineParameters(case=case, qr_header="shc:")
    if case is FaultCase.WRONG_QR_MODE:
        return PipelineParameters(case=case, qr_mode=SegmentMode.BYTE)
    if case in KEY_FILE_BY_CASE:
        return PipelineParameters(case=case, key_file=KEY_FILE_BY_CASE[case])
    if case is FaultCase.INVALID_HEALTHCARD_URI:
        return PipelineParameters(case=case, health_card_uri=config.WRONG_HEALTH_CARD_URI)
    if case is FaultCase.JWS_TOO_LONG:
        return PipelineParameters(
            case=case,
            oversize_bundle=True,
            max_single_jws_size=config.INFLATED_JWS_SIZE,
            max_chunk_size=config.INFLATED_JWS_SIZE,
        )
    if case is FaultCase.IAT_MILLISECONDS:
        return PipelineParameters(case=case, iat_divisor=1)
    if case is FaultCase.TRAILING_CHARS:
        return PipelineParameters(case=case, padding=PADDING)

    return PipelineParameters()
