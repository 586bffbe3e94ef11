"""
SMART Health Card QR Encoding

Each JWS chunk becomes two QR segments:

- a byte-mode header, "shc:/" plus "<i>/<n>/" when there are several chunks
- a numeric-mode body, each JWS character as two decimal digits
  (code point minus 45, the code point of "-")

The same segments give the flat numeric string and the SVG image.
"""

import io
from dataclasses import dataclass
from typing import List, Optional, Tuple

import qrcode
import qrcode.image.svg
from qrcode.util import MODE_8BIT_BYTE, MODE_NUMBER, QRData

from . import config
from .faults import PipelineParameters, SegmentMode


QR_MODES = {
    SegmentMode.BYTE: MODE_8BIT_BYTE,
    SegmentMode.NUMERIC: MODE_NUMBER,
}


@dataclass(frozen=True)
class QRSegment:
    """One QR segment and the mode it is declared in."""
    data: str
    mode: SegmentMode

    def to_qr_data(self) -> QRData:
        return QRData(self.data, mode=QR_MODES[self.mode])


@dataclass(frozen=True)
class QRCodeSegments:
    """Header and body segments for one chunk."""
    header: QRSegment
    body: QRSegment

    @property
    def segments(self) -> Tuple[QRSegment, QRSegment]:
        return (self.header, self.body)

    def numeric_string(self) -> str:
        """Flat text form: header data followed by body data."""
        return "".join(s.data for s in self.segments)


def encode_char(c: str) -> str:
    """Two-digit code for one base64url character."""
    code = ord(c) - config.SMALLEST_B64_CHAR_CODE
    if not 0 <= code <= 99:
        raise ValueError(f"Character {c!r} outside the numeric QR alphabet")
    return f"{code // 10}{code % 10}"


def encode_numeric(chunk: str) -> str:
    """Map a JWS chunk to its digit-pair string."""
    return "".join(encode_char(c) for c in chunk)


def decode_numeric(digits: str) -> str:
    """Inverse of encode_numeric."""
    if len(digits) % 2:
        raise ValueError("Numeric QR data must have an even number of digits")
    return "".join(
        chr(int(digits[i:i + 2]) + config.SMALLEST_B64_CHAR_CODE)
        for i in range(0, len(digits), 2)
    )


def chunk_header(prefix: str, index: int, total: int) -> str:
    """Header text; the index/total suffix only appears for multi-chunk tokens."""
    if total > 1:
        return f"{prefix}{index + 1}/{total}/"
    return prefix


def to_numeric_qr(
    chunk: str,
    index: int,
    total: int,
    params: Optional[PipelineParameters] = None,
) -> QRCodeSegments:
    """Build the segment pair for chunk `index` of `total`."""
    params = params or PipelineParameters()
    return QRCodeSegments(
        header=QRSegment(chunk_header(params.qr_header, index, total), SegmentMode.BYTE),
        body=QRSegment(encode_numeric(chunk), params.qr_mode),
    )


def encode_chunks(chunks: List[str], params: Optional[PipelineParameters] = None) -> List[QRCodeSegments]:
    """Build segment pairs for every chunk, in chunk order."""
    return [to_numeric_qr(c, i, len(chunks), params) for i, c in enumerate(chunks)]


def build_qr_code(segments: QRCodeSegments) -> qrcode.QRCode:
    """
    Lay out a QR code from explicit segments at error correction level L.

    Segments are added as-is so each keeps its declared mode.
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        image_factory=qrcode.image.svg.SvgPathImage,
    )
    for segment in segments.segments:
        qr.add_data(segment.to_qr_data())
    qr.make(fit=True)
    return qr


def render_svg(segments: QRCodeSegments) -> str:
    """Render a segment pair as SVG markup."""
    image = build_qr_code(segments).make_image()
    buffer = io.BytesIO()
    image.save(buffer)
    return buffer.getvalue().decode("utf-8")
