"""
SMART Health Card Generation Pipeline

Bundle -> trim -> payload -> sign -> chunk -> QR segments -> SVG.

Bundles are independent: generate_examples() runs one task per bundle and
joins them all. A bundle that fails is logged and left out of the index;
the others are unaffected. Key material is loaded once, before any task
starts, and shared read-only.
"""

import asyncio
import base64
import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from . import config
from .artifacts import write_example, write_index
from .chunking import chunk_token
from .errors import GeneratorError, SerializationFailure
from .faults import FaultCase, PipelineParameters, resolve_parameters
from .keys import IssuerKey, KeyStore
from .logging_config import event_log, set_example_id
from .payload import build_payload, credential_type_tags
from .qr import QRCodeSegments, encode_chunks, render_svg
from .signing import SignedToken, sign_payload
from .sources import load_bundle
from .trimming import trim_bundle
from .util import now_epoch_ms


@dataclass
class ExampleResult:
    """Everything produced for one source bundle."""
    fhir_bundle: Dict[str, Any]
    payload: Dict[str, Any]
    token: SignedToken
    qr_segments: List[QRCodeSegments] = field(default_factory=list)
    qr_svg: List[str] = field(default_factory=list)

    @property
    def qr_numeric(self) -> List[str]:
        return [s.numeric_string() for s in self.qr_segments]

    @property
    def file(self) -> Dict[str, Any]:
        """Contents of the .smart-health-card file."""
        return {"verifiableCredential": [self.token.value]}


@dataclass
class GenerationReport:
    """Outcome of a generation run."""
    outdir: str
    case: FaultCase
    index: Dict[int, List[str]] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)

    def succeeded(self) -> bool:
        return not self.failures


def oversize_entry(length: int = 1600) -> Dict[str, Any]:
    """
    A Location entry whose name barely compresses.

    Deterministic filler from a SHA-256 chain keeps fixtures reproducible
    while pushing the JWS past the single QR limit.
    """
    digest = b"oversize"
    filler = b""
    while len(filler) * 4 // 3 < length:
        digest = hashlib.sha256(digest).digest()
        filler += digest
    name = base64.urlsafe_b64encode(filler).decode("ascii")[:length]
    return {
        "fullUrl": "resource:oversize",
        "resource": {
            "resourceType": "Location",
            "name": f"This_is_a_very_long_name_exceeding_the_QR_limit_{name}",
        },
    }


def prepare_source(bundle: Dict[str, Any], params: PipelineParameters) -> Dict[str, Any]:
    """Apply source-level fault parameters without touching the caller's bundle."""
    if not params.oversize_bundle:
        return bundle
    source = dict(bundle)
    source["entry"] = [*(bundle.get("entry") or []), oversize_entry()]
    return source


async def process_bundle(
    bundle: Dict[str, Any],
    key: IssuerKey,
    params: Optional[PipelineParameters] = None,
    issuer_url: str = config.ISSUER_URL,
    clock: Callable[[], int] = now_epoch_ms,
    source: str = "<memory>",
) -> ExampleResult:
    """
    Run the full pipeline for one bundle.

    QR images are rendered off the event loop and gathered in chunk order.
    Tokens that are not compact JWS cannot be numerically encoded and get
    no QR codes.
    """
    params = params or PipelineParameters()

    trimmed = trim_bundle(prepare_source(bundle, params))
    event_log.bundle_trimmed(source, len(trimmed.get("entry") or []))

    payload = build_payload(trimmed, params, credential_type_tags(trimmed), issuer_url, clock)
    token = sign_payload(payload, key, params)
    result = ExampleResult(fhir_bundle=trimmed, payload=payload.to_dict(), token=token)

    if not token.is_compact:
        event_log.qr_skipped(f"{token.serialization.value} serialization is not QR encodable")
        return result

    chunks = chunk_token(token.value, params.max_single_jws_size, params.max_chunk_size)
    event_log.token_chunked(len(token), len(chunks))

    result.qr_segments = encode_chunks(chunks, params)
    result.qr_svg = list(await asyncio.gather(
        *(asyncio.to_thread(render_svg, segments) for segments in result.qr_segments)
    ))
    return result


async def generate_examples(
    sources: Sequence[Union[str, Path]],
    outdir: Union[str, Path],
    case: Union[str, FaultCase, None] = None,
    key_dir: Union[str, Path] = config.KEY_DIR,
    issuer_index: int = config.ISSUER_INDEX,
    issuer_url: str = config.ISSUER_URL,
    clock: Callable[[], int] = now_epoch_ms,
) -> GenerationReport:
    """
    Generate example artifacts for every source bundle.

    Raises:
        KeyMaterialFailure: before any bundle is processed
    """
    params = resolve_parameters(case)
    event_log.fault_case_selected(params.case.value)

    key = KeyStore(key_dir).signing_key(params.key_file, issuer_index)

    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    async def run(number: int, path: Union[str, Path]) -> List[str]:
        set_example_id(f"example-{number:02d}")
        bundle = await load_bundle(path)
        try:
            example = await process_bundle(bundle, key, params, issuer_url, clock, source=str(path))
            return await asyncio.to_thread(write_example, outdir, number, example, params)
        except GeneratorError:
            raise
        except Exception as e:
            # Any other failure stays confined to this example
            raise SerializationFailure(f"Cannot generate example from {path}: {e!r}") from e

    results = await asyncio.gather(
        *(run(i, path) for i, path in enumerate(sources)),
        return_exceptions=True,
    )

    report = GenerationReport(outdir=str(outdir), case=params.case)
    for number, (path, outcome) in enumerate(zip(sources, results)):
        if isinstance(outcome, GeneratorError):
            event_log.example_failed(str(path), str(outcome))
            report.failures[str(path)] = str(outcome)
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            report.index[number] = outcome

    write_index(outdir, report.index)
    return report
