"""
Artifact writer for generated health card examples.

Writes one file per pipeline stage output plus an index.md linking
every example:

    example-NN-a-fhirBundle.json
    example-NN-b-jws-payload-expanded.json
    example-NN-c-jws-payload-minified.json
    example-NN-d-jws.txt
    example-NN-e-file.smart-health-card
    example-NN-f-qr-code-numeric-value-I.txt
    example-NN-g-qr-code-I.svg

Fault-case runs append "-<case>" to every name before the extension.
"""

from pathlib import Path
from typing import Any, Dict, List, Union

from .canonicalization import serialize_pretty, serialize_str
from .faults import PipelineParameters
from .logging_config import event_log


def example_prefix(number: int) -> str:
    return f"example-{number:02d}-"


def artifact_names(number: int, qr_count: int, suffix: str = "") -> Dict[str, Any]:
    """
    File names for one example.

    Returns:
        Dict with keys a-e (str) and f, g (lists, one per QR code)
    """
    prefix = example_prefix(number)
    return {
        "a": f"{prefix}a-fhirBundle{suffix}.json",
        "b": f"{prefix}b-jws-payload-expanded{suffix}.json",
        "c": f"{prefix}c-jws-payload-minified{suffix}.json",
        "d": f"{prefix}d-jws{suffix}.txt",
        "e": f"{prefix}e-file{suffix}.smart-health-card",
        "f": [f"{prefix}f-qr-code-numeric-value-{i}{suffix}.txt" for i in range(qr_count)],
        "g": [f"{prefix}g-qr-code-{i}{suffix}.svg" for i in range(qr_count)],
    }


def _write(path: Path, text: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


def write_example(
    outdir: Union[str, Path],
    number: int,
    example: Any,
    params: PipelineParameters,
) -> List[str]:
    """
    Write every artifact of one processed example.

    Args:
        outdir: Output directory (must exist)
        number: Example number used in file names
        example: ExampleResult from the pipeline
        params: Pipeline parameters (file suffix and padding)

    Returns:
        File names written, in index order
    """
    outdir = Path(outdir)
    names = artifact_names(number, len(example.qr_numeric), params.case.file_suffix)

    _write(outdir / names["a"], serialize_pretty(example.fhir_bundle))
    _write(outdir / names["b"], serialize_pretty(example.payload))
    _write(outdir / names["c"], serialize_str(example.payload))
    _write(outdir / names["d"], params.pad(example.token.value))
    _write(outdir / names["e"], params.pad(serialize_pretty(example.file)))
    for name, numeric in zip(names["f"], example.qr_numeric):
        _write(outdir / name, params.pad(numeric))
    for name, svg in zip(names["g"], example.qr_svg):
        _write(outdir / name, svg)

    files = [names["a"], names["b"], names["c"], names["d"], names["e"], *names["f"], *names["g"]]
    event_log.example_written(len(files))
    return files


def render_index(index: Dict[int, List[str]]) -> str:
    """Markdown index linking every example's files."""
    sections = [
        f"## Example {number}\n\n" + "\n".join(f"* [{f}](./{f})" for f in files)
        for number, files in sorted(index.items())
    ]
    return "# Example Resources \n" + "\n\n".join(sections)


def write_index(outdir: Union[str, Path], index: Dict[int, List[str]]) -> Path:
    path = Path(outdir) / "index.md"
    _write(path, render_index(index))
    return path
