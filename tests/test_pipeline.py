"""
End-to-end pipeline tests: one bundle in memory, and full generation runs
writing artifacts to disk.
"""

import asyncio
import copy
import dataclasses
import json

import pytest

from shcgen import (
    FaultCase,
    KeyMaterialFailure,
    SerializationFailure,
    decode_numeric,
    generate_examples,
    process_bundle,
    resolve_parameters,
)
from shcgen import config, pipeline
from shcgen.faults import PADDING

from bundle_fixtures import IMMUNIZATION_BUNDLE, LAB_BUNDLE, fixed_clock, load_example

ISSUER = "https://smarthealth.cards/examples/issuer"


def run(bundle, key_store, case=None, params=None):
    params = params or resolve_parameters(case)
    key = key_store.signing_key(params.key_file)
    return asyncio.run(process_bundle(bundle, key, params, ISSUER, fixed_clock))


def test_correct_example(bundle, key_store):
    result = run(bundle, key_store)

    assert len(result.token) <= config.MAX_SINGLE_JWS_SIZE
    [numeric] = result.qr_numeric
    assert numeric.startswith("shc:/567629")
    assert decode_numeric(numeric[len("shc:/"):]) == result.token.value
    assert len(result.qr_svg) == 1
    assert result.payload["iss"] == ISSUER
    assert result.file == {"verifiableCredential": [result.token.value]}


def test_payload_types_follow_bundle(bundle, key_store):
    result = run(bundle, key_store)
    assert result.payload["vc"]["type"] == [
        "VerifiableCredential",
        config.HEALTH_CARD_URI,
        config.IMMUNIZATION_URI,
        config.COVID19_URI,
    ]


def test_input_not_mutated(bundle, key_store):
    original = copy.deepcopy(bundle)
    run(bundle, key_store, "jws_too_long")
    assert bundle == original


def test_jws_too_long_single_chunk(bundle, key_store):
    result = run(bundle, key_store, "jws_too_long")

    assert len(result.token) > config.MAX_SINGLE_JWS_SIZE
    assert len(result.qr_numeric) == 1
    assert result.qr_numeric[0].startswith("shc:/5676")
    assert result.fhir_bundle["entry"][-1]["fullUrl"] == "resource:3"


def test_small_limits_give_multiple_chunks(bundle, key_store):
    params = dataclasses.replace(resolve_parameters(), max_single_jws_size=400, max_chunk_size=400)
    result = run(bundle, key_store, params=params)

    total = len(result.qr_numeric)
    assert total > 1
    assert len(result.qr_svg) == total
    for i, numeric in enumerate(result.qr_numeric):
        assert numeric.startswith(f"shc:/{i + 1}/{total}/")

    prefix_lengths = [len(f"shc:/{i + 1}/{total}/") for i in range(total)]
    joined = "".join(decode_numeric(n[p:]) for n, p in zip(result.qr_numeric, prefix_lengths))
    assert joined == result.token.value


def test_cyclic_bundle_rejected(bundle, key_store):
    resource = bundle["entry"][1]["resource"]
    resource["extension"] = [{"url": "urn:example:self"}]
    resource["extension"][0]["self"] = resource

    with pytest.raises(SerializationFailure, match="Circular reference"):
        run(bundle, key_store)


def test_flattened_token_has_no_qr(bundle, key_store):
    result = run(bundle, key_store, "invalid_jws_format")
    assert not result.token.is_compact
    assert result.qr_numeric == []
    assert result.qr_svg == []


def test_wrong_qr_mode_keeps_numeric_text(bundle, key_store):
    correct = run(bundle, key_store)
    result = run(bundle, key_store, "wrong_qr_mode")
    assert result.qr_numeric[0].startswith("shc:/")
    assert len(result.qr_numeric[0]) == len(correct.qr_numeric[0])


class TestGenerateExamples:

    def generate(self, tmp_path, key_dir, sources, case=None):
        return asyncio.run(generate_examples(
            sources,
            tmp_path / "out",
            case=case,
            key_dir=key_dir,
            issuer_url=ISSUER,
            clock=fixed_clock,
        ))

    def test_writes_artifacts_and_index(self, tmp_path, key_dir):
        report = self.generate(tmp_path, key_dir, [IMMUNIZATION_BUNDLE, LAB_BUNDLE])
        out = tmp_path / "out"

        assert report.succeeded()
        assert sorted(report.index) == [0, 1]
        for files in report.index.values():
            assert all((out / f).exists() for f in files)

        token = (out / "example-00-d-jws.txt").read_text(encoding="utf-8")
        card = json.loads((out / "example-00-e-file.smart-health-card").read_text(encoding="utf-8"))
        assert card == {"verifiableCredential": [token]}
        assert (out / "example-01-g-qr-code-0.svg").exists()

        index = (out / "index.md").read_text(encoding="utf-8")
        assert index.startswith("# Example Resources \n")
        assert "## Example 0" in index and "## Example 1" in index
        assert "* [example-01-a-fhirBundle.json](./example-01-a-fhirBundle.json)" in index

    def test_fault_case_suffix(self, tmp_path, key_dir):
        report = self.generate(tmp_path, key_dir, [IMMUNIZATION_BUNDLE], "no_deflate")

        assert report.case is FaultCase.NO_DEFLATE
        assert "example-00-d-jws-no_deflate.txt" in report.index[0]

    def test_trailing_chars(self, tmp_path, key_dir):
        self.generate(tmp_path, key_dir, [IMMUNIZATION_BUNDLE], "trailing_chars")
        out = tmp_path / "out"

        with open(out / "example-00-d-jws-trailing_chars.txt", encoding="utf-8", newline="") as f:
            text = f.read()
        assert text.startswith(PADDING) and text.endswith(PADDING)
        assert text.strip().count(".") == 2

    def test_flattened_example_has_no_qr_files(self, tmp_path, key_dir):
        report = self.generate(tmp_path, key_dir, [IMMUNIZATION_BUNDLE], "invalid_jws_format")
        assert len(report.index[0]) == 5

    def test_bad_source_isolated(self, tmp_path, key_dir):
        broken = tmp_path / "broken.json"
        broken.write_text('{"resourceType": "Patient"}')

        report = self.generate(tmp_path, key_dir, [IMMUNIZATION_BUNDLE, broken, tmp_path / "missing.json"])

        assert not report.succeeded()
        assert sorted(report.index) == [0]
        assert set(report.failures) == {str(broken), str(tmp_path / "missing.json")}
        index = (tmp_path / "out" / "index.md").read_text(encoding="utf-8")
        assert "## Example 1" not in index

    def test_malformed_coding_does_not_abort_run(self, tmp_path, key_dir):
        bundle = load_example()
        bundle["entry"][1]["resource"]["vaccineCode"] = {"coding": 5}
        odd = tmp_path / "odd-coding.json"
        odd.write_text(json.dumps(bundle))

        report = self.generate(tmp_path, key_dir, [IMMUNIZATION_BUNDLE, odd])

        assert report.succeeded()
        assert sorted(report.index) == [0, 1]
        assert (tmp_path / "out" / "index.md").exists()

    def test_unexpected_error_confined_to_example(self, tmp_path, key_dir, monkeypatch):
        real_write = pipeline.write_example

        def failing_write(outdir, number, example, params):
            if number == 1:
                raise TypeError("cannot write example")
            return real_write(outdir, number, example, params)

        monkeypatch.setattr(pipeline, "write_example", failing_write)
        report = self.generate(tmp_path, key_dir, [IMMUNIZATION_BUNDLE, LAB_BUNDLE])

        assert sorted(report.index) == [0]
        assert "cannot write example" in report.failures[str(LAB_BUNDLE)]
        index = (tmp_path / "out" / "index.md").read_text(encoding="utf-8")
        assert "## Example 0" in index and "## Example 1" not in index

    def test_missing_keys_fail_before_processing(self, tmp_path):
        with pytest.raises(KeyMaterialFailure):
            self.generate(tmp_path, tmp_path / "no-keys", [IMMUNIZATION_BUNDLE])
        assert not (tmp_path / "out").exists()
