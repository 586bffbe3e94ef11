#!/usr/bin/env python3
"""
SMART Health Card Example - Single Bundle, Correct and Faulty

Generates a throwaway issuer key set, then turns the bundled immunization
record into a health card with the correct pipeline and with the
no_deflate fault case, printing the interesting pieces of each.

Run with: python examples/immunization_card_example.py
"""

import asyncio
import json
import tempfile
from pathlib import Path

from shcgen import (
    KeyStore,
    generate_key_sets,
    process_bundle,
    resolve_parameters,
)
from shcgen.logging_config import configure_logging

BUNDLE = Path(__file__).resolve().parent / "bundles" / "covid-immunization.json"


def show(label, result):
    print(f"\n=== {label} ===")
    print(f"Header:   {result.token.protected_header}")
    print(f"JWS:      {len(result.token)} chars")
    print(f"QR codes: {len(result.qr_numeric)}")
    for numeric in result.qr_numeric:
        print(f"  {numeric[:60]}...")


async def run(bundle, key_store):
    for case in (None, "no_deflate"):
        params = resolve_parameters(case)
        key = key_store.signing_key(params.key_file)
        result = await process_bundle(bundle, key, params, source=str(BUNDLE))
        show(params.case.value, result)


def main():
    configure_logging(level="WARNING", json_format=False)

    with open(BUNDLE, "r", encoding="utf-8") as f:
        bundle = json.load(f)

    with tempfile.TemporaryDirectory() as key_dir:
        generate_key_sets(key_dir)
        asyncio.run(run(bundle, KeyStore(key_dir)))


if __name__ == "__main__":
    main()
