#!/usr/bin/env python3
"""
SMART Health Card Generator Command Line Interface

Usage:
    shcgen generate --outdir <dir> [--testcase <case>] <bundle.json>...
    shcgen keygen --key-dir <dir>
    shcgen trim --file <bundle.json>
    shcgen cases
"""

import argparse
import asyncio
import sys

from . import config
from .faults import FaultCase


def cmd_generate(args):
    """Generate example artifacts for each bundle."""
    from .errors import KeyMaterialFailure
    from .pipeline import generate_examples

    try:
        report = asyncio.run(generate_examples(
            sources=args.bundles,
            outdir=args.outdir,
            case=args.testcase,
            key_dir=args.key_dir,
            issuer_index=args.issuer_index,
            issuer_url=args.issuer_url,
        ))
    except KeyMaterialFailure as e:
        print(f"✗ {e}", file=sys.stderr)
        return 2

    for number, files in sorted(report.index.items()):
        print(f"✓ Example {number}: {len(files)} files")
    for source, error in report.failures.items():
        print(f"✗ {source}: {error}", file=sys.stderr)

    return 0 if report.succeeded() else 1


def cmd_keygen(args):
    """Generate the issuer key set and the wrong-key variants."""
    from .keys import generate_key_sets

    written = generate_key_sets(args.key_dir)
    for name, path in written.items():
        print(f"{name}: {path}")
    print(f"\nPublic key sets written beside the private ones in {args.key_dir}", file=sys.stderr)
    return 0


def cmd_trim(args):
    """Print a bundle trimmed for a health card."""
    from .canonicalization import serialize_pretty
    from .errors import SourceFetchFailure
    from .sources import read_bundle
    from .trimming import trim_bundle

    try:
        bundle = read_bundle(args.file)
    except SourceFetchFailure as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    print(serialize_pretty(trim_bundle(bundle)))
    return 0


def cmd_cases(args):
    """List the fault-injection cases."""
    for case in FaultCase:
        print(case.value)
    return 0


def main(argv=None):
    from .logging_config import configure_logging

    parser = argparse.ArgumentParser(
        description="SMART Health Card example generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  shcgen keygen -k config/keys
  shcgen generate -o out examples/bundles/*.json
  shcgen generate -o out -t no_deflate examples/bundles/*.json
  shcgen trim -f examples/bundles/covid-immunization.json
  shcgen cases
        """
    )
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Log level")
    parser.add_argument("--plain-logs", action="store_true", help="Plain text instead of JSON logs")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # generate
    gen_parser = subparsers.add_parser("generate", help="Generate example artifacts")
    gen_parser.add_argument("bundles", nargs="+", help="FHIR Bundle JSON files")
    gen_parser.add_argument("-o", "--outdir", default=config.OUTPUT_DIR, help="Output directory")
    gen_parser.add_argument(
        "-t", "--testcase",
        choices=[c.value for c in FaultCase if c is not FaultCase.NONE],
        help="Fault case to generate"
    )
    gen_parser.add_argument("-k", "--key-dir", default=config.KEY_DIR, help="Directory of JWKS files")
    gen_parser.add_argument("-i", "--issuer-index", type=int, default=config.ISSUER_INDEX, help="Key index in the key set")
    gen_parser.add_argument("-u", "--issuer-url", default=config.ISSUER_URL, help="Issuer base URL")

    # keygen
    keygen_parser = subparsers.add_parser("keygen", help="Generate issuer key sets")
    keygen_parser.add_argument("-k", "--key-dir", default=config.KEY_DIR, help="Output directory for JWKS files")

    # trim
    trim_parser = subparsers.add_parser("trim", help="Trim a bundle")
    trim_parser.add_argument("-f", "--file", required=True, help="FHIR Bundle JSON file")

    # cases
    subparsers.add_parser("cases", help="List fault cases")

    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, json_format=config.LOG_JSON and not args.plain_logs)

    if args.command == "generate":
        return cmd_generate(args)
    elif args.command == "keygen":
        return cmd_keygen(args)
    elif args.command == "trim":
        return cmd_trim(args)
    elif args.command == "cases":
        return cmd_cases(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
