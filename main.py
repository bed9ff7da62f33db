#!/usr/bin/env python3
"""
Release Form Extraction - vehicle and pickup data from uploaded documents

CLI Commands:
    doctor             - Run preflight checks (Python, deps, configuration)
    extract <files>    - Extract vehicle, pickup and party data from files

Usage:
    python main.py doctor
    python main.py extract release.pdf
    python main.py extract release.pdf bill_of_sale.docx --json
    python main.py extract scan.jpg --no-decode
"""

import argparse
import json
import os
import sys
from pathlib import Path

# Ensure project root is in path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from core.config import ConfigurationError, get_config
from core.logging_config import setup_logging
from extractors.address_parser import compose_address
from extractors.text_acquirer import build_document
from services.orchestrator import ExtractionOrchestrator


def cmd_doctor(args):
    """Run preflight checks to ensure system is ready."""
    print("=" * 50)
    print(" Release Form Extraction - System Check")
    print("=" * 50)
    print()

    all_ok = True
    warnings = []

    # Check 1: Python version
    print("[1/4] Python version...")
    py_version = sys.version_info
    if py_version.major >= 3 and py_version.minor >= 9:
        print(f"  OK: Python {py_version.major}.{py_version.minor}.{py_version.micro}")
    else:
        print(f"  FAIL: Python 3.9+ required (found {py_version.major}.{py_version.minor})")
        all_ok = False

    # Check 2: Required dependencies
    print("[2/4] Core dependencies...")
    required_deps = [
        ("pdfplumber", "PDF text layer"),
        ("docx", "DOCX text", "python-docx"),
        ("requests", "HTTP client"),
        ("dotenv", "Environment loading", "python-dotenv"),
        ("fastapi", "HTTP API"),
    ]
    for dep in required_deps:
        module_name = dep[0]
        description = dep[1]
        pip_name = dep[2] if len(dep) > 2 else module_name
        try:
            __import__(module_name)
            print(f"  OK: {pip_name} ({description})")
        except ImportError:
            print(f"  FAIL: {pip_name} not installed")
            all_ok = False

    # Check 3: Configuration validation
    print("[3/4] Configuration validation...")
    config = get_config()
    try:
        config.validate()
        print(f"  OK: {config!r}".replace("\n", "\n      "))
    except ConfigurationError as e:
        print(f"  FAIL: {e}")
        all_ok = False

    # Check 4: OCR credentials
    print("[4/4] OCR credentials...")
    if config.ocr.is_configured:
        print(f"  OK: OCR.space key configured ({config.ocr.endpoint})")
    else:
        print("  WARN: OCR_SPACE_API_KEY not set; scanned PDFs and images will fail")
        warnings.append("OCR_SPACE_API_KEY not set")

    if not Path(".env").exists():
        print("  SKIP: No .env file (environment variables only)")

    print()
    print("=" * 50)
    if all_ok and not warnings:
        print(" STATUS: ALL CHECKS PASSED")
    elif all_ok:
        print(f" STATUS: PASSED WITH {len(warnings)} WARNING(S)")
        for w in warnings:
            print(f"   - {w}")
    else:
        print(" STATUS: SOME CHECKS FAILED")
        print(" Fix the issues above before proceeding.")
    print("=" * 50)

    return 0 if all_ok else 1


def cmd_extract(args):
    """Extract data from one or more files."""
    documents = []
    for file_arg in args.files:
        path = Path(file_arg)
        if not path.exists():
            print(f"Error: File not found: {path}")
            return 1
        documents.append(build_document(path.name, None, path.read_bytes(), doc_type=args.doc_type))

    config = get_config()
    orchestrator = ExtractionOrchestrator(config=config, decode_vin=False if args.no_decode else None)

    try:
        result = orchestrator.extract(documents)
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0

    print(f"Files ({len(result.files)}):")
    for f in result.files:
        print(f"  {f.name} [{f.type}] {len(f.text)} chars")
    print("-" * 50)

    vehicle = result.vehicle
    print(f"VIN: {vehicle.vin or '-'}")
    print(f"Vehicle: {vehicle.year} {vehicle.make} {vehicle.model}".rstrip())

    if result.pickup_location:
        print(f"\nPickup Location: {compose_address(result.pickup_location)}")
    else:
        print("\nPickup Location: not found")

    labels = {k: v for k, v in result.labels.to_dict().items() if v}
    if labels:
        print("\nLabeled Fields:")
        for key, value in labels.items():
            print(f"  {key}: {value}")

    for title, party in (("Selling Dealership", result.selling_dealership),
                         ("Buying Dealership", result.buying_dealership)):
        if party and not party.is_empty:
            print(f"\n{title}:")
            if party.name:
                print(f"  Name: {party.name}")
            if party.phone:
                print(f"  Phone: {party.phone}")
            if party.address:
                print(f"  Address: {party.address}")

    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Release Form Extraction - vehicle and pickup data from uploaded documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python main.py doctor
    python main.py extract release.pdf --json
    python main.py extract scan1.jpg scan2.jpg --no-decode
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # doctor command
    subparsers.add_parser("doctor", help="Run preflight checks")

    # extract command
    extract_parser = subparsers.add_parser("extract", help="Extract data from documents")
    extract_parser.add_argument("files", nargs="+", help="PDF, image, DOCX or text files")
    extract_parser.add_argument("--json", action="store_true", help="Output as JSON")
    extract_parser.add_argument("--no-decode", action="store_true", help="Skip VIN registry lookup")
    extract_parser.add_argument("--doc-type", default="unknown", help="Document type tag for every file")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    config = get_config()
    setup_logging(level=config.log_level, format_type=config.log_format)

    commands = {
        "doctor": cmd_doctor,
        "extract": cmd_extract,
    }

    return commands[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
