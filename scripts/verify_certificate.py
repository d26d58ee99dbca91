#!/usr/bin/env python3
"""
Standalone certificate verifier.

Reads a plain-text certificate, extracts its claims and checks them against
the trust registry. Runs locally by default; with --gateway the tracker API
does the extraction and verification instead.

Usage:
    python scripts/verify_certificate.py certificate.txt
    python scripts/verify_certificate.py certificate.txt --registry registry.json
    python scripts/verify_certificate.py certificate.txt --gateway http://localhost:8000

Exit status: 0 Verified, 1 Partially Verified, 2 Fake, 3 error.
"""
import argparse
import json
import os
import sys
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import requests

from tracker.app.extraction import extract_claims_from_text
from tracker.app.registry import load_registry
from tracker.app.verification import verify_claims, verify_claims_detailed

EXIT_CODES = {"Verified": 0, "Partially Verified": 1, "Fake": 2}


def verify_local(text: str, registry_path: str | None) -> dict:
    registry = load_registry(registry_path)
    claim = extract_claims_from_text(text)
    return {
        "claim": claim.model_dump(by_alias=True),
        "verdict": verify_claims(claim, registry).model_dump(mode="json"),
        "checks": [c.model_dump(mode="json") for c in verify_claims_detailed(claim, registry)],
    }


def verify_remote(text: str, gateway_url: str) -> dict:
    resp = requests.post(f"{gateway_url}/claims/extract", json={"text": text}, timeout=15)
    resp.raise_for_status()
    claim = resp.json()
    resp = requests.post(f"{gateway_url}/claims/verify",
                         json={"claim_json": json.dumps(claim)}, timeout=15)
    resp.raise_for_status()
    return {"claim": claim, **resp.json()}


def main():
    parser = argparse.ArgumentParser(description="Certificate claim verifier")
    parser.add_argument("file", help="Plain-text certificate (.txt)")
    parser.add_argument("--registry", help="Trust registry JSON (local mode)")
    parser.add_argument("--gateway", help="Tracker API base URL; verify remotely")
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    args = parser.parse_args()

    try:
        text = Path(args.file).read_text(encoding="utf-8", errors="replace")
        if args.gateway:
            result = verify_remote(text, args.gateway.rstrip("/"))
        else:
            result = verify_local(text, args.registry)
    except (OSError, ValueError, requests.RequestException) as exc:
        print(f"Verification error: {exc}", file=sys.stderr)
        sys.exit(3)

    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        verdict = result["verdict"]
        print(f"Certificate : {args.file}")
        print(f"Issuer      : {result['claim'].get('issuer') or 'Unknown'}")
        print(f"Status      : {verdict['status']}")
        for reason in verdict["reasons"]:
            print(f"  - {reason}")
        print()
        for row in result["checks"]:
            print(f"  {row['status']:18s}  {row['label'][:60]:60s}  {row['hash'][:12]}")

    sys.exit(EXIT_CODES.get(result["verdict"]["status"], 3))


if __name__ == "__main__":
    main()
