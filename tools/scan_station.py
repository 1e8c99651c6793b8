#!/usr/bin/env python3
"""
scan_station.py

Purpose:
  Terminal client for a conference (stock check) station. USB barcode
  scanners type the code followed by Enter, so every line read from stdin
  (or from --file) is posted to the conference endpoint and the outcome is
  printed as one JSON line.

API:
  Sign in: POST /auth/token          -> {"email": "...", "password": "..."}
  Check:   POST /conference/check    -> {"barcode": "..."}
  Auth:    Authorization: Bearer <access token>

Credentials precedence:
  1) --email / --password (CLI)
  2) env EQUIPCHECK_EMAIL / EQUIPCHECK_PASSWORD

Examples:
  python tools/scan_station.py --email admin@example.com
  EQUIPCHECK_PASSWORD=... python tools/scan_station.py --email admin@example.com --file codes.txt

Exit codes:
  0 = every scan was processed (checked or not found)
  1 = handled application error (bad credentials, no permission, failed check)
  2 = network/HTTP error
"""

from __future__ import annotations

import argparse
import getpass
import json
import os
import sys
from typing import Any, Dict, Iterable, Optional, TextIO

import requests

DEFAULT_BASE_URL = "http://localhost:8000/api/v1"
QUIT_WORDS = {"q", "quit", "exit"}


class StationError(Exception):
    """Application-level refusal (exit code 1)."""


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Post scanned barcodes to the equipment conference endpoint.")
    p.add_argument("--base-url", default=os.getenv("EQUIPCHECK_API_URL", DEFAULT_BASE_URL),
                   help=f"Base API URL (default: {DEFAULT_BASE_URL})")
    p.add_argument("--email", default=os.getenv("EQUIPCHECK_EMAIL"), help="Account email (admin role).")
    p.add_argument("--password", default=os.getenv("EQUIPCHECK_PASSWORD"),
                   help="Account password; prompted when omitted.")
    p.add_argument("--file", type=argparse.FileType("r", encoding="utf-8"), default=None,
                   help="Read barcodes from a file instead of stdin.")
    p.add_argument("--timeout", type=float, default=10.0, help="HTTP timeout in seconds (default: 10)")
    p.add_argument("--stop-on-failure", action="store_true",
                   help="Stop at the first scan whose check failed.")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging to stderr.")
    return p.parse_args(argv)


def vprint(enabled: bool, *args: Any) -> None:
    if enabled:
        print(*args, file=sys.stderr)


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and "message" in body:
        return f"{body.get('code', 'error')}: {body['message']}"
    return json.dumps(body)


def sign_in(session: requests.Session, base_url: str, email: str, password: str, timeout: float) -> str:
    url = f"{base_url.rstrip('/')}/auth/token"
    r = session.post(url, json={"email": email, "password": password}, timeout=timeout)
    if r.status_code == 401:
        raise StationError(f"Sign-in refused: {_error_message(r)}")
    r.raise_for_status()
    return r.json()["access_token"]


def check_barcode(session: requests.Session, base_url: str, token: str, barcode: str,
                  timeout: float) -> Dict[str, Any]:
    url = f"{base_url.rstrip('/')}/conference/check"
    headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
    r = session.post(url, json={"barcode": barcode}, headers=headers, timeout=timeout)
    if r.status_code in (401, 403):
        # Missing profile or viewer role: the station cannot continue.
        raise StationError(_error_message(r))
    if r.status_code == 422:
        return {"status": "invalid", "barcode": barcode, "reason": _error_message(r)}
    r.raise_for_status()
    return r.json()


def iter_codes(stream: TextIO) -> Iterable[str]:
    for line in stream:
        code = line.strip()
        if not code:
            continue
        if code.lower() in QUIT_WORDS:
            return
        yield code


def run(session: requests.Session, args: argparse.Namespace, stream: TextIO, out: TextIO) -> int:
    password = args.password or getpass.getpass("Password: ")
    token = sign_in(session, args.base_url, args.email, password, args.timeout)
    vprint(args.verbose, f"signed in as {args.email}")

    failures = 0
    for code in iter_codes(stream):
        outcome = check_barcode(session, args.base_url, token, code, args.timeout)
        print(json.dumps(outcome), file=out, flush=True)
        if outcome.get("status") == "failed":
            failures += 1
            if args.stop_on_failure:
                break
    return 1 if failures else 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    if not args.email:
        print("ERROR: --email (or env EQUIPCHECK_EMAIL) is required.", file=sys.stderr)
        return 1

    session = requests.Session()
    try:
        return run(session, args, args.file or sys.stdin, sys.stdout)
    except StationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except requests.exceptions.RequestException as e:
        print(f"NETWORK_ERROR: {e}", file=sys.stderr)
        return 2
    finally:
        session.close()
        if args.file:
            args.file.close()


if __name__ == "__main__":
    sys.exit(main())
