"""
Query a running cache server.
Use: barcode-cache lookup [BARCODE] [--url http://host:port | --name BarcodeServer --wait 10]
Without BARCODE, prints the server's echo line. Exit 0 found/echo, 1 not found or no server.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

import requests


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    ap = argparse.ArgumentParser(
        prog="barcode-cache lookup",
        description="Look up a barcode on a running server (direct URL or zeroconf discovery).",
    )
    ap.add_argument("barcode", nargs="?", default="", help="Barcode to locate.")
    ap.add_argument("--url", default=None, help="Server base URL; skips discovery.")
    ap.add_argument("--name", default="BarcodeServer", help="The name for the service.")
    ap.add_argument("--type", dest="service_type", default="_http._tcp", help="Service category to look for.")
    ap.add_argument("--domain", default="local.", help="Search domain. For local networks, default is fine.")
    ap.add_argument("--wait", type=float, default=10.0, help="Seconds to run discovery.")
    args = ap.parse_args(argv)

    from barcode_cache.client import BarcodeCacheClient

    if args.url:
        client = BarcodeCacheClient(args.url)
    else:
        client = BarcodeCacheClient.discover(
            name=args.name, service_type=args.service_type, domain=args.domain, wait_s=args.wait
        )
        if client is None:
            print("Unable to detect server", file=sys.stderr)
            return 1
    print(f"Server: {client.api_url}")

    try:
        if not args.barcode:
            print(client.echo().rstrip())
            return 0
        record = client.lookup(args.barcode)
    except requests.RequestException as e:
        print(f"Request failed: {e}", file=sys.stderr)
        return 1

    if record is None:
        print(f"No result for barcode {args.barcode}")
        return 1
    print(json.dumps(record.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
