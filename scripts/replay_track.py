#!/usr/bin/env python3
"""
Stream a recorded GPX/FIT track into a running Astate backend as live fixes.

Each point is POSTed to /recording/fixes, paced by the gaps between point
timestamps (divided by --speedup), so the backend's 60 s cadence, catch-up
and distance filter behave as they would with a device attached.

Usage examples:
  - Real time against a local backend:
      python scripts/replay_track.py morning_ride.gpx --base-url http://localhost:8000 --start
  - Sixty times faster (one minute of track per second):
      python scripts/replay_track.py activity.fit --base-url http://localhost:8000 --speedup 60
"""

from __future__ import annotations

import argparse
import sys
import time

try:
    import requests  # type: ignore
except ImportError:  # pragma: no cover
    print("This script requires the 'requests' package.\nInstall with: pip install requests", file=sys.stderr)
    raise

from astate.sources.activity_files import read_activity_fixes


def post_json(base_url: str, path: str, payload: dict | None = None) -> dict:
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
    r = requests.post(url, json=payload, timeout=15)
    if r.status_code >= 300:
        raise RuntimeError(f"{path} -> HTTP {r.status_code}: {r.text}")
    return r.json()


def main() -> None:
    ap = argparse.ArgumentParser(description="Replay a GPX/FIT track as live location fixes")
    ap.add_argument("path", help="Path to a .gpx or .fit file")
    ap.add_argument("--base-url", required=True, help="API base URL (e.g., http://localhost:8000)")
    ap.add_argument("--speedup", type=float, default=1.0, help="Replay speed multiplier (default real time)")
    ap.add_argument("--start", action="store_true", help="Call /recording/start before replaying")
    args = ap.parse_args()

    if args.speedup <= 0:
        ap.error("--speedup must be > 0")

    with open(args.path, "rb") as f:
        fixes = read_activity_fixes(args.path, f)
    if not fixes:
        print("No fixes with time and position in file.", file=sys.stderr)
        sys.exit(1)

    if args.start:
        post_json(args.base_url, "recording/start")

    recorded = 0
    prev = None
    for fix in fixes:
        if prev is not None:
            gap = (fix.timestamp - prev.timestamp).total_seconds() / args.speedup
            if gap > 0:
                time.sleep(gap)
        result = post_json(args.base_url, "recording/fixes", fix.model_dump(mode="json"))
        if result.get("recorded"):
            recorded += 1
        prev = fix

    print(f"Replay complete: {len(fixes)} fixes sent, {recorded} recorded.")


if __name__ == "__main__":
    main()
