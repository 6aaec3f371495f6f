from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Stuck Pod Watchdog CLI")
    p.add_argument("--api", default="http://localhost:8080", help="Watchdog API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("status", help="Effective settings and cycle counters")
    sub.add_parser("problems", help="Pods currently being timed as stuck")

    s_ev = sub.add_parser("events", help="Show audit events")
    s_ev.add_argument("--limit", type=int, default=20)

    sub.add_parser("cycle", help="Run one detection cycle now")

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "status":
        r = requests.get(f"{base}/status", timeout=10)
    elif args.cmd == "problems":
        r = requests.get(f"{base}/problems", timeout=10)
    elif args.cmd == "events":
        r = requests.get(f"{base}/events", params={"limit": args.limit}, timeout=10)
    elif args.cmd == "cycle":
        r = requests.post(f"{base}/cycle", timeout=60)
    else:
        return 2

    _print(r.json())
    return 0 if r.ok else 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
