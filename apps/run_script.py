#!/usr/bin/env python3
"""Stable launcher for demo and research scripts."""

from __future__ import annotations

import argparse
import runpy
import sys
from pathlib import Path


SCRIPT_MAP = {
    "demo": "scripts/demo.py",
    "reserve-load": "scripts/reserve_load.py",
}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a project script by alias.")
    parser.add_argument("alias", choices=sorted(SCRIPT_MAP.keys()), help="Script alias")
    parser.add_argument("script_args", nargs=argparse.REMAINDER, help="Arguments passed to target script")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    root = Path(__file__).resolve().parents[1]
    target = root / SCRIPT_MAP[args.alias]
    script_args = args.script_args
    if script_args[:1] == ["--"]:
        script_args = script_args[1:]
    sys.argv = [str(target), *script_args]
    runpy.run_path(str(target), run_name="__main__")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
