#!/usr/bin/env python3
"""Shortlist eclipsing binaries from the AAVSO Target Tool.

Reads the API key from a text file (default ``data/.aavso_key``), queries
the eclipsing-binary section ordered by period, and prints targets that
a smart telescope can catch in a night together with the recommended gain.

Usage
-----
    python scripts/plan_eb_targets.py
    python scripts/plan_eb_targets.py --key-file ~/.aavso_key --t-exp 3200 --csv shortlist.csv
"""

import sys
import argparse
from pathlib import Path

project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from ucan.catalogs import AAVSOClient, select_candidates
from ucan.errors import CatalogQueryError


def main():
    parser = argparse.ArgumentParser(description="Plan eclipsing-binary observations")
    parser.add_argument("--key-file", default="data/.aavso_key", help="File holding the AAVSO API key")
    parser.add_argument("--t-exp", type=float, default=4000.0, help="Planned exposure time (ms)")
    parser.add_argument("--max-period", type=float, default=3.0, help="Longest period (days)")
    parser.add_argument("--csv", help="Also write the shortlist to this CSV file")
    args = parser.parse_args()

    key_path = Path(args.key_file).expanduser()
    if not key_path.exists():
        print(f"API key file not found: {key_path}", file=sys.stderr)
        return 1

    client = AAVSOClient(key_path.read_text().strip())
    try:
        targets = client.query_targets(obs_section="eb", orderby="period")
        shortlist = select_candidates(targets, t_exp=args.t_exp, max_period=args.max_period)
    except CatalogQueryError as e:
        print(f"Query failed: {e}", file=sys.stderr)
        return 1

    print(f"{len(shortlist)} candidate(s) out of {len(targets)} target(s)")
    print(shortlist.to_string(index=False))

    if args.csv:
        shortlist.to_csv(args.csv, index=False)
        print(f"Saved: {args.csv}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
