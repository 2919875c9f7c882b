"""
Evaluate the access policy from the command line (support/debugging).

Usage:
  streamgate-evaluate --role user --upload-date 2024-05-01T00:00:00Z \
      --tiers 480,720,1080,2160 --used-today 2
  streamgate-evaluate --role guest --age-days 3 --tiers 720,2160 --json

Prints the stream tiers and each download tier with its lock reason, using
the configured quality ladder, unlock window and daily cap unless overridden.
"""

import argparse
import json
import sys
from datetime import datetime, timezone
from typing import List, Optional

from streamgate.core.config import parse_quality_levels, settings
from streamgate.schemas.enums import ViewerRole
from streamgate.services.access_policy import (
    AccessPolicy,
    ViewerContext,
    content_age_days,
    permitted_download_tiers,
    permitted_stream_tiers,
    quality_label,
)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="streamgate-evaluate", description=__doc__.split("\n\n")[0].strip())
    ap.add_argument("--role", choices=[r.value for r in ViewerRole], default=ViewerRole.GUEST.value)
    ap.add_argument("--premium", action="store_true", help="Viewer has the premium flag")
    when = ap.add_mutually_exclusive_group()
    when.add_argument("--upload-date", help="ISO-8601 upload timestamp")
    when.add_argument("--age-days", type=int, help="Content age in whole days")
    ap.add_argument("--tiers", default=None, help="Available tiers (CSV); default: the full ladder")
    ap.add_argument("--used-today", type=int, default=0, help="Top-tier downloads already used today")
    ap.add_argument("--levels", default=None, help="Override QUALITY_LEVELS (CSV)")
    ap.add_argument("--unlock-days", type=int, default=None)
    ap.add_argument("--daily-limit", type=int, default=None)
    ap.add_argument("--json", action="store_true", help="Machine-readable output")
    return ap


def _policy(args: argparse.Namespace) -> AccessPolicy:
    return AccessPolicy(
        quality_levels=tuple(parse_quality_levels(args.levels) if args.levels else settings.quality_levels),
        unlock_days=settings.TOP_TIER_UNLOCK_DAYS if args.unlock_days is None else args.unlock_days,
        daily_limit=settings.TOP_TIER_DAILY_DOWNLOAD_LIMIT if args.daily_limit is None else args.daily_limit,
    )


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    try:
        policy = _policy(args)
    except ValueError as e:
        ap.error(str(e))

    role = ViewerRole(args.role)
    viewer = ViewerContext(
        id=None if role is ViewerRole.GUEST else "cli",
        role=role,
        is_premium=args.premium,
    )
    if args.age_days is not None:
        age = max(0, args.age_days)
    else:
        age = content_age_days(args.upload_date, datetime.now(timezone.utc))
    tiers = [t.strip() for t in args.tiers.split(",")] if args.tiers else list(policy.quality_levels)

    stream = permitted_stream_tiers(tiers, viewer, age, policy)
    downloads = permitted_download_tiers(tiers, viewer, age, args.used_today, policy)

    if args.json:
        out = {
            "role": role.value,
            "premium": args.premium,
            "content_age_days": age,
            "stream": stream,
            "downloads": [t.to_dict() for t in downloads],
            "requires_verification": viewer.is_guest,
        }
        print(json.dumps(out, indent=2))
        return 0

    print(f"viewer: {role.value}{' (premium)' if args.premium else ''}  age: {age}d")
    print("stream:   " + (", ".join(quality_label(q) for q in stream) or "-"))
    print("download:")
    for t in downloads:
        state = f"locked  {t.reason}" if t.locked else "ok"
        print(f"  {quality_label(t.quality):>6}  {state}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
