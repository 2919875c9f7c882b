#!/usr/bin/env python3
"""
Evaluate the access policy for a hypothetical viewer/episode.

Usage:
  python scripts/evaluate_access.py --role user --age-days 9 --used-today 3
  python scripts/evaluate_access.py --role guest --upload-date 2024-05-01 --json

Same as the `streamgate-evaluate` console script.
"""

import sys

from streamgate.cli import main

if __name__ == "__main__":
    sys.exit(main())
