#!/usr/bin/env python3
"""
CLI entrypoint for keyword rank retracement analysis.

Usage example:
    python analyze_rankings.py --files ./exports/positions.csv --output-dir ./reports
"""

import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent
SRC_PATH = PROJECT_ROOT / "src"


def main() -> int:
    if str(SRC_PATH) not in sys.path:
        sys.path.insert(0, str(SRC_PATH))

    from seo_fib.core.keyword_analyzer import main as _main

    return _main()


if __name__ == "__main__":
    raise SystemExit(main())
