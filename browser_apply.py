#!/usr/bin/env python3
"""Search the job board in a real browser and apply to matching postings."""
from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from autoapply.config import ensure_dirs, load_settings
from autoapply.log import get_logger

log = get_logger(__name__)


if __name__ == "__main__":
    from run_agent import run_browser

    manual = "--manual" in sys.argv
    settings = load_settings()
    ensure_dirs(settings)
    log.info("Browser apply: %s in %s (manual=%s)", " | ".join(settings.search.terms),
             settings.search.location, manual)
    sys.exit(run_browser(settings, manual=manual))
