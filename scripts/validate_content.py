#!/usr/bin/env python3
"""Check content roots for agreement between indexes, folders and pages.

Usage:
    python -m scripts.validate_content             # Exit 1 on errors
    python -m scripts.validate_content --strict    # Warnings count as errors
"""

import argparse
import logging
import sys

from cms.services.consistency import CheckResult, check_catalog, check_store
from cms.services.content_store import get_blog_store
from cms.services.project_catalog import get_project_catalog, get_project_posts

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger("validate_content")


def run_checks() -> CheckResult:
    result = CheckResult()
    result.merge(check_store(get_blog_store()))
    result.merge(check_store(get_project_posts()))
    result.merge(check_catalog(get_project_catalog()))
    return result


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate CMS content roots")
    parser.add_argument(
        "--strict", action="store_true", help="Treat warnings as errors"
    )
    args = parser.parse_args()

    result = run_checks()
    for warning in result.warnings:
        logger.warning(warning)
    for error in result.errors:
        logger.error(error)

    failed = bool(result.errors) or (args.strict and bool(result.warnings))
    print(
        f"\n{len(result.errors)} error(s), {len(result.warnings)} warning(s)"
        f" -> {'FAIL' if failed else 'OK'}"
    )
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
