"""Run the monthly wage calculation from the command line.

    python scripts/calculate_wages.py --month 1 --year 2024 --actor 1
"""

from __future__ import annotations

import argparse
import importlib
import json
import sys

from dotenv import load_dotenv

from tutoring_center.common.logging_config import setup_logging
from tutoring_center.config import get_settings_module
from tutoring_center.container import build_container
from tutoring_center.core.exceptions import DomainError


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Recompute teacher wages for one month.")
    parser.add_argument("--month", type=int, required=True)
    parser.add_argument("--year", type=int, required=True)
    parser.add_argument("--actor", type=int, required=True, help="user id recorded as calculatedBy")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container(
        db_config=dict(settings.DB_CONFIG),
        write_retries=int(getattr(settings, "WRITE_RETRIES", 3)),
    )
    try:
        report = container.wage_service.run_monthly_calculation(args.month, args.year, args.actor)
    except DomainError as e:
        print(json.dumps(e.to_dict()), file=sys.stderr)
        return 2

    print(json.dumps(report.as_dict(), indent=2))
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
