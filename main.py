"""Wellspring: CLI entry point."""

import logging.config
import os
import sys

from wellspring import analyze, generate_report


def configure_logging() -> None:
    level = os.environ.get("WELLSPRING_LOG_LEVEL", "INFO").upper()
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {"level": level, "handlers": ["console"]},
    })


if __name__ == "__main__":
    configure_logging()
    path = sys.argv[1] if len(sys.argv) > 1 else "sample_data.json"
    results = analyze(path)
    for employee_id in sorted(results):
        print(generate_report(results[employee_id]))
        print()
