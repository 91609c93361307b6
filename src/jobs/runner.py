from __future__ import annotations

import argparse
import sys

from loguru import logger

from src.config import load_settings
from src.jobs.pipeline import run_pipeline

logger.remove()
logger.add(sys.stderr, level="INFO")


def _source_mode(args: argparse.Namespace) -> str:
    if args.seed:
        return "seed"
    if args.no_load:
        return "none"
    return "files"


def run_pipeline_once(*, source_mode: str = "files", run_type: str | None = None) -> dict[str, str]:
    label = run_type or f"pipeline:{source_mode}"
    try:
        rows = run_pipeline(run_type=label, source_mode=source_mode)
    except Exception as exc:
        logger.error("Pipeline failed: {}", exc)
        return {"status": "failed", "error": str(exc), "run": label}
    logger.info("Pipeline finished: run={} rows={}", label, rows)
    return {"status": "success", "run": label}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run the offer funnel pipeline (warehouse -> sources -> events_cleaned -> funnel)."
    )
    source_group = parser.add_mutually_exclusive_group()
    source_group.add_argument(
        "--seed",
        action="store_true",
        help="Seed a synthetic dataset instead of loading EVENTS_PATH/OFFERS_PATH.",
    )
    source_group.add_argument(
        "--no-load",
        action="store_true",
        help="Reuse the events/offers tables already in the warehouse.",
    )
    args = parser.parse_args(argv)

    settings = load_settings()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    result = run_pipeline_once(source_mode=_source_mode(args))
    return 0 if result["status"] == "success" else 1


if __name__ == "__main__":
    raise SystemExit(main())
