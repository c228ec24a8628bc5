#!/usr/bin/env python3
"""Main entry point for IPDR Intel.

Commands:
    generate OUT.csv   write a synthetic IPDR export
    ingest IN.csv      ingest an export into a fresh store and print analytics
"""

import argparse
import json
import sys
from datetime import datetime, timedelta, timezone

from ipdr_intel.analytics import Aggregator, RelationshipBuilder
from ipdr_intel.common.config import load_config
from ipdr_intel.common.exceptions import BatchAbortedError, IPDRIntelError
from ipdr_intel.common.logging import configure_logging, get_logger
from ipdr_intel.data.generators import IPDRGenerator, write_csv
from ipdr_intel.ingestion import IngestionPipeline, read_csv_rows
from ipdr_intel.storage import StaticCaseStore, TimeWindow, create_record_store

logger = get_logger(__name__)


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def cmd_generate(args) -> int:
    start = datetime.now(timezone.utc) - timedelta(days=args.days)
    generator = IPDRGenerator(seed=args.seed, span_days=args.days)
    rows = generator.generate_rows(args.count, start, subscribers=args.subscribers)
    path = write_csv(rows, args.output)
    logger.info(f"Wrote {len(rows)} rows to {path}")
    return 0


def cmd_ingest(args) -> int:
    config = load_config()
    configure_logging(config.log_level.value)

    store = create_record_store(config)
    pipeline = IngestionPipeline(store, config=config)

    try:
        result = pipeline.ingest(read_csv_rows(args.input), actor_id=args.actor)
    except BatchAbortedError as e:
        logger.error(f"Batch aborted: {e.message}")
        if e.result is not None:
            _print_json({"upload": e.result.to_summary(config.failure_preview_limit)})
        return 2

    report = {"upload": result.to_summary(config.failure_preview_limit)}

    window = TimeWindow.trailing(args.days)
    aggregator = Aggregator(store, case_store=StaticCaseStore(0), config=config)
    report["dashboard"] = aggregator.dashboard_summary(window).model_dump(mode="json")
    report["top_communicators"] = [
        s.model_dump(mode="json") for s in aggregator.top_communicators(window=window)
    ]
    report["anomalies"] = aggregator.anomaly_analytics(window).model_dump(mode="json")

    if args.subject:
        graph = RelationshipBuilder(store, config).build(args.subject, window=window)
        report["relationships"] = graph.model_dump(mode="json")

    _print_json(report)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ipdr-intel", description="IPDR Intel command line")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Write a synthetic IPDR export")
    gen.add_argument("output", help="Destination CSV path")
    gen.add_argument("--count", type=int, default=500)
    gen.add_argument("--subscribers", type=int, default=20)
    gen.add_argument("--seed", type=int, default=42)
    gen.add_argument("--days", type=int, default=7)
    gen.set_defaults(func=cmd_generate)

    ing = sub.add_parser("ingest", help="Ingest an IPDR export and print analytics")
    ing.add_argument("input", help="CSV export path")
    ing.add_argument("--actor", default="cli", help="Actor id recorded as created_by")
    ing.add_argument("--days", type=int, default=30, help="Analytics window in days")
    ing.add_argument("--subject", help="Subscriber number for relationship expansion")
    ing.set_defaults(func=cmd_ingest)

    return parser


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except IPDRIntelError as e:
        logger.error(f"{e.code}: {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
