#!/usr/bin/env python3
"""
Command line planner for logingest.

Prints the offset ranges the next cycle would read, given head offsets
and the last checkpoint.

Settings are layered: config/default.yaml, then --config FILE, then
environment variables (SOURCE_TOPIC, AUTO_OFFSET_RESET,
MAX_EVENTS_PER_CYCLE, LOG_LEVEL, LOG_FORMAT), then command-line flags.

Usage:
    # Resume from a checkpoint
    python -m logingest plan --topic clicks --heads 0:100,1:10 \\
        --checkpoint clicks,0:0,1:0 --budget 50

    # No checkpoint, replay from the earliest retained offsets
    python -m logingest plan --topic clicks --heads 0:5 --reset smallest

    # Topic and limits from a configuration file
    python -m logingest --config source.yaml plan --heads 0:5
"""

import argparse
import json
import sys
from typing import Dict, List, Optional

from logingest.errors import ConfigError, FormatError, NonRetryableError
from logingest.offset import PartitionKey
from logingest.offset.allocator import OffsetRangeAllocator, clamp_to_retained
from logingest.offset.checkpoint import decode
from logingest.offset.reset_strategy import OffsetResetStrategy, should_reset
from logingest.offset.summary import BatchSummary
from logingest.source.config import AUTO_OFFSET_RESET_KEY, TOPIC_KEY, SourceConfig
from logingest.utils.config import Config
from logingest.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_LOG_FORMAT = "console"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="logingest",
        description="logingest - budgeted incremental ingestion planner",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: logging.level or {DEFAULT_LOG_LEVEL})",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["json", "console"],
        help=f"Log output format (default: logging.format or {DEFAULT_LOG_FORMAT})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    plan = subparsers.add_parser("plan", help="Compute the next batch of offset ranges")
    plan.add_argument(
        "--topic",
        type=str,
        default=None,
        help="Topic name (default: source.topic)",
    )
    plan.add_argument(
        "--heads",
        type=str,
        required=True,
        help="Head offset per partition, e.g. 0:100,1:10",
    )
    plan.add_argument(
        "--checkpoint",
        type=str,
        default="",
        help="Last committed checkpoint (default: none)",
    )
    plan.add_argument(
        "--earliest",
        type=str,
        default="",
        help="Earliest retained offset per partition (default: 0 for all)",
    )
    plan.add_argument(
        "--reset",
        type=str,
        default=None,
        help="auto.offset.reset without a checkpoint: smallest or largest "
             "(default: auto.offset.reset or largest)",
    )
    plan.add_argument(
        "--budget",
        type=int,
        default=None,
        help="Event budget for the cycle (default: source.max_events_per_cycle)",
    )

    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    """
    Load configuration with command-line flags layered on top.

    Raises:
        ConfigError: If the configuration file cannot be loaded
    """
    config = Config(args.config)

    if getattr(args, "topic", None) is not None:
        config.set(TOPIC_KEY, args.topic)
    if getattr(args, "reset", None) is not None:
        config.set(AUTO_OFFSET_RESET_KEY, args.reset)

    return config


def _parse_offsets(topic: str, text: str) -> Dict[PartitionKey, int]:
    # Same pair syntax as a checkpoint body
    return decode(f"{topic},{text}") if text else {}


def run_plan(args: argparse.Namespace, config: Config) -> dict:
    """Compute the plan described by parsed arguments and configuration."""
    source_config = SourceConfig.from_config(config)
    topic = source_config.topic

    heads = _parse_offsets(topic, args.heads)
    earliest = _parse_offsets(topic, args.earliest)

    if should_reset(args.checkpoint):
        if source_config.auto_offset_reset == OffsetResetStrategy.EARLIEST:
            from_offsets = {tp: earliest.get(tp, 0) for tp in heads}
        else:
            from_offsets = dict(heads)
    else:
        from_offsets = decode(args.checkpoint)
        if any(tp.topic != topic for tp in from_offsets):
            raise FormatError(f"Checkpoint does not belong to topic {topic}")
        from_offsets = clamp_to_retained(
            from_offsets, {tp: earliest.get(tp, 0) for tp in heads}
        )

    budget = source_config.max_events_per_cycle if args.budget is None else args.budget
    event_budget = max(0, min(source_config.max_events_per_cycle, budget))
    ranges = OffsetRangeAllocator().allocate(from_offsets, heads, event_budget)
    summary = BatchSummary.from_ranges(ranges)

    return {
        "topic": topic,
        "event_budget": event_budget,
        "ranges": [
            {
                "partition": r.partition_index,
                "from_offset": r.from_offset,
                "until_offset": r.until_offset,
                "count": r.count(),
            }
            for r in ranges
        ],
        "total_events": summary.total_events,
        "has_data": summary.has_data,
        "next_checkpoint": summary.next_checkpoint,
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config = load_config(args)
        configure_logging(
            log_level=args.log_level or config.get("logging.level", DEFAULT_LOG_LEVEL),
            log_format=args.log_format or config.get("logging.format", DEFAULT_LOG_FORMAT),
        )
    except (ConfigError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    try:
        result = run_plan(args, config)
    except (NonRetryableError, ValueError) as e:
        logger.error("Planning failed", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 2

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
