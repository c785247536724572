"""
Command line entry point for the Silent Auction admin panel.

Modes:
- serve: run the web panel (default)
- check: load the data and report where it came from
- export: write the CSV summary
- receipt: print an attendee's receipt
- migrate: push the local snapshot to Supabase
"""

import argparse
import logging
import sys
from pathlib import Path

from .errors import AuctionError
from .panel import AdminPanel
from .reports import build_receipt, export_csv, format_receipt_text

logger = logging.getLogger(__name__)


def run_server(panel: AdminPanel, host: str, port: int, debug: bool) -> None:
    """Run the Flask panel until interrupted."""
    from .web import create_app

    app = create_app(panel)
    logger.info(f"Starting admin panel on {host}:{port}")
    # The reloader would start a second panel with its own change feed
    app.run(host=host, port=port, debug=debug, use_reloader=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Silent Auction Admin Panel")
    parser.add_argument(
        "--mode",
        choices=["serve", "check", "export", "receipt", "migrate"],
        default="serve",
        help="serve (web panel), check (load and report), export (CSV), receipt (print one), migrate (snapshot to Supabase)",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=5000, help="Port to bind to")
    parser.add_argument("--debug", action="store_true", help="Enable Flask debug mode")
    parser.add_argument("--output", default="auction_data.csv", help="CSV path for --mode export")
    parser.add_argument("--bid-num", help="Attendee bid number for --mode receipt")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level",
    )
    return parser


def main(argv=None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if args.mode == "receipt" and not args.bid_num:
        parser.error("--mode receipt requires --bid-num")

    panel = AdminPanel.from_env()
    try:
        if args.mode == "serve":
            panel.start()
            run_server(panel, args.host, args.port, args.debug)
            return 0

        if args.mode == "migrate":
            # Must run before load(), which overwrites the snapshot
            summary = panel.sync.migrate_snapshot()
            print(f"Migration complete: {summary}")
            return 1 if summary["errors"] else 0

        # One-shot modes: a single load, no change feed
        result = panel.sync.load()

        if args.mode == "check":
            print(f"Loaded {result.item_count} items and {result.attendee_count} attendees from {result.source.value}")
            if result.warning:
                print(f"Warning: {result.warning}")
            return 0 if result.online else 1
        elif args.mode == "export":
            Path(args.output).write_text(export_csv(panel.ledger), encoding="utf-8")
            print(f"Wrote {args.output}")
        elif args.mode == "receipt":
            print(format_receipt_text(build_receipt(panel.ledger, args.bid_num)))
    except AuctionError as e:
        logger.error(str(e))
        return 1
    finally:
        panel.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
