from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from driververify.app import (
    approve_driver,
    clear_driver_override,
    discover_driver_documents,
    reject_driver,
    resync_all_drivers,
    resync_driver,
    verify_driver_document,
)
from driververify.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from driververify.domain.verification.results import ServiceResponse

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile and verify driver documents")
    subparsers = parser.add_subparsers(dest="command", required=True)

    discover = subparsers.add_parser("discover", help="Discover a driver's documents")
    discover.add_argument("driver_id", help="Driver id")

    verify = subparsers.add_parser("verify-document", help="Verify or reject one document")
    verify.add_argument("driver_id", help="Driver id")
    verify.add_argument(
        "document_type",
        help="Document type (drivingLicense, aadhaarCard, ... or a short name such as rc)",
    )
    verify.add_argument("status", choices=("verified", "rejected"), help="Review decision")
    verify.add_argument("--notes", type=str, help="Review notes; required when rejecting")

    approve = subparsers.add_parser("approve", help="Approve a driver as a whole")
    approve.add_argument("driver_id", help="Driver id")
    approve.add_argument("--notes", type=str, help="Optional approval notes")

    reject = subparsers.add_parser("reject", help="Reject a driver as a whole")
    reject.add_argument("driver_id", help="Driver id")
    reject.add_argument("--reason", type=str, required=True, help="Rejection reason")

    resync = subparsers.add_parser("resync", help="Recompute one driver's status")
    resync.add_argument("driver_id", help="Driver id")

    subparsers.add_parser("resync-all", help="Recompute every driver's status")

    clear = subparsers.add_parser("clear-override", help="Remove a driver-level override")
    clear.add_argument("driver_id", help="Driver id")

    return parser.parse_args(list(argv))


def _dispatch(args: argparse.Namespace) -> ServiceResponse[Any]:
    if args.command == "discover":
        return discover_driver_documents(args.driver_id)
    if args.command == "verify-document":
        return verify_driver_document(args.driver_id, args.document_type, args.status, args.notes)
    if args.command == "approve":
        return approve_driver(args.driver_id, args.notes)
    if args.command == "reject":
        return reject_driver(args.driver_id, args.reason)
    if args.command == "resync":
        return resync_driver(args.driver_id)
    if args.command == "resync-all":
        return resync_all_drivers()
    if args.command == "clear-override":
        return clear_driver_override(args.driver_id)
    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        response = _dispatch(parsed_args)
    except Exception:
        log.exception("Fatal error while running %s", parsed_args.command)
        sys.exit(1)

    log.info("%s", json.dumps(response.to_payload(), indent=2, sort_keys=True, default=str))
    if not response.success:
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
