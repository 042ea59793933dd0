"""Command line interface for the smart handles router agent.

The CLI is a thin façade over ``router.config.yaml`` (and ``ROUTER_RPC_*``
environment variables).  ``monitor`` starts a monitoring session against the
JSON-RPC ledger service and prints one compact JSON line per scan cycle;
``submit-simple`` and ``submit-advanced`` lock a single route request at the
script and print its transaction id.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Sequence

from .config import ConfigurationError, load_rpc_config, load_session_config
from .errors import RouterError
from .ledger import RPCLedger
from .model import CycleReport
from .monitor import MonitorSession
from .request import build_advanced_request, build_simple_request, submit_route_request
from .rpc_client import LedgerRPCClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

COMPACT_JSON_SEPARATORS = (",", ":")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Smart handles routing agent")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to router config file (default: ./router.config.yaml)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    monitor_parser = subparsers.add_parser(
        "monitor",
        aliases=["m"],
        help="monitor the script and route requests to collect their fees",
    )
    monitor_parser.add_argument(
        "-q", "--quiet", action="store_true", default=None, help="Suppress warning logs."
    )
    monitor_parser.add_argument(
        "--reclaim",
        action="store_true",
        default=None,
        help="Only perform advanced reclaims.",
    )

    simple_parser = subparsers.add_parser(
        "submit-simple",
        help="submit a simple route request to be handled by a routing agent",
    )
    _add_request_arguments(simple_parser)

    advanced_parser = subparsers.add_parser(
        "submit-advanced",
        help="submit an advanced route request to be handled by a routing agent",
    )
    _add_request_arguments(advanced_parser)
    advanced_parser.add_argument(
        "--mark-owner", action="store_true", help="Mark this wallet as the owner of the request"
    )
    advanced_parser.add_argument(
        "--router-fee",
        required=True,
        help="Lovelaces collectable by the routing agent for handling this request",
    )
    advanced_parser.add_argument(
        "--reclaim-router-fee",
        required=True,
        help="Lovelaces collectable by the routing agent for sending this request back to its owner",
    )
    return parser


def _add_request_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-l",
        "--lovelace",
        required=True,
        help="Lovelace count to be sent. Must be large enough to cover the router fee.",
    )
    parser.add_argument(
        "-a",
        "--asset",
        action="append",
        default=[],
        metavar="UNIT,QUANTITY",
        help="Additional asset to lock (repeatable); UNIT is the policy id and token name in hex",
    )


def emit_report(report: CycleReport) -> None:
    print(json.dumps(report.to_dict(), separators=COMPACT_JSON_SEPARATORS), flush=True)


def cmd_monitor(args: argparse.Namespace) -> None:
    session_config = load_session_config(
        config_path=args.config,
        overrides={"quiet": args.quiet, "reclaim": args.reclaim},
    )
    rpc = LedgerRPCClient(load_rpc_config(config_path=args.config))
    session = MonitorSession(
        session_config,
        RPCLedger(rpc, session_config.network),
        on_report=emit_report,
    )
    asyncio.run(session.start())


def cmd_submit(args: argparse.Namespace) -> None:
    session_config = load_session_config(config_path=args.config)
    if args.command == "submit-advanced":
        request = build_advanced_request(
            session_config,
            args.lovelace,
            args.asset,
            router_fee=args.router_fee,
            reclaim_router_fee=args.reclaim_router_fee,
            mark_owner=args.mark_owner,
        )
    else:
        request = build_simple_request(args.lovelace, args.asset)
    rpc = LedgerRPCClient(load_rpc_config(config_path=args.config))
    tx_id = asyncio.run(
        submit_route_request(session_config, RPCLedger(rpc, session_config.network), request)
    )
    print(
        json.dumps({"kind": request.kind.value, "tx_id": tx_id}, separators=COMPACT_JSON_SEPARATORS)
    )


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    try:
        if args.command in {"monitor", "m"}:
            cmd_monitor(args)
        elif args.command in {"submit-simple", "submit-advanced"}:
            cmd_submit(args)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(2, f"error: unknown command {args.command}\n")
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
    except (ConfigurationError, RouterError) as exc:
        logger.error("%s", exc)
        parser.exit(1, f"abort: {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
