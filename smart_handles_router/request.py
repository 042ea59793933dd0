"""Build and submit route requests for a routing agent to pick up later.

These back the ``submit-simple`` and ``submit-advanced`` commands.  Values
arrive as raw command line strings and are validated here; the ledger
collaborator builds, signs and submits the request transaction.  Unlike the
monitor, submission is one-shot and any failure aborts.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable

from .errors import InvalidRequestError, MissingRequestConfigError
from .ledger import Ledger
from .model import ROUTER_FEE, RequestKind, RouteRequest, SessionConfig

logger = logging.getLogger(__name__)

# Policy id (28 bytes) in hex; the token name may follow.
MIN_UNIT_LENGTH = 56

_HEX_RE = re.compile(r"[0-9a-f]+")


def _parse_int(raw: str | int, flag: str) -> int:
    try:
        return int(str(raw).strip(), 10)
    except ValueError as exc:
        raise InvalidRequestError(f"{flag} must be a whole number, got {raw!r}") from exc


def parse_lovelace(raw: str | int) -> int:
    lovelace = _parse_int(raw, "--lovelace")
    if lovelace < ROUTER_FEE:
        raise InvalidRequestError(
            f"Insufficient Lovelaces: at least {ROUTER_FEE} are needed to cover the router fee."
        )
    return lovelace


def parse_fee(raw: str | int, flag: str) -> int:
    fee = _parse_int(raw, flag)
    if fee < 0:
        raise InvalidRequestError(f"{flag} cannot be negative")
    return fee


def parse_assets(entries: Iterable[str]) -> Dict[str, int]:
    """Parse repeated ``unit,quantity`` values; quantities of a repeated unit add up."""

    assets: Dict[str, int] = {}
    for entry in entries:
        try:
            raw_unit, raw_qty = entry.split(",")
        except ValueError as exc:
            raise InvalidRequestError(f"Invalid asset {entry!r}. Expected unit,quantity") from exc
        unit = raw_unit.strip().lower()
        if len(unit) < MIN_UNIT_LENGTH or not _HEX_RE.fullmatch(unit):
            raise InvalidRequestError(f"Invalid unit provided: {raw_unit}")
        qty = _parse_int(raw_qty, "--asset quantity")
        if qty <= 0:
            raise InvalidRequestError(f"Asset quantity must be positive: {entry}")
        assets[unit] = assets.get(unit, 0) + qty
    return assets


def build_simple_request(lovelace: str | int, assets: Iterable[str] = ()) -> RouteRequest:
    return RouteRequest(
        kind=RequestKind.SIMPLE,
        lovelace=parse_lovelace(lovelace),
        assets=parse_assets(assets),
    )


def build_advanced_request(
    config: SessionConfig,
    lovelace: str | int,
    assets: Iterable[str] = (),
    *,
    router_fee: str | int,
    reclaim_router_fee: str | int,
    mark_owner: bool = False,
) -> RouteRequest:
    """Build an advanced request carrying the session's ``advanced_route_request``.

    The locked lovelaces must cover both fees the routing agent may collect.
    """

    if config.advanced_route_request is None:
        raise MissingRequestConfigError()
    locked = parse_lovelace(lovelace)
    route_fee = parse_fee(router_fee, "--router-fee")
    reclaim_fee = parse_fee(reclaim_router_fee, "--reclaim-router-fee")
    if locked < max(route_fee, reclaim_fee):
        raise InvalidRequestError("Insufficient Lovelaces to cover the router fees.")
    return RouteRequest(
        kind=RequestKind.ADVANCED,
        lovelace=locked,
        assets=parse_assets(assets),
        mark_owner=mark_owner,
        router_fee=route_fee,
        reclaim_router_fee=reclaim_fee,
        extra_info=dict(config.advanced_route_request),
    )


async def submit_route_request(
    config: SessionConfig, ledger: Ledger, request: RouteRequest
) -> str:
    """Lock ``request`` at the configured script and return the transaction id."""

    logger.info(
        "Submitting a %s route request to the %s script on %s",
        request.kind.value,
        config.script_target.value.lower(),
        config.network,
    )
    tx_id = await ledger.submit_request(config.script_target, config.script_cbor, request)
    logger.info("Request tx hash: %s", tx_id)
    return tx_id
