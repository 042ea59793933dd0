from __future__ import annotations

import asyncio
import logging

import pytest

from smart_handles_router.errors import (
    InvalidRequestError,
    MissingRequestConfigError,
    SubmitError,
)
from smart_handles_router.model import ROUTER_FEE, ProcessingMode, RequestKind, SessionConfig
from smart_handles_router.request import (
    build_advanced_request,
    build_simple_request,
    parse_assets,
    parse_lovelace,
    submit_route_request,
)

POLICY = "ab" * 28
UNIT = POLICY + "746f6b656e"


def _config(**kwargs) -> SessionConfig:
    return SessionConfig(
        script_cbor="4e4d01",
        script_target=ProcessingMode.BATCH,
        route_destination="addr_test1dest",
        network="Preprod",
        **kwargs,
    )


def test_lovelace_must_cover_router_fee() -> None:
    assert parse_lovelace(str(ROUTER_FEE)) == ROUTER_FEE

    with pytest.raises(InvalidRequestError, match="Insufficient Lovelaces"):
        parse_lovelace(str(ROUTER_FEE - 1))
    with pytest.raises(InvalidRequestError):
        parse_lovelace("2.5")


def test_repeated_assets_are_summed_and_lowercased() -> None:
    assets = parse_assets([f"{UNIT.upper()},3", f"{UNIT},4", f"{POLICY},1"])

    assert assets == {UNIT: 7, POLICY: 1}


@pytest.mark.parametrize(
    "entry",
    [
        "ab" * 27 + ",1",
        "zz" * 28 + ",1",
        POLICY,
        f"{POLICY},0",
        f"{POLICY},x",
        f"{POLICY},1,2",
    ],
)
def test_invalid_assets_rejected(entry: str) -> None:
    with pytest.raises(InvalidRequestError):
        parse_assets([entry])


def test_simple_request_payload() -> None:
    request = build_simple_request("2000000", [f"{UNIT},5"])

    assert request.kind is RequestKind.SIMPLE
    assert request.to_dict() == {
        "kind": "simple",
        "data": {"value_to_lock": {UNIT: 5, "lovelace": 2_000_000}},
    }


def test_advanced_request_carries_fees_and_extra_info() -> None:
    config = _config(advanced_route_request={"extra_info": "d87980"})

    request = build_advanced_request(
        config,
        "5000000",
        router_fee="1000000",
        reclaim_router_fee="500000",
        mark_owner=True,
    )

    data = request.to_dict()["data"]
    assert request.kind is RequestKind.ADVANCED
    assert data["mark_wallet_as_owner"] is True
    assert data["router_fee"] == 1_000_000
    assert data["reclaim_router_fee"] == 500_000
    assert data["extra_info"] == {"extra_info": "d87980"}
    assert data["value_to_lock"] == {"lovelace": 5_000_000}


def test_advanced_request_requires_config() -> None:
    with pytest.raises(MissingRequestConfigError, match="advanced_route_request"):
        build_advanced_request(_config(), "5000000", router_fee="0", reclaim_router_fee="0")


def test_advanced_request_lovelace_must_cover_fees() -> None:
    config = _config(advanced_route_request={})

    with pytest.raises(InvalidRequestError, match="router fees"):
        build_advanced_request(config, "2000000", router_fee="3000000", reclaim_router_fee="0")
    with pytest.raises(InvalidRequestError, match="cannot be negative"):
        build_advanced_request(config, "2000000", router_fee="-1", reclaim_router_fee="0")


def test_submit_route_request_uses_session_script(ledger, caplog) -> None:
    request = build_simple_request("2000000")

    with caplog.at_level(logging.INFO):
        tx_id = asyncio.run(submit_route_request(_config(), ledger, request))

    assert tx_id == "req-1"
    assert ledger.calls == [("submit_request", ProcessingMode.BATCH)]
    assert ledger.requests == [request]
    assert "Request tx hash: req-1" in caplog.text


def test_submit_route_request_propagates_failures(ledger) -> None:
    ledger.request_error = SubmitError("wallet has no funds")

    with pytest.raises(SubmitError, match="no funds"):
        asyncio.run(submit_route_request(_config(), ledger, build_simple_request("2000000")))
