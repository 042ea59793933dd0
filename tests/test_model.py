import pytest

from smart_handles_router.model import (
    DispatchOutcome,
    RequestReference,
    SessionConfig,
    ProcessingMode,
    render_references,
)


def test_render_single_reference_in_full() -> None:
    ref = RequestReference("ab" * 32, 3)

    assert render_references([ref]) == f"{'ab' * 32}#3"


def test_render_several_references_in_short_form() -> None:
    first = RequestReference("0123456789abcdef" * 4, 0)
    second = RequestReference("fedcba9876543210" * 4, 5)

    rendered = render_references([first, second])

    assert rendered == "01234567..89abcdef#0, fedcba98..76543210#5"


def test_render_nothing() -> None:
    assert render_references([]) == ""


def test_short_rendering_keeps_short_hashes() -> None:
    assert RequestReference("abcd", 1).render_short() == "abcd#1"


@pytest.mark.parametrize(
    "payload",
    [
        {"tx_hash": "aa", "output_index": 2},
        {"txHash": "aa", "outputIndex": 2},
        {"txid": "aa", "vout": 2},
    ],
)
def test_reference_from_dict_accepts_common_spellings(payload) -> None:
    assert RequestReference.from_dict(payload) == RequestReference("aa", 2)


def test_reference_from_dict_rejects_missing_index() -> None:
    with pytest.raises(ValueError):
        RequestReference.from_dict({"tx_hash": "aa"})


def test_outcome_to_dict() -> None:
    ref = RequestReference("aa", 0)

    ok = DispatchOutcome.success([ref], "single route", "tx-1")
    failed = DispatchOutcome.failure([ref], "single route", "boom")

    assert ok.to_dict() == {
        "label": "single route",
        "references": "aa#0",
        "success": True,
        "tx_id": "tx-1",
    }
    assert failed.to_dict()["reason"] == "boom"
    assert failed.to_dict()["success"] is False


def test_route_config_merges_sub_configs() -> None:
    config = SessionConfig(
        script_cbor="4e4d01",
        script_target=ProcessingMode.BATCH,
        route_destination="addr_test1dest",
        simple_route_config={"fee": 1},
        extra={"stake": "abc"},
    )

    assert config.route_config == {"simple": {"fee": 1}, "extra": {"stake": "abc"}}
    assert config.reclaim_config is None
    assert config.polling_interval_seconds == 10.0
