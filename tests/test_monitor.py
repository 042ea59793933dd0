from __future__ import annotations

import asyncio
import logging

import pytest

from smart_handles_router.cache import ProcessedCache
from smart_handles_router.errors import (
    MissingReclaimConfigError,
    QueryError,
    SessionSetupError,
)
from smart_handles_router.model import ActionIntent, CycleReport, ProcessingMode, SessionConfig
from smart_handles_router.monitor import MonitorSession, check_preconditions, run_monitor


def _config(mode=ProcessingMode.SINGLE, intent=ActionIntent.ROUTE, **kwargs) -> SessionConfig:
    kwargs.setdefault("polling_interval_ms", 1)
    return SessionConfig(
        script_cbor="4e4d01",
        script_target=mode,
        route_destination="addr_test1dest",
        intent=intent,
        **kwargs,
    )


def test_reclaim_without_config_fails_before_any_ledger_call(ledger) -> None:
    config = _config(intent=ActionIntent.RECLAIM)

    with pytest.raises(MissingReclaimConfigError):
        check_preconditions(config)
    with pytest.raises(MissingReclaimConfigError):
        MonitorSession(config, ledger)
    with pytest.raises(MissingReclaimConfigError):
        asyncio.run(run_monitor(config, ledger))

    assert ledger.calls == []


def test_empty_candidates_short_circuit(ledger, caplog) -> None:
    reports: list[CycleReport] = []
    session = MonitorSession(_config(), ledger, on_report=reports.append)

    with caplog.at_level(logging.INFO):
        report = asyncio.run(session.run_cycle())

    assert report.none_found
    assert report.outcomes == []
    assert reports == [report]
    assert ledger.calls == [("fetch_candidates", ProcessingMode.SINGLE)]
    assert "No single requests found" in caplog.text


def test_batch_none_found_skips_construction(ledger, refs, caplog) -> None:
    ledger.candidates = refs[:2]
    cache = ProcessedCache(refs[:2])
    session = MonitorSession(_config(ProcessingMode.BATCH), ledger, cache=cache)

    with caplog.at_level(logging.INFO):
        report = asyncio.run(session.run_cycle())

    assert report.candidates == 2
    assert report.eligible == 0
    assert ledger.count("build_route") == 0
    assert "No batch requests found" in caplog.text


def test_no_duplicate_submission_across_cycles(ledger, refs) -> None:
    ledger.candidates = refs[:2]
    session = MonitorSession(_config(), ledger)

    async def two_cycles():
        return await session.run_cycle(), await session.run_cycle()

    first, second = asyncio.run(two_cycles())

    assert first.eligible == 2
    assert all(outcome.succeeded for outcome in first.outcomes)
    assert second.eligible == 0
    assert ledger.count("build_route") == 2
    assert ledger.count("sign_and_submit") == 2


def test_failed_item_is_retried_next_cycle(ledger, refs) -> None:
    ledger.candidates = refs[:2]
    ledger.submit_failures.add(refs[0])
    session = MonitorSession(_config(), ledger)

    async def scenario():
        first = await session.run_cycle()
        ledger.submit_failures.clear()
        second = await session.run_cycle()
        return first, second

    first, second = asyncio.run(scenario())

    assert session.cache.snapshot() == frozenset(refs[:2])
    assert [o.succeeded for o in first.outcomes] == [False, True]
    assert second.eligible == 1
    assert second.outcomes[0].references == (refs[0],)


def test_query_failure_is_cycle_recoverable(ledger, refs, caplog) -> None:
    ledger.query_error = QueryError("provider timeout")
    session = MonitorSession(_config(), ledger)

    with caplog.at_level(logging.WARNING):
        report = asyncio.run(session.run_cycle())

    assert report.error == "provider timeout"
    assert not report.none_found
    assert ledger.count("build_route") == 0
    assert "provider timeout" in caplog.text

    ledger.query_error = None
    ledger.candidates = [refs[0]]
    report = asyncio.run(session.run_cycle())
    assert report.outcomes[0].succeeded


def test_quiet_session_suppresses_query_warnings(ledger, caplog) -> None:
    ledger.query_error = QueryError("provider timeout")
    session = MonitorSession(_config(quiet=True), ledger)

    with caplog.at_level(logging.WARNING):
        asyncio.run(session.run_cycle())

    assert "provider timeout" not in caplog.text


def test_sessions_do_not_share_cache(ledger, refs) -> None:
    ledger.candidates = [refs[0]]
    first = MonitorSession(_config(), ledger)
    second = MonitorSession(_config(), ledger)

    asyncio.run(first.run_cycle())

    assert refs[0] in first.cache
    assert refs[0] not in second.cache


def test_start_polls_until_stopped(ledger, refs) -> None:
    ledger.candidates = [refs[0]]
    reports: list[CycleReport] = []
    session: MonitorSession

    def on_report(report: CycleReport) -> None:
        reports.append(report)
        if len(reports) == 3:
            session.stop()

    session = MonitorSession(_config(ProcessingMode.BATCH), ledger, on_report=on_report)
    asyncio.run(session.start())

    assert ledger.calls[0] == ("monitor_address", ProcessingMode.BATCH)
    assert [report.eligible for report in reports] == [1, 0, 0]
    assert ledger.count("sign_and_submit") == 1


def test_unreachable_ledger_at_start_is_fatal(ledger) -> None:
    async def broken(mode, script_cbor):
        raise ConnectionError("refused")

    ledger.monitor_address = broken
    session = MonitorSession(_config(), ledger)

    with pytest.raises(SessionSetupError):
        asyncio.run(session.start())
    assert ledger.count("fetch_candidates") == 0


def test_report_callback_errors_do_not_stop_cycle(ledger, refs) -> None:
    def on_report(report: CycleReport) -> None:
        raise ValueError("printer jammed")

    ledger.candidates = [refs[0]]
    session = MonitorSession(_config(), ledger, on_report=on_report)

    report = asyncio.run(session.run_cycle())

    assert report.outcomes[0].succeeded
    assert refs[0] in session.cache


def test_report_serializes_outcomes(ledger, refs) -> None:
    ledger.candidates = refs[:2]
    ledger.build_failures.add(refs[1])
    session = MonitorSession(_config(), ledger)

    data = asyncio.run(session.run_cycle()).to_dict()

    assert data["mode"] == "Single"
    assert data["intent"] == "Route"
    assert data["eligible"] == 2
    assert [item["success"] for item in data["outcomes"]] == [True, False]
    assert data["outcomes"][1]["references"] == refs[1].render()
