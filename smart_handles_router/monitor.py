"""Monitoring session: poll for requests, filter, dispatch, report."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from .cache import ProcessedCache, filter_eligible
from .dispatch import DispatchStrategy, resolve_strategy
from .errors import FatalSessionError, MissingReclaimConfigError, SessionSetupError
from .ledger import Ledger
from .model import ActionIntent, CycleReport, SessionConfig, render_references
from .outcome import OutcomeHandler
from .scheduler import PollingScheduler

logger = logging.getLogger(__name__)

ReportCallback = Callable[[CycleReport], None]


def check_preconditions(config: SessionConfig) -> None:
    """Fail fast on configuration the session can never recover from."""

    if config.intent is ActionIntent.RECLAIM and config.advanced_reclaim_config is None:
        raise MissingReclaimConfigError()


class MonitorSession:
    """One monitoring session over a smart handles script.

    The session owns its processed cache, so separate sessions (for instance
    in tests) never share state.  Construction validates preconditions and
    resolves the dispatch strategy; no ledger call happens before
    :meth:`start`.
    """

    def __init__(
        self,
        config: SessionConfig,
        ledger: Ledger,
        cache: ProcessedCache | None = None,
        on_report: Optional[ReportCallback] = None,
    ) -> None:
        check_preconditions(config)
        self.config = config
        self.ledger = ledger
        self.cache = cache if cache is not None else ProcessedCache()
        self.on_report = on_report
        self.handler = OutcomeHandler(ledger, self.cache, quiet=config.quiet)
        self.strategy: DispatchStrategy = resolve_strategy(config, ledger, self.handler)
        self.scheduler = PollingScheduler(self.run_cycle, config.polling_interval_seconds)

    @property
    def variant(self) -> str:
        return self.config.script_target.value.lower()

    async def start(self) -> None:
        """Report the session setup, then poll until :meth:`stop` is called."""

        config = self.config
        logger.info(
            "Monitoring %s smart handles script for %s requests on %s%s",
            config.label or "the",
            config.script_target.value.upper(),
            config.network.upper(),
            " to RECLAIM" if config.intent is ActionIntent.RECLAIM else "",
        )
        logger.info("Polling every %dms", config.polling_interval_ms)
        try:
            address = await self.ledger.monitor_address(config.script_target, config.script_cbor)
        except FatalSessionError:
            raise
        except Exception as exc:
            raise SessionSetupError(f"Could not reach the ledger service: {exc}") from exc
        logger.info("Querying: %s", address)
        await self.scheduler.run()

    def stop(self) -> None:
        self.scheduler.stop()

    async def run_cycle(self) -> CycleReport:
        report = CycleReport(
            mode=self.config.script_target,
            intent=self.config.intent,
            started_at=datetime.now(timezone.utc),
        )
        try:
            candidates = await self.ledger.fetch_candidates(
                self.config.script_target, self.config.script_cbor
            )
        except FatalSessionError:
            raise
        except Exception as exc:
            report.error = str(exc)
            self.handler.warn("%s", exc)
            self._emit(report)
            return report

        report.candidates = len(candidates)
        eligible = filter_eligible(candidates, self.cache)
        report.eligible = len(eligible)
        if not eligible:
            logger.info("No %s requests found", self.variant)
            self._emit(report)
            return report

        logger.info("Found %d UTxO(s): %s", len(eligible), render_references(eligible))
        report.outcomes = await self.strategy.dispatch(eligible)
        self._emit(report)
        return report

    def _emit(self, report: CycleReport) -> None:
        if self.on_report is None:
            return
        try:
            self.on_report(report)
        except Exception:
            logger.exception("Cycle report callback failed")


async def run_monitor(
    config: SessionConfig,
    ledger: Ledger,
    on_report: Optional[ReportCallback] = None,
) -> MonitorSession:
    """Start a session and poll until it is stopped; return the finished session."""

    session = MonitorSession(config, ledger, on_report=on_report)
    await session.start()
    return session
