"""Dispatch strategies for Single and Batch processing modes.

A session resolves its strategy once, from the processing mode and action
intent in its configuration.  The action decides which transaction is built
(route or reclaim); the strategy decides its shape:

* :class:`PerItemDispatch` builds one transaction per request and runs them
  concurrently, each item succeeding or failing on its own.  Its log lines name
  each request by its short reference.
* :class:`AggregateDispatch` builds one transaction for every request of the
  cycle, which succeeds or fails as a unit.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Mapping, Sequence

from .errors import MissingReclaimConfigError
from .ledger import BuildResult, Ledger
from .model import (
    ActionIntent,
    DispatchOutcome,
    ProcessingMode,
    RequestReference,
    SessionConfig,
    render_references,
)
from .outcome import OutcomeHandler

logger = logging.getLogger(__name__)

BUILDING_TX_MSG = "Building the %s transaction for %s..."


class RouteAction:
    intent = ActionIntent.ROUTE

    def __init__(
        self,
        ledger: Ledger,
        mode: ProcessingMode,
        script_cbor: str,
        destination: str,
        route_config: Mapping[str, Any],
    ) -> None:
        self.ledger = ledger
        self.mode = mode
        self.script_cbor = script_cbor
        self.destination = destination
        self.route_config = route_config

    async def build(self, references: Sequence[RequestReference]) -> BuildResult:
        return await self.ledger.build_route_transaction(
            self.mode, self.script_cbor, references, self.destination, self.route_config
        )


class ReclaimAction:
    intent = ActionIntent.RECLAIM

    def __init__(
        self,
        ledger: Ledger,
        mode: ProcessingMode,
        script_cbor: str,
        reclaim_config: Mapping[str, Any],
    ) -> None:
        self.ledger = ledger
        self.mode = mode
        self.script_cbor = script_cbor
        self.reclaim_config = reclaim_config

    async def build(self, references: Sequence[RequestReference]) -> BuildResult:
        return await self.ledger.build_reclaim_transaction(
            self.mode, self.script_cbor, references, self.reclaim_config
        )


class DispatchStrategy:
    """Base class: submit transactions for the eligible requests of a cycle."""

    mode: ProcessingMode

    def __init__(self, action: RouteAction | ReclaimAction, handler: OutcomeHandler) -> None:
        self.action = action
        self.handler = handler

    @property
    def label(self) -> str:
        return f"{self.mode.value.lower()} {self.action.intent.value.lower()}"

    async def dispatch(self, references: Sequence[RequestReference]) -> List[DispatchOutcome]:
        raise NotImplementedError

    async def _build_and_handle(
        self, references: Sequence[RequestReference], rendered: str | None = None
    ) -> DispatchOutcome:
        if rendered is None:
            rendered = render_references(references)
        logger.debug(BUILDING_TX_MSG, self.label, rendered)
        try:
            build_result = await self.action.build(references)
        except Exception as exc:
            build_result = BuildResult.err(str(exc))
        return await self.handler.handle(references, build_result, self.label, rendered)


class PerItemDispatch(DispatchStrategy):
    mode = ProcessingMode.SINGLE

    async def dispatch(self, references: Sequence[RequestReference]) -> List[DispatchOutcome]:
        if not references:
            return []
        outcomes = await asyncio.gather(
            *(
                self._build_and_handle([reference], reference.render_short())
                for reference in references
            )
        )
        return list(outcomes)


class AggregateDispatch(DispatchStrategy):
    mode = ProcessingMode.BATCH

    async def dispatch(self, references: Sequence[RequestReference]) -> List[DispatchOutcome]:
        if not references:
            return []
        return [await self._build_and_handle(list(references))]


def resolve_strategy(
    config: SessionConfig, ledger: Ledger, handler: OutcomeHandler
) -> DispatchStrategy:
    """Resolve the Single/Batch x Route/Reclaim combination for a session."""

    action: RouteAction | ReclaimAction
    if config.intent is ActionIntent.RECLAIM:
        reclaim_config = config.reclaim_config
        if reclaim_config is None:
            raise MissingReclaimConfigError()
        action = ReclaimAction(ledger, config.script_target, config.script_cbor, reclaim_config)
    else:
        action = RouteAction(
            ledger,
            config.script_target,
            config.script_cbor,
            config.route_destination,
            config.route_config,
        )

    if config.script_target is ProcessingMode.SINGLE:
        return PerItemDispatch(action, handler)
    return AggregateDispatch(action, handler)
