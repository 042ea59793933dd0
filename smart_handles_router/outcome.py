"""Turn transaction build results into submitted transactions and outcomes."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from .cache import ProcessedCache
from .ledger import BuildResult, Ledger
from .model import DispatchOutcome, RequestReference, render_references

logger = logging.getLogger(__name__)

SIGNING_TX_MSG = "Signing and submitting the %s transaction for %s..."


class OutcomeHandler:
    """Sign and submit built transactions and record what happened.

    The processed cache is only written after the collaborator accepted the
    submission and the success outcome was recorded.  Build or submission
    failures leave the cache untouched so the requests stay eligible for a
    later cycle.
    """

    def __init__(self, ledger: Ledger, cache: ProcessedCache, quiet: bool = False) -> None:
        self.ledger = ledger
        self.cache = cache
        self.quiet = quiet

    def warn(self, message: str, *args: Any) -> None:
        logger.log(logging.DEBUG if self.quiet else logging.WARNING, message, *args)

    async def handle(
        self,
        references: Sequence[RequestReference],
        build_result: BuildResult,
        label: str,
        rendered: str | None = None,
    ) -> DispatchOutcome:
        if rendered is None:
            rendered = render_references(references)
        if not build_result.is_ok:
            reason = str(build_result.error or "unknown build error")
            self.warn("Failed to build the %s transaction for %s: %s", label, rendered, reason)
            return DispatchOutcome.failure(references, label, reason)

        logger.debug(SIGNING_TX_MSG, label, rendered)
        try:
            tx_id = await self.ledger.sign_and_submit(build_result.tx)
        except Exception as exc:
            self.warn("Failed to submit the %s transaction for %s: %s", label, rendered, exc)
            return DispatchOutcome.failure(references, label, str(exc))

        outcome = DispatchOutcome.success(references, label, tx_id)
        self.cache.add_all(outcome.references)
        logger.info("%s tx hash: %s", label.capitalize(), tx_id)
        return outcome
