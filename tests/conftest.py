from __future__ import annotations

import pytest

from smart_handles_router.errors import SubmitError
from smart_handles_router.ledger import BuildResult, UnsignedTx
from smart_handles_router.model import RequestReference


class StubLedger:
    """In-memory ledger collaborator recording every call."""

    def __init__(self) -> None:
        self.candidates: list[RequestReference] = []
        self.query_error: Exception | None = None
        self.build_failures: set[RequestReference] = set()
        self.build_exceptions: set[RequestReference] = set()
        self.submit_failures: set[RequestReference] = set()
        self.calls: list[tuple[str, object]] = []
        self.submitted: list[tuple[RequestReference, ...]] = []
        self.requests: list[object] = []
        self.request_error: Exception | None = None
        self._pending: dict[str, tuple[RequestReference, ...]] = {}

    async def monitor_address(self, mode, script_cbor):
        self.calls.append(("monitor_address", mode))
        return "addr_test1monitor"

    async def fetch_candidates(self, mode, script_cbor):
        self.calls.append(("fetch_candidates", mode))
        if self.query_error is not None:
            raise self.query_error
        return list(self.candidates)

    async def build_route_transaction(self, mode, script_cbor, references, destination, route_config):
        self.calls.append(("build_route", tuple(references)))
        return self._build(references)

    async def build_reclaim_transaction(self, mode, script_cbor, references, reclaim_config):
        self.calls.append(("build_reclaim", tuple(references)))
        return self._build(references)

    async def sign_and_submit(self, tx):
        references = self._pending[tx.cbor]
        self.calls.append(("sign_and_submit", references))
        if self.submit_failures.intersection(references):
            raise SubmitError("transaction rejected")
        self.submitted.append(references)
        return f"tx-{len(self.submitted)}"

    async def submit_request(self, mode, script_cbor, request):
        self.calls.append(("submit_request", mode))
        if self.request_error is not None:
            raise self.request_error
        self.requests.append(request)
        return f"req-{len(self.requests)}"

    def _build(self, references):
        references = tuple(references)
        if self.build_exceptions.intersection(references):
            raise RuntimeError("collaborator crashed")
        if self.build_failures.intersection(references):
            return BuildResult.err("insufficient collateral")
        cbor = "|".join(ref.render() for ref in references)
        self._pending[cbor] = references
        return BuildResult.ok(UnsignedTx(cbor=cbor))

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)


@pytest.fixture
def ledger() -> StubLedger:
    return StubLedger()


@pytest.fixture
def refs() -> list[RequestReference]:
    return [
        RequestReference("aa" * 32, 0),
        RequestReference("bb" * 32, 1),
        RequestReference("cc" * 32, 2),
    ]

