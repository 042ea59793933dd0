"""Contract of the ledger collaborator and its JSON-RPC implementation.

The router never builds, signs or submits transactions itself.  It talks to a
:class:`Ledger`, an asynchronous collaborator that owns validator knowledge,
UTxO selection, fees and the operator wallet, and that also locks new route
requests at the script.  :class:`RPCLedger` bridges the contract onto
:class:`~smart_handles_router.rpc_client.LedgerRPCClient`, running its blocking
HTTP calls in worker threads.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence

from .errors import BuildError, QueryError, SessionSetupError, SubmitError
from .model import ProcessingMode, RequestReference, RouteRequest
from .rpc_client import LedgerRPCClient, RPCError, RPCTransportError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnsignedTx:
    """Opaque unsigned transaction produced by the collaborator."""

    cbor: str


@dataclass(frozen=True)
class BuildResult:
    """Tagged result of a transaction build: either ``tx`` or ``error`` is set."""

    tx: UnsignedTx | None = None
    error: BuildError | None = None

    @classmethod
    def ok(cls, tx: UnsignedTx) -> "BuildResult":
        return cls(tx=tx)

    @classmethod
    def err(cls, error: BuildError | str) -> "BuildResult":
        if not isinstance(error, BuildError):
            error = BuildError(error)
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.tx is not None


class Ledger(Protocol):
    """Asynchronous capabilities the engine consumes from the collaborator."""

    async def monitor_address(self, mode: ProcessingMode, script_cbor: str) -> str:
        ...

    async def fetch_candidates(
        self, mode: ProcessingMode, script_cbor: str
    ) -> Sequence[RequestReference]:
        ...

    async def build_route_transaction(
        self,
        mode: ProcessingMode,
        script_cbor: str,
        references: Sequence[RequestReference],
        destination: str,
        route_config: Mapping[str, Any],
    ) -> BuildResult:
        ...

    async def build_reclaim_transaction(
        self,
        mode: ProcessingMode,
        script_cbor: str,
        references: Sequence[RequestReference],
        reclaim_config: Mapping[str, Any],
    ) -> BuildResult:
        ...

    async def sign_and_submit(self, tx: UnsignedTx) -> str:
        ...

    async def submit_request(
        self, mode: ProcessingMode, script_cbor: str, request: RouteRequest
    ) -> str:
        ...


class RPCLedger:
    """:class:`Ledger` implementation backed by the JSON-RPC ledger service."""

    def __init__(self, client: LedgerRPCClient, network: str) -> None:
        self.client = client
        self.network = network

    async def monitor_address(self, mode: ProcessingMode, script_cbor: str) -> str:
        try:
            return await asyncio.to_thread(
                self.client.getmonitoraddress, mode.value, script_cbor, self.network
            )
        except (RPCError, RPCTransportError) as exc:
            raise SessionSetupError(f"Could not reach the ledger service: {exc}") from exc

    async def fetch_candidates(
        self, mode: ProcessingMode, script_cbor: str
    ) -> Sequence[RequestReference]:
        try:
            raw = await asyncio.to_thread(
                self.client.listrequests, mode.value, script_cbor, self.network
            )
        except (RPCError, RPCTransportError) as exc:
            raise QueryError(f"Failed to fetch {mode.value.lower()} requests: {exc}") from exc
        try:
            return [RequestReference.from_dict(entry) for entry in raw or []]
        except (TypeError, ValueError, AttributeError) as exc:
            raise QueryError(f"Ledger service returned malformed requests: {exc}") from exc

    async def build_route_transaction(
        self,
        mode: ProcessingMode,
        script_cbor: str,
        references: Sequence[RequestReference],
        destination: str,
        route_config: Mapping[str, Any],
    ) -> BuildResult:
        return await self._build(
            self.client.buildroute,
            mode.value,
            script_cbor,
            self.network,
            [ref.to_dict() for ref in references],
            destination,
            dict(route_config),
        )

    async def build_reclaim_transaction(
        self,
        mode: ProcessingMode,
        script_cbor: str,
        references: Sequence[RequestReference],
        reclaim_config: Mapping[str, Any],
    ) -> BuildResult:
        return await self._build(
            self.client.buildreclaim,
            mode.value,
            script_cbor,
            self.network,
            [ref.to_dict() for ref in references],
            dict(reclaim_config),
        )

    async def sign_and_submit(self, tx: UnsignedTx) -> str:
        try:
            tx_id = await asyncio.to_thread(self.client.signandsubmit, tx.cbor)
        except (RPCError, RPCTransportError) as exc:
            raise SubmitError(str(exc)) from exc
        if not tx_id:
            raise SubmitError("Ledger service did not return a transaction id")
        return str(tx_id)

    async def submit_request(
        self, mode: ProcessingMode, script_cbor: str, request: RouteRequest
    ) -> str:
        try:
            tx_id = await asyncio.to_thread(
                self.client.submitrequest,
                mode.value,
                script_cbor,
                self.network,
                request.to_dict(),
            )
        except (RPCError, RPCTransportError) as exc:
            raise SubmitError(f"Failed to submit the {request.kind.value} route request: {exc}") from exc
        if not tx_id:
            raise SubmitError("Ledger service did not return a transaction id")
        return str(tx_id)

    @staticmethod
    async def _build(method: Any, *params: Any) -> BuildResult:
        try:
            result = await asyncio.to_thread(method, *params)
        except (RPCError, RPCTransportError) as exc:
            return BuildResult.err(str(exc))
        cbor = result.get("cbor") if isinstance(result, dict) else None
        if not cbor:
            return BuildResult.err("Ledger service returned no transaction CBOR")
        return BuildResult.ok(UnsignedTx(cbor=str(cbor)))
