"""Domain models for the smart handles router agent.

Requests are identified by the output reference of the UTxO that carries them.
The session configuration and the processing mode / action intent enums are
fixed for the lifetime of a monitoring session; outcomes and cycle reports are
the structured records handed to callers for logging.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence, Tuple

DEFAULT_NETWORK = "Mainnet"
DEFAULT_POLLING_INTERVAL_MS = 10_000
SUPPORTED_NETWORKS = ("Mainnet", "Preprod", "Preview", "Custom")
# Lovelaces a request must carry to pay the routing agent.
ROUTER_FEE = 1_000_000

_SHORT_HASH_EDGE = 8


class ProcessingMode(str, Enum):
    """How requests are laid out at the monitored script."""

    SINGLE = "Single"
    BATCH = "Batch"


class ActionIntent(str, Enum):
    """What the operator does with each eligible request."""

    ROUTE = "Route"
    RECLAIM = "Reclaim"


class RequestKind(str, Enum):
    """Shape of a route request locked at the script."""

    SIMPLE = "simple"
    ADVANCED = "advanced"


@dataclass(frozen=True)
class RequestReference:
    """Output reference (transaction hash, output index) of a pending request."""

    tx_hash: str
    output_index: int

    def render(self) -> str:
        return f"{self.tx_hash}#{self.output_index}"

    def render_short(self) -> str:
        tx_hash = self.tx_hash
        if len(tx_hash) > 2 * _SHORT_HASH_EDGE:
            tx_hash = f"{tx_hash[:_SHORT_HASH_EDGE]}..{tx_hash[-_SHORT_HASH_EDGE:]}"
        return f"{tx_hash}#{self.output_index}"

    def to_dict(self) -> dict[str, Any]:
        return {"tx_hash": self.tx_hash, "output_index": self.output_index}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RequestReference":
        """Parse a reference from collaborator payloads.

        Accepts the snake_case keys produced by :meth:`to_dict` as well as the
        ``txHash``/``outputIndex`` and ``txid``/``vout`` spellings used by
        common chain indexers.
        """

        tx_hash = payload.get("tx_hash") or payload.get("txHash") or payload.get("txid")
        index = payload.get("output_index")
        if index is None:
            index = payload.get("outputIndex", payload.get("vout"))
        if not tx_hash or index is None:
            raise ValueError(f"Malformed request reference: {dict(payload)!r}")
        return cls(tx_hash=str(tx_hash), output_index=int(index))

    def __str__(self) -> str:
        return self.render()


def render_references(references: Sequence[RequestReference]) -> str:
    """Render references for log lines.

    A single reference is shown in full; several are shown in short form and
    joined with commas.
    """

    if not references:
        return ""
    if len(references) == 1:
        return references[0].render()
    return ", ".join(ref.render_short() for ref in references)


@dataclass(frozen=True)
class SessionConfig:
    """Immutable configuration of one monitoring session."""

    script_cbor: str
    script_target: ProcessingMode
    route_destination: str
    intent: ActionIntent = ActionIntent.ROUTE
    label: str = ""
    network: str = DEFAULT_NETWORK
    polling_interval_ms: int = DEFAULT_POLLING_INTERVAL_MS
    advanced_reclaim_config: Mapping[str, Any] | None = None
    simple_route_config: Mapping[str, Any] | None = None
    advanced_route_config: Mapping[str, Any] | None = None
    advanced_route_request: Mapping[str, Any] | None = None
    quiet: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def polling_interval_seconds(self) -> float:
        return self.polling_interval_ms / 1000

    @property
    def route_config(self) -> dict[str, Any]:
        """Route sub-configurations plus batch parameters, as sent to the ledger."""

        config: dict[str, Any] = {}
        if self.simple_route_config is not None:
            config["simple"] = dict(self.simple_route_config)
        if self.advanced_route_config is not None:
            config["advanced"] = dict(self.advanced_route_config)
        if self.extra:
            config["extra"] = dict(self.extra)
        return config

    @property
    def reclaim_config(self) -> dict[str, Any] | None:
        if self.advanced_reclaim_config is None:
            return None
        config: dict[str, Any] = {"advanced": dict(self.advanced_reclaim_config)}
        if self.extra:
            config["extra"] = dict(self.extra)
        return config


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of dispatching one unit of work (a single request or a batch)."""

    references: Tuple[RequestReference, ...]
    label: str
    succeeded: bool
    tx_id: str | None = None
    reason: str | None = None

    @classmethod
    def success(
        cls, references: Iterable[RequestReference], label: str, tx_id: str
    ) -> "DispatchOutcome":
        return cls(references=tuple(references), label=label, succeeded=True, tx_id=tx_id)

    @classmethod
    def failure(
        cls, references: Iterable[RequestReference], label: str, reason: str
    ) -> "DispatchOutcome":
        return cls(references=tuple(references), label=label, succeeded=False, reason=reason)

    @property
    def rendered(self) -> str:
        return render_references(self.references)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "label": self.label,
            "references": self.rendered,
            "success": self.succeeded,
        }
        if self.succeeded:
            data["tx_id"] = self.tx_id
        else:
            data["reason"] = self.reason
        return data


@dataclass
class CycleReport:
    """Structured summary emitted once per scan cycle."""

    mode: ProcessingMode
    intent: ActionIntent
    started_at: datetime
    candidates: int = 0
    eligible: int = 0
    outcomes: list[DispatchOutcome] = field(default_factory=list)
    error: str | None = None

    @property
    def none_found(self) -> bool:
        return self.error is None and self.eligible == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "intent": self.intent.value,
            "started_at": self.started_at.isoformat(),
            "candidates": self.candidates,
            "eligible": self.eligible,
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "error": self.error,
        }


@dataclass(frozen=True)
class RouteRequest:
    """A route request to lock at the monitored script.

    ``assets`` maps hex units (policy id followed by token name) to quantities;
    lovelaces are carried separately.  Advanced requests also carry the fees
    the routing agent may collect and the ``extra_info`` taken from the
    ``advanced_route_request`` config.
    """

    kind: RequestKind
    lovelace: int
    assets: Mapping[str, int] = field(default_factory=dict)
    mark_owner: bool = False
    router_fee: int | None = None
    reclaim_router_fee: int | None = None
    extra_info: Mapping[str, Any] | None = None

    @property
    def value_to_lock(self) -> dict[str, int]:
        value = dict(self.assets)
        value["lovelace"] = self.lovelace
        return value

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"value_to_lock": self.value_to_lock}
        if self.kind is RequestKind.ADVANCED:
            data.update(
                mark_wallet_as_owner=self.mark_owner,
                router_fee=self.router_fee,
                reclaim_router_fee=self.reclaim_router_fee,
                extra_info=dict(self.extra_info or {}),
            )
        return {"kind": self.kind.value, "data": data}
