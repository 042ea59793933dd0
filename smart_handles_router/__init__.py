"""Smart handles routing agent package."""

from .cache import ProcessedCache, filter_eligible
from .errors import (
    BuildError,
    FatalSessionError,
    InvalidRequestError,
    LedgerError,
    MissingReclaimConfigError,
    MissingRequestConfigError,
    QueryError,
    RequestError,
    RouterError,
    SessionSetupError,
    SubmitError,
)
from .ledger import BuildResult, Ledger, RPCLedger, UnsignedTx
from .model import (
    ActionIntent,
    CycleReport,
    DispatchOutcome,
    ProcessingMode,
    RequestKind,
    RequestReference,
    RouteRequest,
    SessionConfig,
    render_references,
)
from .monitor import MonitorSession, check_preconditions, run_monitor
from .request import build_advanced_request, build_simple_request, submit_route_request
from .scheduler import PollingScheduler

__all__ = [
    "ActionIntent",
    "BuildError",
    "BuildResult",
    "CycleReport",
    "DispatchOutcome",
    "FatalSessionError",
    "InvalidRequestError",
    "Ledger",
    "LedgerError",
    "MissingReclaimConfigError",
    "MissingRequestConfigError",
    "MonitorSession",
    "PollingScheduler",
    "ProcessedCache",
    "ProcessingMode",
    "QueryError",
    "RPCLedger",
    "RequestError",
    "RequestKind",
    "RequestReference",
    "RouteRequest",
    "RouterError",
    "SessionConfig",
    "SessionSetupError",
    "SubmitError",
    "UnsignedTx",
    "build_advanced_request",
    "build_simple_request",
    "check_preconditions",
    "filter_eligible",
    "render_references",
    "run_monitor",
    "submit_route_request",
]
