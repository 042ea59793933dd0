"""Exception hierarchy shared by the router agent.

Monitoring errors fall into two families.  ``FatalSessionError`` subclasses end
the monitoring session and are the only exceptions allowed to escape the polling
loop.  ``LedgerError`` subclasses describe recoverable failures of the ledger
collaborator; they are caught at the boundary of the cycle or dispatched item
they belong to and converted into logged outcomes.  ``RequestError`` covers the
one-shot request submission commands, which abort on the first failure.
"""

from __future__ import annotations


class RouterError(RuntimeError):
    """Base class for router agent errors."""


class FatalSessionError(RouterError):
    """Raised when the monitoring session cannot continue."""


class MissingReclaimConfigError(FatalSessionError):
    """Raised when reclaiming is requested without an advanced reclaim config."""

    def __init__(self) -> None:
        super().__init__("Provided config does not include an `advanced_reclaim_config`.")


class SessionSetupError(FatalSessionError):
    """Raised when the ledger collaborator cannot be reached at session start."""


class LedgerError(RouterError):
    """Base class for recoverable ledger collaborator failures."""


class QueryError(LedgerError):
    """Raised when candidate requests could not be fetched."""


class BuildError(LedgerError):
    """Raised (or returned) when a transaction could not be built."""


class SubmitError(LedgerError):
    """Raised when signing or submitting a transaction failed."""


class RequestError(RouterError):
    """Raised when a route request cannot be submitted as given."""


class InvalidRequestError(RequestError):
    """Raised when route request values (lovelace, assets, fees) are invalid."""


class MissingRequestConfigError(RequestError):
    """Raised when an advanced request is submitted without its config."""

    def __init__(self) -> None:
        super().__init__("Provided config does not include an `advanced_route_request`.")
