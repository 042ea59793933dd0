"""Typed JSON-RPC client for the ledger collaborator.

The collaborator is an off-chain service that knows the smart handles
validators: it queries request UTxOs, builds route and reclaim transactions,
signs and submits them with the operator wallet, and locks new route requests
at the script.  This client only forwards
well-typed requests and surfaces errors clearly; it holds no chain logic.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Dict, List, Optional

import requests
from requests import RequestException, Response

from .config import RPCConfig

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30


class RPCError(RuntimeError):
    """Raised when the collaborator responds with a JSON-RPC error."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LedgerRPCClient:
    """Blocking JSON-RPC client; one helper per collaborator method.

    Connection defaults can be overridden via the ``ROUTER_RPC_*`` environment
    variables or the ``rpc`` section of ``router.config.yaml``.
    """

    def __init__(self, config: RPCConfig, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.config = config
        self.timeout = timeout
        self._session = requests.Session()
        self._base_url = config.base_url
        self._wallet = config.wallet

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """Perform a JSON-RPC request."""

        payload = {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params or [],
        }
        logger.debug("RPC call %s params=%s", method, params)
        try:
            response = self._session.post(
                self._url,
                data=json.dumps(payload),
                headers={"content-type": "application/json"},
                auth=(self.config.user, self.config.password),
                timeout=self.timeout,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                "RPC connection failed. Ensure the ledger service is reachable, authentication is valid, "
                "and ROUTER_RPC_* variables (or router.config.yaml) point to the right host and port."
            ) from exc
        try:
            self._raise_for_status(response)
        except requests.HTTPError as exc:
            raise RPCTransportError(
                "RPC server returned an HTTP error; check the URL, wallet path, authentication, and ROUTER_RPC_* settings.",
                status_code=response.status_code,
            ) from exc
        try:
            result = response.json()
        except ValueError as exc:
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise RPCTransportError("RPC server returned malformed JSON") from exc
        if result.get("error"):
            error = result["error"]
            raise RPCError(error.get("code", -1), error.get("message", "unknown"))
        return result.get("result")

    def _raise_for_status(self, response: Response) -> None:
        # JSON-RPC servers commonly report method errors as HTTP 500 with a
        # structured body; keep the body in the log.
        if not response.ok:
            try:
                err_body = response.json()
            except ValueError:
                err_body = response.text

            logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
            logger.error("RPC error body: %s", err_body)
            if response.status_code == 401:
                raise RPCTransportError(
                    "Unauthorized (401). Ensure ROUTER_RPC_USER (or your router.config.yaml) contains valid credentials.",
                    status_code=response.status_code,
                )
            if isinstance(err_body, dict) and err_body.get("error"):
                error = err_body["error"]
                raise RPCError(error.get("code", -1), error.get("message", "unknown"))
        response.raise_for_status()

    @property
    def _url(self) -> str:
        if self._wallet:
            return f"{self._base_url}/wallet/{self._wallet}"
        return self._base_url

    # Convenience wrappers -------------------------------------------------

    def getmonitoraddress(self, target: str, script_cbor: str, network: str) -> str:
        return self.call("getmonitoraddress", [target, script_cbor, network])

    def listrequests(self, target: str, script_cbor: str, network: str) -> List[Dict[str, Any]]:
        return self.call("listrequests", [target, script_cbor, network])

    def buildroute(
        self,
        target: str,
        script_cbor: str,
        network: str,
        out_refs: List[Dict[str, Any]],
        route_address: str,
        route_config: Dict[str, Any],
    ) -> Dict[str, Any]:
        return self.call(
            "buildroute",
            [target, script_cbor, network, out_refs, route_address, route_config],
        )

    def buildreclaim(
        self,
        target: str,
        script_cbor: str,
        network: str,
        out_refs: List[Dict[str, Any]],
        reclaim_config: Dict[str, Any],
    ) -> Dict[str, Any]:
        return self.call("buildreclaim", [target, script_cbor, network, out_refs, reclaim_config])

    def signandsubmit(self, tx_cbor: str) -> str:
        return self.call("signandsubmit", [tx_cbor])

    def submitrequest(
        self, target: str, script_cbor: str, network: str, request: Dict[str, Any]
    ) -> str:
        return self.call("submitrequest", [target, script_cbor, network, request])
