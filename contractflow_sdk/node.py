"""
Node RPC client: account state, chain status, broadcast and simulated calls.
"""
import json
import logging
from typing import Any, Dict, Optional

import requests

from ._http import build_session, json_or_none, summarize, validate_url
from .exceptions import BroadcastError, ChainQueryError
from .models import Account, BroadcastResult, SignedTransaction


def _quote(value: str) -> str:
    # GET arguments are JSON-decoded by the node, so strings travel quoted
    return json.dumps(value)


def unwrap_result(body: Any) -> Any:
    """
    Strip the JSON-RPC envelope from a node reply.

    Replies look like ``{"result": [type_byte, payload], "error": ""}``;
    bare payloads are returned as they are.
    """
    if isinstance(body, dict) and "result" in body:
        body = body["result"]
    if isinstance(body, list) and len(body) == 2 and isinstance(body[0], int):
        body = body[1]
    return body


class NodeClient:
    """
    Client for the node's HTTP and JSON-RPC endpoints.

    Read failures raise ChainQueryError; broadcast failures raise
    BroadcastError with the node's rejection reason attached.
    """

    def __init__(
        self,
        node_url: str,
        retry_count: int = 3,
        timeout: int = 30,
        allow_insecure: bool = False,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the node client

        Args:
            node_url: Base URL of the node RPC server
            retry_count: Number of retries for HTTP requests
            timeout: Timeout for HTTP requests in seconds
            allow_insecure: Accept plain http:// for non-local hosts
            session: Optional pre-configured requests session
            logger: Optional logger instance
        """
        self.node_url = validate_url("node_url", node_url, allow_insecure)
        self.timeout = timeout
        self.session = session or build_session(retry_count)
        self.logger = logger or logging.getLogger(__name__)

    def _get(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        url = f"{self.node_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            self.logger.debug(f"GET {path} failed: {e}")
            raise ChainQueryError(f"GET {url} failed: {str(e)}", endpoint=path) from e

        body = json_or_none(response)
        if body is None:
            raise ChainQueryError(f"Invalid JSON from {url}: {summarize(response.text)}", endpoint=path)
        if isinstance(body, dict) and body.get("error"):
            raise ChainQueryError(f"Node error from {path}: {body['error']}", endpoint=path)
        return unwrap_result(body)

    def get_genesis(self) -> Dict[str, Any]:
        """Fetch the genesis document"""
        genesis = self._get("/genesis")
        if isinstance(genesis, dict) and isinstance(genesis.get("genesis"), dict):
            genesis = genesis["genesis"]
        if not isinstance(genesis, dict):
            raise ChainQueryError("Unexpected genesis payload", endpoint="/genesis")
        return genesis

    def get_block_height(self) -> int:
        """
        Current height of the chain.

        Raises:
            ChainQueryError: If the status cannot be fetched or has no height
        """
        status = self._get("/status")
        height = status.get("latest_block_height") if isinstance(status, dict) else None
        if isinstance(height, bool) or not isinstance(height, int):
            raise ChainQueryError(f"Missing latest_block_height in status: {summarize(status)}", endpoint="/status")
        return height

    def get_account(self, address: str) -> Account:
        """
        Fetch account state.

        An account that never transacted comes back as null and is reported
        with sequence 0; any other failure propagates.

        Raises:
            ChainQueryError: On transport or parse failure
        """
        payload = self._get("/get_account", params={"address": _quote(address)})
        if not isinstance(payload, dict):
            raise ChainQueryError(f"Unexpected get_account payload: {summarize(payload)}", endpoint="/get_account")

        account = payload.get("account")
        if account is None:
            return Account(address=address, sequence=0)
        if not isinstance(account, dict):
            raise ChainQueryError(f"Unexpected account payload: {summarize(account)}", endpoint="/get_account")
        try:
            return Account(
                address=account.get("address") or address,
                sequence=account.get("sequence") or 0,
                code=account.get("code") or "",
            )
        except ValueError as e:
            raise ChainQueryError(f"Invalid account data for {address}: {str(e)}", endpoint="/get_account") from e

    def get_sequence(self, address: str) -> int:
        """Current sequence number of an account (0 if it never transacted)"""
        return self.get_account(address).sequence

    def get_code(self, address: str) -> str:
        """Code stored at a contract address, as hex"""
        return self.get_account(address).code

    def broadcast_tx(self, signed: SignedTransaction) -> BroadcastResult:
        """
        Submit a signed transaction.

        Acceptance here only means the node took the transaction into its
        mempool; it is not a confirmation.

        Raises:
            BroadcastError: On transport failure or node-side rejection
        """
        request = {
            "jsonrpc": "2.0",
            "id": "",
            "method": "broadcast_tx",
            "params": [signed.to_wire()],
        }
        self.logger.debug(
            f"Broadcasting tx from {signed.tx.input_address} seq={signed.tx.sequence} "
            f"data={summarize(signed.tx.data, 40)}"
        )

        try:
            response = self.session.post(self.node_url, json=request, timeout=self.timeout)
        except requests.RequestException as e:
            self.logger.error(f"Failed to broadcast transaction: {e}")
            raise BroadcastError(f"Broadcast to {self.node_url} failed: {str(e)}", reason=str(e)) from e

        body = json_or_none(response)
        error = body.get("error") if isinstance(body, dict) else None
        if error:
            reason = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            self.logger.error(f"Node rejected transaction: {reason}")
            raise BroadcastError(f"Node rejected transaction: {reason}", reason=reason)
        if response.status_code >= 400:
            reason = summarize(response.text)
            raise BroadcastError(f"Broadcast failed with HTTP {response.status_code}: {reason}", reason=reason)
        if body is None:
            raise BroadcastError(f"Invalid JSON in broadcast reply: {summarize(response.text)}")

        result = unwrap_result(body)
        receipt = result.get("receipt") if isinstance(result, dict) else None
        if not isinstance(receipt, dict):
            raise BroadcastError(f"Missing receipt in broadcast reply: {summarize(body)}")

        contract_address = receipt.get("contract_addr") or None
        if signed.tx.is_deploy and not contract_address:
            raise BroadcastError("Deploy transaction accepted without a contract address")

        broadcast = BroadcastResult(
            tx_hash=receipt.get("tx_hash") or None,
            contract_address=contract_address if signed.tx.is_deploy else None,
            return_value=receipt.get("return") or None,
        )
        self.logger.info(f"Transaction accepted: {broadcast.tx_hash}")
        return broadcast

    def call(self, from_address: str, to_address: str, data: str) -> str:
        """
        Run a simulated call that produces no transaction.

        Args:
            from_address: Caller address
            to_address: Contract address
            data: Hex call data

        Returns:
            Raw hex return value
        """
        payload = self._get("/call", params={
            "fromAddress": _quote(from_address),
            "toAddress": _quote(to_address),
            "data": _quote(data),
        })
        value = payload.get("return") if isinstance(payload, dict) else None
        if not isinstance(value, str):
            raise ChainQueryError(f"Missing return value in call reply: {summarize(payload)}", endpoint="/call")
        return value
