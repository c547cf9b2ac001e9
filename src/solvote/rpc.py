"""Cliente JSON-RPC asíncrono para el ledger de Solana.

English:
    Async JSON-RPC client for the Solana ledger. Only the calls the voting
    workflow needs; none of them retries on its own.
"""

from __future__ import annotations

import base64
import binascii
import itertools
from typing import Any, Dict, List, Optional

import httpx
import structlog
from solders.hash import Hash
from solders.pubkey import Pubkey

from .core.errors import NetworkError, SubmissionRejected

logger = structlog.get_logger(__name__)

DEFAULT_RPC_URL = "https://api.testnet.solana.com"
USER_AGENT = "solvote/0.1.0"


def build_client(timeout: float = 30.0) -> httpx.AsyncClient:
    """Construye un cliente HTTP con timeout global.

    English: Build an HTTP client with a global timeout.
    """
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout), headers={"User-Agent": USER_AGENT})


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)


class SolanaRpcClient:
    """Cliente RPC mínimo sobre ``httpx.AsyncClient``.

    English:
        Minimal RPC client over ``httpx.AsyncClient``. Use as an async
        context manager so the underlying connection pool is closed.

    Args:
        url: RPC endpoint.
        commitment: Commitment level for reads (``confirmed`` by default).
        timeout: Request timeout in seconds.
        client: Optional preconfigured ``httpx.AsyncClient``; it is not
            closed by this object when supplied.
    """

    def __init__(
        self,
        url: str = DEFAULT_RPC_URL,
        *,
        commitment: str = "confirmed",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.commitment = commitment
        self._owns_client = client is None
        self._client = client or build_client(timeout)
        self._ids = itertools.count(1)

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, method: str, params: List[Any]) -> Dict[str, Any]:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        logger.debug("rpc_request", method=method, url=self.url)
        try:
            response = await self._client.post(self.url, json=payload)
        except httpx.RequestError as exc:
            raise NetworkError(f"{method} request failed: {exc}", operation=method) from exc

        if response.status_code >= 400:
            raise NetworkError(
                f"{method} returned HTTP {response.status_code}: {response.text[:200]}",
                operation=method,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise NetworkError(f"{method} returned a non-JSON body", operation=method) from exc
        if not isinstance(body, dict):
            raise NetworkError(f"{method} returned a malformed envelope", operation=method)
        return body

    async def call(self, method: str, params: List[Any]) -> Any:
        """Ejecuta una llamada y devuelve ``result``.

        English: Perform a call and return ``result``; RPC errors become NetworkError.
        """
        body = await self._post(method, params)
        if body.get("error") is not None:
            raise NetworkError(f"{method} failed: {_error_message(body['error'])}", operation=method)
        if "result" not in body:
            raise NetworkError(f"{method} response has no result", operation=method)
        return body["result"]

    @staticmethod
    def _value(method: str, result: Any) -> Any:
        if not isinstance(result, dict) or "value" not in result:
            raise NetworkError(f"{method} result has no value", operation=method)
        return result["value"]

    async def get_balance(self, pubkey: Pubkey) -> int:
        """Saldo en lamports."""
        result = await self.call("getBalance", [str(pubkey), {"commitment": self.commitment}])
        value = self._value("getBalance", result)
        if not isinstance(value, int):
            raise NetworkError("getBalance returned a non-integer balance", operation="getBalance", address=str(pubkey))
        return value

    async def get_account_info(self, pubkey: Pubkey) -> Optional[bytes]:
        """Datos crudos de la cuenta, o ``None`` si no existe.

        English: Raw account data, or ``None`` when the account does not exist.
        """
        result = await self.call(
            "getAccountInfo",
            [str(pubkey), {"encoding": "base64", "commitment": self.commitment}],
        )
        value = self._value("getAccountInfo", result)
        if value is None:
            return None
        data = value.get("data") if isinstance(value, dict) else None
        if not isinstance(data, list) or not data or not isinstance(data[0], str):
            raise NetworkError("getAccountInfo returned malformed data", operation="getAccountInfo", address=str(pubkey))
        try:
            return base64.b64decode(data[0], validate=True)
        except (binascii.Error, ValueError) as exc:
            raise NetworkError(
                "getAccountInfo returned invalid base64",
                operation="getAccountInfo",
                address=str(pubkey),
            ) from exc

    async def account_exists(self, pubkey: Pubkey) -> bool:
        return await self.get_account_info(pubkey) is not None

    async def get_latest_blockhash(self) -> Hash:
        result = await self.call("getLatestBlockhash", [{"commitment": self.commitment}])
        value = self._value("getLatestBlockhash", result)
        blockhash = value.get("blockhash") if isinstance(value, dict) else None
        if not isinstance(blockhash, str):
            raise NetworkError("getLatestBlockhash returned no blockhash", operation="getLatestBlockhash")
        try:
            return Hash.from_string(blockhash)
        except ValueError as exc:
            raise NetworkError(f"Invalid blockhash {blockhash!r}", operation="getLatestBlockhash") from exc

    async def send_transaction(self, raw_transaction: bytes) -> str:
        """Envía una transacción firmada y devuelve su firma.

        English:
            Send a signed transaction and return its signature. A JSON-RPC
            error here is a refusal by the validator or the program (usually
            a failed preflight simulation) and raises SubmissionRejected with
            the remote message verbatim.
        """
        encoded = base64.b64encode(raw_transaction).decode("ascii")
        body = await self._post(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": self.commitment}],
        )
        if body.get("error") is not None:
            raise SubmissionRejected(_error_message(body["error"]), operation="sendTransaction")
        signature = body.get("result")
        if not isinstance(signature, str) or not signature.strip():
            raise SubmissionRejected("empty signature returned", operation="sendTransaction")
        return signature

    async def get_signature_status(self, signature: str) -> Optional[Dict[str, Any]]:
        """Estado de una firma, o ``None`` si el ledger aún no la conoce.

        English: Status of one signature, or ``None`` while it is not yet found.
        """
        result = await self.call("getSignatureStatuses", [[signature], {"searchTransactionHistory": True}])
        value = self._value("getSignatureStatuses", result)
        if not isinstance(value, list) or not value:
            return None
        status = value[0]
        if status is not None and not isinstance(status, dict):
            raise NetworkError("getSignatureStatuses returned a malformed status", operation="getSignatureStatuses")
        return status
