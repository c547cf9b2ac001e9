"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/solvote/core/blockchain.py`.
Este módulo forma parte de Solvote y está documentado para facilitar
la navegación, mantenimiento y auditoría técnica.

Componentes detectados:
  - build_instruction
  - build_transaction
  - TransactionSubmitter

Notas:
- Mantener esta cabecera sincronizada con cambios estructurales del archivo.
- Un timeout de confirmación nunca implica que la transacción falló.

======================== ENGLISH ========================
File: `src/solvote/core/blockchain.py`.
This module is part of Solvote and is documented to improve
navigation, maintenance, and technical auditability.

Detected components:
  - build_instruction
  - build_transaction
  - TransactionSubmitter

Notes:
- Keep this header in sync with structural changes in the file.
- A confirmation timeout never implies the transaction failed.
"""

# Blockchain Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Construcción y firma de transacciones
#   2) Envío
#   3) Sondeo de confirmación acotado
#
# EN: Quick index
#   1) Transaction building and signing
#   2) Submission
#   3) Bounded confirmation polling

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

import structlog
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from .errors import NetworkError, SubmissionRejected
from .models import AccountRef, TransactionOutcome, TxStatus

if TYPE_CHECKING:
    from ..rpc import SolanaRpcClient

logger = structlog.get_logger(__name__)

TERMINAL_STATUSES = frozenset({"confirmed", "finalized"})
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_MAX_ATTEMPTS = 15


def build_instruction(program_id: Pubkey, data: bytes, accounts: Sequence[AccountRef]) -> Instruction:
    """Construye la instrucción con las cuentas en el orden exigido por el programa.

    English: Build the instruction; account order is part of the program's contract.
    """
    metas = [
        AccountMeta(pubkey=ref.pubkey, is_signer=ref.is_signer, is_writable=ref.is_writable)
        for ref in accounts
    ]
    return Instruction(program_id, data, metas)


def build_transaction(instruction: Instruction, payer: Keypair, blockhash: Hash) -> Transaction:
    """Firma una transacción con ``payer`` como pagador de comisiones.

    English: Sign a single-instruction transaction bound to ``blockhash``.
    """
    message = Message.new_with_blockhash([instruction], payer.pubkey(), blockhash)
    return Transaction([payer], message, blockhash)


def _is_pending(status: Optional[Dict[str, Any]]) -> bool:
    if status is None:
        return True
    return status.get("confirmationStatus") not in TERMINAL_STATUSES


class TransactionSubmitter:
    """Envía instrucciones firmadas y espera su confirmación.

    English:
        Submits signed instructions and waits for confirmation. Polling is
        sequential, at a fixed interval, for a bounded number of attempts.

    Args:
        rpc: Connected ``SolanaRpcClient``.
        poll_interval: Seconds between status queries.
        max_attempts: Upper bound of status queries per signature.
    """

    def __init__(
        self,
        rpc: "SolanaRpcClient",
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._rpc = rpc
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts

    async def submit(self, instruction: Instruction, payer: Keypair) -> TransactionOutcome:
        """Obtiene blockhash, firma y envía.

        English:
            Fetch a recent blockhash, sign and send. Returns ACCEPTED with
            the signature, or REJECTED with the remote reason. Transport
            failures propagate as NetworkError.
        """
        blockhash = await self._rpc.get_latest_blockhash()
        transaction = build_transaction(instruction, payer, blockhash)
        try:
            signature = await self._rpc.send_transaction(bytes(transaction))
        except SubmissionRejected as exc:
            logger.warning("transaction_rejected", reason=exc.reason, payer=str(payer.pubkey()))
            return TransactionOutcome(TxStatus.REJECTED, reason=exc.reason)
        logger.info("transaction_sent", signature=signature, blockhash=str(blockhash))
        return TransactionOutcome(TxStatus.ACCEPTED, signature=signature)

    async def _poll_once(self, signature: str) -> Optional[Dict[str, Any]]:
        return await self._rpc.get_signature_status(signature)

    def _log_pending(self, retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome is not None and outcome.failed:
            observed = f"error: {outcome.exception()}"
        else:
            status = outcome.result() if outcome is not None else None
            observed = (status or {}).get("confirmationStatus") or "not_found"
        logger.debug(
            "confirmation_pending",
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            observed=observed,
        )

    async def await_confirmation(self, signature: str) -> TransactionOutcome:
        """Sondea el estado hasta ``confirmed``/``finalized`` o agotar intentos.

        English:
            Poll until ``confirmed``/``finalized`` or the attempt bound is
            reached. Anything else, including "not found" and transient
            NetworkError, keeps polling. Exhaustion yields TIMEOUT, which is
            an uncertain outcome, not a failure. A terminal status carrying an
            ``err`` means the transaction landed and the program failed it.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.poll_interval),
            retry=retry_if_result(_is_pending) | retry_if_exception_type(NetworkError),
            before_sleep=self._log_pending,
        )
        try:
            status = await retrying(self._poll_once, signature)
        except RetryError:
            logger.warning("confirmation_timeout", signature=signature, attempts=self.max_attempts)
            return TransactionOutcome(TxStatus.TIMEOUT, signature=signature, attempts=self.max_attempts)

        attempts = retrying.statistics.get("attempt_number", 1)
        if status.get("err") is not None:
            reason = f"transaction failed on-chain: {status['err']}"
            logger.warning("transaction_failed", signature=signature, err=str(status["err"]))
            return TransactionOutcome(TxStatus.REJECTED, signature=signature, reason=reason, attempts=attempts)

        logger.info(
            "transaction_confirmed",
            signature=signature,
            status=status.get("confirmationStatus"),
            attempts=attempts,
        )
        return TransactionOutcome(TxStatus.ACCEPTED, signature=signature, attempts=attempts)

    async def submit_and_confirm(self, instruction: Instruction, payer: Keypair) -> TransactionOutcome:
        outcome = await self.submit(instruction, payer)
        if not outcome.ok:
            return outcome
        return await self.await_confirmation(outcome.signature)
