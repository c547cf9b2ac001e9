"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/solvote/core/errors.py`.
Este módulo forma parte de Solvote y está documentado para facilitar
la navegación, mantenimiento y auditoría técnica.

Componentes detectados:
  - VotingClientError
  - ConfigurationError
  - NetworkError
  - SubmissionRejected
  - ConfirmationTimeout
  - DecodeError
  - DerivationExhausted

Notas:
- Mantener esta cabecera sincronizada con cambios estructurales del archivo.
- Cada error debe llevar contexto suficiente para re-ejecutar el paso a mano.

======================== ENGLISH ========================
File: `src/solvote/core/errors.py`.
This module is part of Solvote and is documented to improve
navigation, maintenance, and technical auditability.

Detected components:
  - VotingClientError
  - ConfigurationError
  - NetworkError
  - SubmissionRejected
  - ConfirmationTimeout
  - DecodeError
  - DerivationExhausted

Notes:
- Keep this header in sync with structural changes in the file.
- Every error must carry enough context to re-drive the step by hand.
"""

from __future__ import annotations

from typing import Optional


class VotingClientError(Exception):
    """Error base del cliente de votación.

    English:
        Base error for the voting client. ``operation`` and ``address`` are
        optional context rendered into ``str(exc)``.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        address: Optional[str] = None,
    ) -> None:
        self.message = message
        self.operation = operation
        self.address = address
        super().__init__(self._render())

    def _render(self) -> str:
        context = []
        if self.operation:
            context.append(f"operation={self.operation}")
        if self.address:
            context.append(f"address={self.address}")
        if not context:
            return self.message
        return f"{self.message} ({' '.join(context)})"


class ConfigurationError(VotingClientError):
    """Material de llaves o ajustes inválidos; fatal antes de tocar la red.

    English: Bad or missing key material or settings; fatal, pre-network.
    """


class NetworkError(VotingClientError):
    """Fallo de transporte/RPC o respuesta malformada.

    English: Transport or RPC failure, or a malformed response.
    """


class SubmissionRejected(VotingClientError):
    """English: The validator or the program refused the transaction."""

    def __init__(
        self,
        reason: str,
        *,
        operation: Optional[str] = None,
        address: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> None:
        self.reason = reason
        self.signature = signature
        super().__init__(f"Submission rejected: {reason}", operation=operation, address=address)


class ConfirmationTimeout(VotingClientError):
    """Sondeo agotado; el resultado es incierto, no fallido.

    English:
        The bounded confirmation poll was exhausted. The transaction may
        still land; re-query it by ``signature``.
    """

    def __init__(
        self,
        signature: str,
        attempts: int,
        *,
        operation: Optional[str] = None,
        address: Optional[str] = None,
    ) -> None:
        self.signature = signature
        self.attempts = attempts
        super().__init__(
            f"Uncertain outcome: {signature} not confirmed after {attempts} attempts",
            operation=operation,
            address=address,
        )


class DecodeError(VotingClientError):
    """Bytes almacenados truncados o malformados (desfase de versión cliente/programa).

    English: Truncated or malformed stored bytes (client/program version skew).
    """


class DerivationExhausted(VotingClientError):
    """English: No bump in 0..255 produced an off-curve address."""
