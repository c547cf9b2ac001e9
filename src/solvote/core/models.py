"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/solvote/core/models.py`.
Este módulo forma parte de Solvote y está documentado para facilitar
la navegación, mantenimiento y auditoría técnica.

Componentes detectados:
  - VotingSession
  - VoteRecord
  - AccountRef
  - TxStatus
  - TransactionOutcome
  - TallyReport

Notas:
- Mantener esta cabecera sincronizada con cambios estructurales del archivo.
- Priorizar claridad operativa y trazabilidad del comportamiento.

======================== ENGLISH ========================
File: `src/solvote/core/models.py`.
This module is part of Solvote and is documented to improve
navigation, maintenance, and technical auditability.

Detected components:
  - VotingSession
  - VoteRecord
  - AccountRef
  - TxStatus
  - TransactionOutcome
  - TallyReport

Notes:
- Keep this header in sync with structural changes in the file.
- Prioritize operational clarity and behavior traceability.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from solders.pubkey import Pubkey

from .errors import ConfirmationTimeout, DecodeError, SubmissionRejected


@dataclass(frozen=True)
class VotingSession:
    """Estado decodificado de una votación.

    Attributes:
        company_id (int): Identificador de la empresa.
        voting_id (int): Identificador de la votación.
        question (str): Pregunta inmutable.
        options (Tuple[str, ...]): Opciones en orden.
        tallies (Tuple[int, ...]): Conteo por opción.
        total (int): Total de votos.

    English:
        Decoded state of a voting session. Only the remote program mutates
        ``tallies`` and ``total``.

    Attributes:
        company_id (int): Company identifier.
        voting_id (int): Voting identifier.
        question (str): Immutable question.
        options (Tuple[str, ...]): Ordered option labels.
        tallies (Tuple[int, ...]): Per-option counters.
        total (int): Total votes cast.
    """

    company_id: int
    voting_id: int
    question: str
    options: Tuple[str, ...]
    tallies: Tuple[int, ...]
    total: int

    def check_invariants(self) -> None:
        """Valida ``len(options) == len(tallies)`` y ``sum(tallies) == total``.

        English: Raises DecodeError when stored state breaks the tally invariants.
        """
        if len(self.options) != len(self.tallies):
            raise DecodeError(
                f"options/tallies length mismatch: {len(self.options)} != {len(self.tallies)}",
                operation="decode_voting_session",
            )
        if sum(self.tallies) != self.total:
            raise DecodeError(
                f"tally sum {sum(self.tallies)} does not match total {self.total}",
                operation="decode_voting_session",
            )


@dataclass(frozen=True)
class VoteRecord:
    """English: Per-voter marker; its existence is what prevents a second vote."""

    voter: Pubkey
    selected_option: int


@dataclass(frozen=True)
class AccountRef:
    """Referencia a cuenta con etiquetas de escritura/firma.

    English: Account reference tagged writable/read-only and signer/non-signer.
    """

    pubkey: Pubkey
    is_writable: bool
    is_signer: bool = False

    @classmethod
    def writable(cls, pubkey: Pubkey, is_signer: bool = False) -> "AccountRef":
        return cls(pubkey=pubkey, is_writable=True, is_signer=is_signer)

    @classmethod
    def readonly(cls, pubkey: Pubkey, is_signer: bool = False) -> "AccountRef":
        return cls(pubkey=pubkey, is_writable=False, is_signer=is_signer)


class TxStatus(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class TransactionOutcome:
    """Resultado de enviar y esperar una transacción.

    English:
        Result of a submission. ``TIMEOUT`` means uncertain, never failed:
        the transaction may still land and can be re-queried by signature.
    """

    status: TxStatus
    signature: Optional[str] = None
    reason: Optional[str] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.status is TxStatus.ACCEPTED

    def raise_for_status(self, operation: Optional[str] = None, address: Optional[str] = None) -> None:
        """Convierte REJECTED/TIMEOUT en excepciones tipadas.

        English: Map REJECTED to SubmissionRejected and TIMEOUT to ConfirmationTimeout.
        """
        if self.status is TxStatus.REJECTED:
            raise SubmissionRejected(
                self.reason or "unknown reason",
                operation=operation,
                address=address,
                signature=self.signature,
            )
        if self.status is TxStatus.TIMEOUT:
            raise ConfirmationTimeout(
                self.signature or "<unknown>",
                self.attempts,
                operation=operation,
                address=address,
            )


@dataclass
class TallyReport:
    """Reporte final de la votación.

    English: Final tally report produced by the workflow.
    """

    session_address: str
    question: str
    options: List[str]
    tallies: List[int]
    total: int
    already_voted: bool = False
    prior_selection: Optional[int] = None
    signatures: List[str] = field(default_factory=list)

    @classmethod
    def from_session(cls, session_address: Pubkey, session: VotingSession, **extra) -> "TallyReport":
        return cls(
            session_address=str(session_address),
            question=session.question,
            options=list(session.options),
            tallies=list(session.tallies),
            total=session.total,
            **extra,
        )

    def lines(self) -> List[str]:
        rendered = [f"Question: {self.question}"]
        rendered.extend(f"{option} = {count}" for option, count in zip(self.options, self.tallies))
        rendered.append(f"Total: {self.total}")
        if self.already_voted:
            if self.prior_selection is not None and self.prior_selection < len(self.options):
                rendered.append(f"Already voted: {self.options[self.prior_selection]}")
            else:
                rendered.append("Already voted")
        return rendered
