"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/solvote/workflow.py`.
Este módulo forma parte de Solvote y está documentado para facilitar
la navegación, mantenimiento y auditoría técnica.

Componentes detectados:
  - WorkflowState
  - WorkflowAddresses
  - VotingWorkflow
  - run_workflow

Notas:
- Mantener esta cabecera sincronizada con cambios estructurales del archivo.
- Verificar-luego-actuar no es atómico en el cliente; la unicidad la
  garantiza el programa remoto al crear cuentas.

======================== ENGLISH ========================
File: `src/solvote/workflow.py`.
This module is part of Solvote and is documented to improve
navigation, maintenance, and technical auditability.

Detected components:
  - WorkflowState
  - WorkflowAddresses
  - VotingWorkflow
  - run_workflow

Notes:
- Keep this header in sync with structural changes in the file.
- Check-then-act is not atomic on the client; uniqueness is guaranteed by
  the remote program's account creation rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional

import structlog
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from .config import SessionParams, VotingSettings
from .core.blockchain import TransactionSubmitter, build_instruction
from .core.codec import decode_vote_record, decode_voting_session, encode_instruction
from .core.errors import DecodeError, NetworkError
from .core.models import AccountRef, TallyReport, TransactionOutcome
from .core.pda import derive_vote_address, derive_voting_address
from .logging import bind_context
from .rpc import SolanaRpcClient

logger = structlog.get_logger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000


class WorkflowState(IntEnum):
    START = 0
    SESSION_ENSURED = 1
    VOTE_ENSURED = 2
    REPORTED = 3


@dataclass(frozen=True)
class WorkflowAddresses:
    session: Pubkey
    session_bump: int
    vote_record: Pubkey
    vote_record_bump: int


class VotingWorkflow:
    """Orquesta: asegurar sesión, asegurar voto, reportar conteos.

    English:
        Orchestrates ensure-session, ensure-vote and report. Each step can be
        called on its own to re-drive the workflow by hand; ``run`` chains
        them. Errors abort the current step and propagate with the operation
        and address involved. Nothing is retried across steps.

    Args:
        settings: Validated settings (endpoint, program, polling bounds).
        rpc: Connected ``SolanaRpcClient``.
        payer: Fee payer and voter.
        session: Session parameters; defaults to ``settings.SESSION``.
        submitter: Optional preconfigured ``TransactionSubmitter``.
    """

    def __init__(
        self,
        settings: VotingSettings,
        rpc: SolanaRpcClient,
        payer: Keypair,
        *,
        session: Optional[SessionParams] = None,
        submitter: Optional[TransactionSubmitter] = None,
    ) -> None:
        self.settings = settings
        self.params = session or settings.SESSION
        self.program_id = settings.program_id
        self._rpc = rpc
        self._payer = payer
        self._submitter = submitter or TransactionSubmitter(
            rpc,
            poll_interval=settings.POLL_INTERVAL_SECONDS,
            max_attempts=settings.POLL_MAX_ATTEMPTS,
        )
        self.state = WorkflowState.START
        self.signatures: List[str] = []
        self.already_voted = False
        self.prior_selection: Optional[int] = None

    @property
    def voter(self) -> Pubkey:
        return self._payer.pubkey()

    def _transition(self, target: WorkflowState) -> None:
        if target < self.state:
            raise RuntimeError(f"Invalid transition {self.state.name} -> {target.name}")
        self.state = target

    def _logger(self, operation: str, address: Optional[Pubkey] = None):
        return bind_context(
            logger,
            operation=operation,
            address=str(address) if address is not None else None,
            redact=self.settings.LOG_REDACT_IDENTIFIERS,
        )

    def derive_addresses(self) -> WorkflowAddresses:
        """Recalcula ambas PDAs en cada llamada (sin caché).

        English: Recompute both PDAs on every call; nothing is cached.
        """
        session, session_bump = derive_voting_address(
            self.program_id, self.params.company_id, self.params.voting_id
        )
        vote_record, vote_record_bump = derive_vote_address(self.program_id, session, self.voter)
        return WorkflowAddresses(session, session_bump, vote_record, vote_record_bump)

    async def check_balance(self) -> int:
        lamports = await self._rpc.get_balance(self.voter)
        self._logger("getBalance", self.voter).info(
            "payer_balance", lamports=lamports, sol=lamports / LAMPORTS_PER_SOL
        )
        return lamports

    async def _submit(self, operation: str, address: Pubkey, data: bytes, accounts: List[AccountRef]) -> TransactionOutcome:
        log = self._logger(operation, address)
        log.info("instruction_submit_start")
        instruction = build_instruction(self.program_id, data, accounts)
        outcome = await self._submitter.submit_and_confirm(instruction, self._payer)
        outcome.raise_for_status(operation=operation, address=str(address))
        self.signatures.append(outcome.signature)
        log.info("instruction_confirmed", signature=outcome.signature)
        return outcome

    async def ensure_session(self) -> Optional[TransactionOutcome]:
        """Crea la sesión si no existe; si existe, no envía nada.

        English:
            Create the voting session when absent; otherwise skip without
            submitting. Two concurrent callers may both see "absent"; the
            program refuses the second account creation.
        """
        addresses = self.derive_addresses()
        if await self._rpc.account_exists(addresses.session):
            self._logger("initialize_voting", addresses.session).info("session_exists")
            self._transition(WorkflowState.SESSION_ENSURED)
            return None

        data = encode_instruction(
            "initialize_voting",
            {
                "company_id": self.params.company_id,
                "voting_id": self.params.voting_id,
                "question": self.params.question,
                "options": self.params.options,
            },
        )
        outcome = await self._submit(
            "initialize_voting",
            addresses.session,
            data,
            [
                AccountRef.writable(addresses.session),
                AccountRef.writable(self.voter, is_signer=True),
                AccountRef.readonly(SYSTEM_PROGRAM_ID),
            ],
        )
        self._transition(WorkflowState.SESSION_ENSURED)
        return outcome

    async def ensure_vote(self) -> Optional[TransactionOutcome]:
        """Emite el voto si el registro del votante no existe.

        English:
            Cast the vote when the caller's vote record is absent. An existing
            record means "already voted", which is not an error.
        """
        addresses = self.derive_addresses()
        record_data = await self._rpc.get_account_info(addresses.vote_record)
        if record_data is not None:
            log = self._logger("vote", addresses.vote_record)
            self.already_voted = True
            try:
                self.prior_selection = decode_vote_record(record_data).selected_option
            except DecodeError as exc:
                # Existence alone is what matters; the payload is informational.
                log.warning("vote_record_undecodable", error=str(exc))
            log.info("already_voted", prior_selection=self.prior_selection)
            self._transition(WorkflowState.VOTE_ENSURED)
            return None

        data = encode_instruction(
            "vote",
            {
                "company_id": self.params.company_id,
                "voting_id": self.params.voting_id,
                "selected_option": self.params.selected_option,
            },
        )
        outcome = await self._submit(
            "vote",
            addresses.vote_record,
            data,
            [
                AccountRef.writable(addresses.session),
                AccountRef.writable(addresses.vote_record),
                AccountRef.writable(self.voter, is_signer=True),
                AccountRef.readonly(SYSTEM_PROGRAM_ID),
            ],
        )
        self._transition(WorkflowState.VOTE_ENSURED)
        return outcome

    async def report(self) -> TallyReport:
        """Relee y decodifica la sesión para producir el reporte.

        English: Re-fetch and decode the session, then build the tally report.
        """
        addresses = self.derive_addresses()
        data = await self._rpc.get_account_info(addresses.session)
        if data is None:
            raise NetworkError(
                "Voting session not visible at the requested commitment",
                operation="report",
                address=str(addresses.session),
            )
        try:
            session = decode_voting_session(data)
        except DecodeError as exc:
            raise DecodeError(exc.message, operation="decode_voting_session", address=str(addresses.session)) from exc

        report = TallyReport.from_session(
            addresses.session,
            session,
            already_voted=self.already_voted,
            prior_selection=self.prior_selection,
            signatures=list(self.signatures),
        )
        self._logger("report", addresses.session).info("tally_report", tallies=report.tallies, total=report.total)
        self._transition(WorkflowState.REPORTED)
        return report

    async def run(self) -> TallyReport:
        await self.check_balance()
        await self.ensure_session()
        await self.ensure_vote()
        return await self.report()


async def run_workflow(settings: VotingSettings, payer: Keypair, session: Optional[SessionParams] = None) -> TallyReport:
    """Arranque completo con un cliente RPC propio.

    English: Full run with its own RPC client, closed on exit.
    """
    async with SolanaRpcClient(
        settings.rpc_url,
        commitment=settings.COMMITMENT,
        timeout=settings.RPC_TIMEOUT_SECONDS,
    ) as rpc:
        workflow = VotingWorkflow(settings, rpc, payer, session=session)
        return await workflow.run()
