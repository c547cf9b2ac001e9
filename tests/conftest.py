"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `tests/conftest.py`.
Ledger en memoria que ejecuta las reglas del programa de votación sobre
transacciones firmadas reales.

Componentes detectados:
  - FakeLedger
  - program_id
  - payer
  - settings
  - ledger

======================== ENGLISH ========================
File: `tests/conftest.py`.
In-memory ledger that executes the voting program's rules against real
signed transactions.

Detected components:
  - FakeLedger
  - program_id
  - payer
  - settings
  - ledger
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import Transaction

from solvote.config import DEFAULT_PROGRAM_ID, VotingSettings
from solvote.core.codec import (
    decode_instruction,
    decode_voting_session,
    encode_vote_record,
    encode_voting_session,
)
from solvote.core.errors import SubmissionRejected
from solvote.core.models import VoteRecord, VotingSession
from solvote.core.pda import derive_vote_address, derive_voting_address

# Matches VotingAccount::SPACE in the program; the tail stays zeroed.
VOTING_ACCOUNT_SPACE = 8 + 8 + 8 + 4 + 256 + 4 + 3 * (4 + 64) + 4 + 3 * 8 + 8


class FakeLedger:
    """RPC falso con la semántica del programa remoto.

    English:
        Duck-types ``SolanaRpcClient``. ``confirm_after`` is the number of
        status queries that return "processed" before "confirmed"; ``None``
        means transactions never confirm.
    """

    def __init__(self, program_id: Pubkey, *, confirm_after: Optional[int] = 0) -> None:
        self.program_id = program_id
        self.confirm_after = confirm_after
        self.accounts: Dict[Pubkey, bytes] = {}
        self.sent: List[Transaction] = []
        self.status_queries: Dict[str, int] = {}
        self.blockhash = Hash.new_unique()

    async def __aenter__(self) -> "FakeLedger":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None

    async def get_balance(self, pubkey: Pubkey) -> int:
        return 2_000_000_000

    async def get_account_info(self, pubkey: Pubkey) -> Optional[bytes]:
        # Snapshot before yielding so concurrent callers can observe stale state.
        data = self.accounts.get(pubkey)
        await asyncio.sleep(0)
        return data

    async def account_exists(self, pubkey: Pubkey) -> bool:
        return await self.get_account_info(pubkey) is not None

    async def get_latest_blockhash(self) -> Hash:
        return self.blockhash

    async def send_transaction(self, raw_transaction: bytes) -> str:
        transaction = Transaction.from_bytes(raw_transaction)
        message = transaction.message
        keys = message.account_keys
        for instruction in message.instructions:
            if keys[instruction.program_id_index] != self.program_id:
                raise SubmissionRejected("unknown program")
            accounts = [keys[index] for index in instruction.accounts]
            name, args = decode_instruction(bytes(instruction.data))
            getattr(self, f"_execute_{name}")(args, accounts)
        self.sent.append(transaction)
        signature = str(transaction.signatures[0])
        self.status_queries[signature] = 0
        return signature

    async def get_signature_status(self, signature: str) -> Optional[Dict[str, Any]]:
        if signature not in self.status_queries:
            return None
        self.status_queries[signature] += 1
        if self.confirm_after is None or self.status_queries[signature] <= self.confirm_after:
            return {"confirmationStatus": "processed", "err": None}
        return {"confirmationStatus": "confirmed", "err": None}

    def _execute_initialize_voting(self, args: Dict[str, Any], accounts: List[Pubkey]) -> None:
        session_key, authority, _system = accounts
        expected, _ = derive_voting_address(self.program_id, args["company_id"], args["voting_id"])
        if session_key != expected:
            raise SubmissionRejected("ConstraintSeeds")
        if session_key in self.accounts:
            raise SubmissionRejected(f"Allocate: account {session_key} already in use")
        if not 2 <= len(args["options"]) <= 3:
            raise SubmissionRejected("InvalidOptionsCount")
        session = VotingSession(
            company_id=args["company_id"],
            voting_id=args["voting_id"],
            question=args["question"],
            options=tuple(args["options"]),
            tallies=(0,) * len(args["options"]),
            total=0,
        )
        self.accounts[session_key] = encode_voting_session(session).ljust(VOTING_ACCOUNT_SPACE, b"\x00")

    def _execute_vote(self, args: Dict[str, Any], accounts: List[Pubkey]) -> None:
        session_key, record_key, voter, _system = accounts
        if session_key not in self.accounts:
            raise SubmissionRejected("AccountNotInitialized")
        expected, _ = derive_vote_address(self.program_id, session_key, voter)
        if record_key != expected:
            raise SubmissionRejected("ConstraintSeeds")
        if record_key in self.accounts:
            raise SubmissionRejected(f"Allocate: account {record_key} already in use")
        session = decode_voting_session(self.accounts[session_key])
        option = args["selected_option"]
        if option >= len(session.options):
            raise SubmissionRejected("InvalidOption")
        tallies = list(session.tallies)
        tallies[option] += 1
        updated = VotingSession(
            company_id=session.company_id,
            voting_id=session.voting_id,
            question=session.question,
            options=session.options,
            tallies=tuple(tallies),
            total=session.total + 1,
        )
        self.accounts[session_key] = encode_voting_session(updated).ljust(VOTING_ACCOUNT_SPACE, b"\x00")
        self.accounts[record_key] = encode_vote_record(VoteRecord(voter=voter, selected_option=option))


@pytest.fixture()
def program_id() -> Pubkey:
    return Pubkey.from_string(DEFAULT_PROGRAM_ID)


@pytest.fixture()
def payer() -> Keypair:
    return Keypair()


@pytest.fixture()
def settings() -> VotingSettings:
    return VotingSettings(POLL_INTERVAL_SECONDS=0, POLL_MAX_ATTEMPTS=3)


@pytest.fixture()
def ledger(program_id: Pubkey) -> FakeLedger:
    return FakeLedger(program_id)
