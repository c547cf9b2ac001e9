#   Cli   Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Comandos: run, derive, show, status
#   2) Mapeo de errores a códigos de salida
#
# EN: Quick index
#   1) Commands: run, derive, show, status
#   2) Error to exit-code mapping

"""Interfaz de línea de comandos de Solvote.

English: Solvote command line interface.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer

from .config import SessionParams, VotingSettings, load_config, load_session_file
from .core.codec import decode_voting_session
from .core.errors import (
    ConfigurationError,
    ConfirmationTimeout,
    DecodeError,
    DerivationExhausted,
    NetworkError,
    SubmissionRejected,
    VotingClientError,
)
from .core.pda import derive_vote_address, derive_voting_address
from .logging import setup_logging
from .rpc import SolanaRpcClient
from .wallet import load_keypair
from .workflow import run_workflow

app = typer.Typer(help="Solvote: single-question voting on Solana")

EXIT_CODES = {
    ConfigurationError: 2,
    NetworkError: 3,
    SubmissionRejected: 4,
    ConfirmationTimeout: 5,
    DecodeError: 6,
    DerivationExhausted: 7,
}

SessionOption = typer.Option(None, "--session", "-s", help="YAML file with session parameters.")


def _exit_code(exc: VotingClientError) -> int:
    for error_type, code in EXIT_CODES.items():
        if isinstance(exc, error_type):
            return code
    return 1


def _fail(exc: VotingClientError) -> None:
    if isinstance(exc, ConfirmationTimeout):
        typer.echo(f"Uncertain outcome: {exc}. Re-check with `solvote status {exc.signature}`.", err=True)
    else:
        typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=_exit_code(exc))


def _prepare(session_file: Optional[Path]) -> tuple[VotingSettings, SessionParams]:
    settings = load_config()
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    session = load_session_file(session_file) if session_file else settings.SESSION
    return settings, session


@app.command()
def run(session_file: Optional[Path] = SessionOption) -> None:
    """Asegura la sesión, emite el voto y muestra los conteos.

    English: Ensure the session exists, cast the vote, print the tallies.
    """
    try:
        settings, session = _prepare(session_file)
        payer = load_keypair(settings.WALLET_PATH)
        typer.echo(f"Public Key: {payer.pubkey()}")
        report = asyncio.run(run_workflow(settings, payer, session))
    except VotingClientError as exc:
        _fail(exc)
        return
    for signature in report.signatures:
        typer.echo(f"TX: {signature}")
    for line in report.lines():
        typer.echo(line)


@app.command()
def derive(session_file: Optional[Path] = SessionOption) -> None:
    """English: Print the session and vote-record addresses for the configured wallet."""
    try:
        settings, session = _prepare(session_file)
        payer = load_keypair(settings.WALLET_PATH)
        voting, voting_bump = derive_voting_address(settings.program_id, session.company_id, session.voting_id)
        vote, vote_bump = derive_vote_address(settings.program_id, voting, payer.pubkey())
    except VotingClientError as exc:
        _fail(exc)
        return
    typer.echo(f"Voting PDA: {voting} (bump {voting_bump})")
    typer.echo(f"Vote PDA: {vote} (bump {vote_bump})")


async def _fetch_session(settings: VotingSettings, session: SessionParams):
    voting, _ = derive_voting_address(settings.program_id, session.company_id, session.voting_id)
    async with SolanaRpcClient(
        settings.rpc_url, commitment=settings.COMMITMENT, timeout=settings.RPC_TIMEOUT_SECONDS
    ) as rpc:
        data = await rpc.get_account_info(voting)
    if data is None:
        return voting, None
    try:
        return voting, decode_voting_session(data)
    except DecodeError as exc:
        raise DecodeError(exc.message, operation="decode_voting_session", address=str(voting)) from exc


@app.command()
def show(session_file: Optional[Path] = SessionOption) -> None:
    """English: Print the current on-chain state of the session without voting."""
    try:
        settings, session = _prepare(session_file)
        address, state = asyncio.run(_fetch_session(settings, session))
    except VotingClientError as exc:
        _fail(exc)
        return
    if state is None:
        typer.echo(f"Voting {address} does not exist yet")
        raise typer.Exit(code=1)
    typer.echo(f"Voting PDA: {address}")
    typer.echo(f"Question: {state.question}")
    for option, count in zip(state.options, state.tallies):
        typer.echo(f"{option} = {count}")
    typer.echo(f"Total: {state.total}")


async def _query_status(settings: VotingSettings, signature: str):
    async with SolanaRpcClient(
        settings.rpc_url, commitment=settings.COMMITMENT, timeout=settings.RPC_TIMEOUT_SECONDS
    ) as rpc:
        return await rpc.get_signature_status(signature)


@app.command()
def status(signature: str) -> None:
    """Consulta una vez el estado de una transacción en vuelo.

    English: Query the status of an in-flight transaction once.
    """
    try:
        settings, _ = _prepare(None)
        result = asyncio.run(_query_status(settings, signature))
    except VotingClientError as exc:
        _fail(exc)
        return
    if result is None:
        typer.echo(f"{signature}: not found")
        return
    typer.echo(f"{signature}: {result.get('confirmationStatus') or 'unknown'}")
    if result.get("err") is not None:
        typer.echo(f"error: {result['err']}")


if __name__ == "__main__":
    app()
