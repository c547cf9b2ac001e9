"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/solvote/core/pda.py`.
Este módulo forma parte de Solvote y está documentado para facilitar
la navegación, mantenimiento y auditoría técnica.

Componentes detectados:
  - create_program_address
  - find_program_address
  - derive_voting_address
  - derive_vote_address

Notas:
- Mantener esta cabecera sincronizada con cambios estructurales del archivo.
- El orden de las semillas es parte del contrato con el programa remoto.

======================== ENGLISH ========================
File: `src/solvote/core/pda.py`.
This module is part of Solvote and is documented to improve
navigation, maintenance, and technical auditability.

Detected components:
  - create_program_address
  - find_program_address
  - derive_voting_address
  - derive_vote_address

Notes:
- Keep this header in sync with structural changes in the file.
- Seed order is part of the contract with the remote program.
"""

# Pda Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Derivación determinista de direcciones de programa
#   2) Semillas de sesión y de voto
#
# EN: Quick index
#   1) Deterministic program address derivation
#   2) Session and vote seeds

from __future__ import annotations

import hashlib
import struct
from typing import Optional, Sequence, Tuple

from solders.pubkey import Pubkey

from .errors import DerivationExhausted

PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEEDS = 16
MAX_SEED_LEN = 32
MAX_BUMP = 255

VOTING_SEED = b"voting"
VOTE_SEED = b"vote"

U64_MAX = 2**64 - 1


def _is_on_curve(candidate: Pubkey) -> bool:
    return candidate.is_on_curve()


def _u64_le(value: int) -> bytes:
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"u64 seed out of range: {value}")
    return struct.pack("<Q", value)


def _validate_seeds(seeds: Sequence[bytes]) -> None:
    # The bump occupies one of the runtime's seed slots.
    if len(seeds) >= MAX_SEEDS:
        raise ValueError(f"Too many seeds: {len(seeds)} (max {MAX_SEEDS - 1} plus bump)")
    for index, seed in enumerate(seeds):
        if len(seed) > MAX_SEED_LEN:
            raise ValueError(f"Seed {index} is {len(seed)} bytes (max {MAX_SEED_LEN})")


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Optional[Pubkey]:
    """Calcula una dirección candidata para semillas ya con bump.

    English:
        Hash ``seeds ++ program_id ++ "ProgramDerivedAddress"`` with SHA-256.
        Returns ``None`` when the digest is a valid ed25519 point, since such
        an address could be controlled by a private key.
    """
    hasher = hashlib.sha256()
    for seed in seeds:
        hasher.update(bytes(seed))
    hasher.update(bytes(program_id))
    hasher.update(PDA_MARKER)
    candidate = Pubkey.from_bytes(hasher.digest())
    if _is_on_curve(candidate):
        return None
    return candidate


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Busca el primer bump (255 → 0) que produce una dirección fuera de la curva.

    The search is a bounded loop over the full one-byte range. Identical
    inputs always give identical results.

    Args:
        seeds (Sequence[bytes]): Ordered seeds, without the bump.
        program_id (Pubkey): Owning program.

    Returns:
        Tuple[Pubkey, int]: Derived address and its bump.

    Raises:
        DerivationExhausted: When all 256 candidates are on the curve.
    """
    _validate_seeds(seeds)
    for bump in range(MAX_BUMP, -1, -1):
        address = create_program_address([*seeds, bytes([bump])], program_id)
        if address is not None:
            return address, bump
    raise DerivationExhausted(
        f"No off-curve address for {len(seeds)} seeds",
        operation="find_program_address",
        address=str(program_id),
    )


def derive_voting_address(program_id: Pubkey, company_id: int, voting_id: int) -> Tuple[Pubkey, int]:
    """Seeds: ``["voting", u64le(company_id), u64le(voting_id)]``."""
    return find_program_address([VOTING_SEED, _u64_le(company_id), _u64_le(voting_id)], program_id)


def derive_vote_address(program_id: Pubkey, voting_address: Pubkey, voter: Pubkey) -> Tuple[Pubkey, int]:
    """Seeds: ``["vote", voting_address, voter]``."""
    return find_program_address([VOTE_SEED, bytes(voting_address), bytes(voter)], program_id)
