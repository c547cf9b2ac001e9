"""Carga del keypair de la billetera (formato `id.json` del CLI de Solana).

English:
    Wallet keypair loading (Solana CLI ``id.json`` format: a JSON array of
    64 integers, secret key followed by public key).
"""

from __future__ import annotations

import json
from pathlib import Path

import structlog
from solders.keypair import Keypair

from .core.errors import ConfigurationError

logger = structlog.get_logger(__name__)

KEYPAIR_LEN = 64


def keypair_from_bytes(raw: bytes) -> Keypair:
    if len(raw) != KEYPAIR_LEN:
        raise ConfigurationError(f"Keypair must be {KEYPAIR_LEN} bytes, got {len(raw)}")
    try:
        return Keypair.from_bytes(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid keypair bytes: {exc}") from exc


def load_keypair(path: Path) -> Keypair:
    """Lee el archivo de llaves; cualquier fallo es ConfigurationError.

    English: Read the key file; every failure is a ConfigurationError, raised before any network call.
    """
    if not path.exists():
        raise ConfigurationError(f"Wallet file not found: {path}")
    try:
        values = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Wallet file is not readable JSON: {path}") from exc

    if not isinstance(values, list) or len(values) != KEYPAIR_LEN:
        raise ConfigurationError(f"{path.name} must contain exactly {KEYPAIR_LEN} numbers")
    if not all(isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 255 for value in values):
        raise ConfigurationError(f"{path.name} must contain integers in 0..255")

    keypair = keypair_from_bytes(bytes(values))
    logger.info("wallet_loaded", pubkey=str(keypair.pubkey()))
    return keypair
