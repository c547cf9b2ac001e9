# Config Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Parámetros de la sesión de votación
#   2) Ajustes de entorno (.env / variables SOLVOTE_*)
#   3) Archivo YAML de sesión
#
# EN: Quick index
#   1) Voting session parameters
#   2) Environment settings (.env / SOLVOTE_* variables)
#   3) YAML session file

"""Configuración segura y validada de Solvote.

Secure and validated Solvote configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import AnyUrl, BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from solders.pubkey import Pubkey

from .core.codec import MAX_OPTION_BYTES, MAX_OPTIONS, MAX_QUESTION_BYTES, MIN_OPTIONS
from .core.errors import ConfigurationError
from .rpc import DEFAULT_RPC_URL

DEFAULT_PROGRAM_ID = "31RBt6nsdi6tEbKVffYi8CbT8HeLYQgdGyZo8J8uyP6k"
U64_MAX = 2**64 - 1

_ENV_PATH = Path(".env")
_ENV_LOCAL_PATH = Path(".env.local")

LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


def option_lengths(options: List[str]) -> List[int]:
    """Longitudes en bytes UTF-8 (no en caracteres) de cada opción."""
    return [len(option.encode("utf-8")) for option in options]


class SessionParams(BaseModel):
    """Parámetros de la votación y opción elegida.

    English: Voting session parameters and the caller's selected option.
    """

    company_id: int = Field(default=1, ge=0, le=U64_MAX)
    voting_id: int = Field(default=1, ge=0, le=U64_MAX)
    question: str = "Do you like Solana?"
    options: List[str] = Field(default_factory=lambda: ["Yes", "No"])
    selected_option: int = Field(default=0, ge=0, le=255)

    @field_validator("question")
    @classmethod
    def _question_fits(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question must not be empty")
        if len(value.encode("utf-8")) > MAX_QUESTION_BYTES:
            raise ValueError(f"question exceeds {MAX_QUESTION_BYTES} UTF-8 bytes")
        return value

    @field_validator("options")
    @classmethod
    def _options_fit(cls, value: List[str]) -> List[str]:
        if not MIN_OPTIONS <= len(value) <= MAX_OPTIONS:
            raise ValueError(f"options must contain {MIN_OPTIONS} to {MAX_OPTIONS} entries")
        if any(length > MAX_OPTION_BYTES for length in option_lengths(value)):
            raise ValueError(f"each option must fit in {MAX_OPTION_BYTES} UTF-8 bytes")
        return value

    @model_validator(mode="after")
    def _selected_option_exists(self) -> "SessionParams":
        if self.selected_option >= len(self.options):
            raise ValueError(
                f"selected_option {self.selected_option} is out of range for {len(self.options)} options"
            )
        return self


class VotingSettings(BaseSettings):
    """Variables de entorno y archivo .env para Solvote.

    English: Environment variables and .env file for Solvote.
    """

    model_config = SettingsConfigDict(
        env_prefix="SOLVOTE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    RPC_URL: AnyUrl = DEFAULT_RPC_URL
    WALLET_PATH: Path = Path.home() / ".config" / "solana" / "id.json"
    PROGRAM_ID: str = DEFAULT_PROGRAM_ID
    COMMITMENT: str = "confirmed"
    POLL_INTERVAL_SECONDS: float = Field(default=1.0, ge=0)
    POLL_MAX_ATTEMPTS: int = Field(default=15, ge=1)
    RPC_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[Path] = None
    LOG_REDACT_IDENTIFIERS: bool = False
    SESSION: SessionParams = Field(default_factory=SessionParams)

    @field_validator("PROGRAM_ID")
    @classmethod
    def _program_id_is_pubkey(cls, value: str) -> str:
        try:
            Pubkey.from_string(value)
        except ValueError as exc:
            raise ValueError(f"PROGRAM_ID is not a valid base58 address: {value}") from exc
        return value

    @field_validator("COMMITMENT")
    @classmethod
    def _known_commitment(cls, value: str) -> str:
        if value not in {"processed", "confirmed", "finalized"}:
            raise ValueError("COMMITMENT must be processed, confirmed or finalized")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(sorted(LOG_LEVELS))}, got {value!r}")
        return level

    @property
    def program_id(self) -> Pubkey:
        return Pubkey.from_string(self.PROGRAM_ID)

    @property
    def rpc_url(self) -> str:
        return str(self.RPC_URL)


def load_config(**overrides: Any) -> VotingSettings:
    """/** Carga y valida configuración, fallando con detalle. / Load and validate configuration, failing with details. **/"""
    # Seguridad: variables sensibles desde .env y .env.local. / Security: sensitive vars from .env/.env.local.
    load_dotenv(_ENV_PATH, override=False)
    load_dotenv(_ENV_LOCAL_PATH, override=False)
    try:
        return VotingSettings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def load_session_file(path: Path) -> SessionParams:
    """Carga parámetros de sesión desde YAML.

    English: Load session parameters from a YAML mapping.
    """
    if not path.exists():
        raise ConfigurationError(f"Falta {path.as_posix()} (Missing {path.as_posix()}).")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"{path.name} has YAML syntax errors") from exc
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path.name} must be a YAML mapping")
    try:
        return SessionParams.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"{path.name} is not a valid session: {exc}") from exc
