"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/solvote/core/codec.py`.
Este módulo forma parte de Solvote y está documentado para facilitar
la navegación, mantenimiento y auditoría técnica.

Componentes detectados:
  - FieldKind
  - Field
  - BinaryWriter
  - BinaryReader
  - instruction_discriminator
  - account_discriminator
  - encode_instruction
  - decode_instruction
  - encode_voting_session
  - decode_voting_session
  - decode_vote_record
  - encode_vote_record

Notas:
- Mantener esta cabecera sincronizada con cambios estructurales del archivo.
- Un único esquema ordenado alimenta codificador y decodificador.

======================== ENGLISH ========================
File: `src/solvote/core/codec.py`.
This module is part of Solvote and is documented to improve
navigation, maintenance, and technical auditability.

Detected components:
  - FieldKind
  - Field
  - BinaryWriter
  - BinaryReader
  - instruction_discriminator
  - account_discriminator
  - encode_instruction
  - decode_instruction
  - encode_voting_session
  - decode_voting_session
  - decode_vote_record
  - encode_vote_record

Notes:
- Keep this header in sync with structural changes in the file.
- One ordered schema drives both the encoder and the decoder.
"""

# Codec Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Esquemas de campos (instrucciones y cuentas)
#   2) Escritor / lector binario little-endian
#   3) Funciones públicas de codificación
#
# EN: Quick index
#   1) Field schemas (instructions and accounts)
#   2) Little-endian binary writer / reader
#   3) Public encode/decode functions

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Sequence, Tuple, Union

from solders.pubkey import Pubkey

from .errors import DecodeError
from .models import VoteRecord, VotingSession

DISCRIMINATOR_LEN = 8
PUBKEY_LEN = 32

# Space the program reserves for a VotingAccount.
MAX_QUESTION_BYTES = 256
MAX_OPTION_BYTES = 64
MIN_OPTIONS = 2
MAX_OPTIONS = 3


class FieldKind(Enum):
    U8 = "u8"
    U32 = "u32"
    U64 = "u64"
    STRING = "string"
    STRING_LIST = "vec<string>"
    U64_LIST = "vec<u64>"
    PUBKEY = "pubkey"


@dataclass(frozen=True)
class Field:
    name: str
    kind: FieldKind


_INT_FORMATS = {
    FieldKind.U8: ("<B", 1, 2**8 - 1),
    FieldKind.U32: ("<I", 4, 2**32 - 1),
    FieldKind.U64: ("<Q", 8, 2**64 - 1),
}

COMPANY_ID = Field("company_id", FieldKind.U64)
VOTING_ID = Field("voting_id", FieldKind.U64)
QUESTION = Field("question", FieldKind.STRING)
OPTIONS = Field("options", FieldKind.STRING_LIST)
SELECTED_OPTION = Field("selected_option", FieldKind.U8)

INSTRUCTION_SCHEMAS: Dict[str, Tuple[Field, ...]] = {
    "initialize_voting": (COMPANY_ID, VOTING_ID, QUESTION, OPTIONS),
    "vote": (COMPANY_ID, VOTING_ID, SELECTED_OPTION),
}

VOTING_ACCOUNT = "VotingAccount"
VOTING_ACCOUNT_LAYOUT: Tuple[Field, ...] = (
    COMPANY_ID,
    VOTING_ID,
    QUESTION,
    OPTIONS,
    Field("votes", FieldKind.U64_LIST),
    Field("total_votes", FieldKind.U64),
)

VOTE_ACCOUNT = "VoteAccount"
VOTE_ACCOUNT_LAYOUT: Tuple[Field, ...] = (
    Field("voter", FieldKind.PUBKEY),
    SELECTED_OPTION,
)


def instruction_discriminator(name: str) -> bytes:
    """Primeros 8 bytes de ``sha256("global:" + name)``."""
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_LEN]


def account_discriminator(name: str) -> bytes:
    """Primeros 8 bytes de ``sha256("account:" + name)``."""
    return hashlib.sha256(f"account:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_LEN]


class BinaryWriter:
    """Escritor little-endian sin relleno ni alineación.

    English: Little-endian writer with no padding, alignment, or tags.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write_raw(self, data: bytes) -> None:
        self._buffer.extend(data)

    def write_int(self, kind: FieldKind, value: int, name: str = "") -> None:
        fmt, _, maximum = _INT_FORMATS[kind]
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name or kind.value} must be an integer, got {type(value).__name__}")
        if not 0 <= value <= maximum:
            raise ValueError(f"{name or kind.value}={value} out of range for {kind.value}")
        self._buffer.extend(struct.pack(fmt, value))

    def write_string(self, value: str, name: str = "") -> None:
        if not isinstance(value, str):
            raise ValueError(f"{name or 'string'} must be a string, got {type(value).__name__}")
        # Length prefix counts UTF-8 bytes, not characters.
        encoded = value.encode("utf-8")
        self.write_int(FieldKind.U32, len(encoded), name)
        self._buffer.extend(encoded)

    def write_field(self, field: Field, value: Any) -> None:
        kind = field.kind
        if kind in _INT_FORMATS:
            self.write_int(kind, value, field.name)
        elif kind is FieldKind.STRING:
            self.write_string(value, field.name)
        elif kind is FieldKind.STRING_LIST:
            if isinstance(value, (str, bytes)):
                raise ValueError(f"{field.name} must be a list of strings, got {type(value).__name__}")
            items = list(value)
            self.write_int(FieldKind.U32, len(items), field.name)
            for item in items:
                self.write_string(item, field.name)
        elif kind is FieldKind.U64_LIST:
            items = list(value)
            self.write_int(FieldKind.U32, len(items), field.name)
            for item in items:
                self.write_int(FieldKind.U64, item, field.name)
        elif kind is FieldKind.PUBKEY:
            raw = bytes(value)
            if len(raw) != PUBKEY_LEN:
                raise ValueError(f"{field.name} must be {PUBKEY_LEN} bytes, got {len(raw)}")
            self._buffer.extend(raw)
        else:
            raise ValueError(f"Unsupported field kind: {kind}")

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


class BinaryReader:
    """Lector posicional; nunca lee fuera del búfer.

    English:
        Positional reader. Every read is bounds-checked and raises
        DecodeError instead of reading past the end.
    """

    def __init__(self, data: bytes, operation: str = "decode") -> None:
        self._data = bytes(data)
        self._offset = 0
        self._operation = operation

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    def _fail(self, message: str) -> DecodeError:
        return DecodeError(f"{message} at offset {self._offset}", operation=self._operation)

    def read_raw(self, size: int, name: str = "") -> bytes:
        if size > self.remaining:
            raise self._fail(f"{name or 'field'} needs {size} bytes, {self.remaining} left")
        chunk = self._data[self._offset : self._offset + size]
        self._offset += size
        return chunk

    def read_int(self, kind: FieldKind, name: str = "") -> int:
        fmt, size, _ = _INT_FORMATS[kind]
        return struct.unpack(fmt, self.read_raw(size, name or kind.value))[0]

    def read_string(self, name: str = "") -> str:
        length = self.read_int(FieldKind.U32, name)
        raw = self.read_raw(length, name)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise self._fail(f"{name or 'string'} is not valid UTF-8") from exc

    def _read_count(self, min_item_size: int, name: str) -> int:
        count = self.read_int(FieldKind.U32, name)
        if count * min_item_size > self.remaining:
            raise self._fail(f"{name} declares {count} items, only {self.remaining} bytes left")
        return count

    def read_field(self, field: Field) -> Any:
        kind = field.kind
        if kind in _INT_FORMATS:
            return self.read_int(kind, field.name)
        if kind is FieldKind.STRING:
            return self.read_string(field.name)
        if kind is FieldKind.STRING_LIST:
            count = self._read_count(4, field.name)
            return [self.read_string(field.name) for _ in range(count)]
        if kind is FieldKind.U64_LIST:
            count = self._read_count(8, field.name)
            return [self.read_int(FieldKind.U64, field.name) for _ in range(count)]
        if kind is FieldKind.PUBKEY:
            return Pubkey.from_bytes(self.read_raw(PUBKEY_LEN, field.name))
        raise ValueError(f"Unsupported field kind: {kind}")


def encode_fields(schema: Sequence[Field], values: Mapping[str, Any], writer: BinaryWriter) -> None:
    for field in schema:
        if field.name not in values:
            raise ValueError(f"Missing value for field '{field.name}'")
        writer.write_field(field, values[field.name])


def decode_fields(schema: Sequence[Field], reader: BinaryReader) -> Dict[str, Any]:
    return {field.name: reader.read_field(field) for field in schema}


def _schema_for(name: str) -> Tuple[Field, ...]:
    try:
        return INSTRUCTION_SCHEMAS[name]
    except KeyError as exc:
        raise ValueError(f"Unknown instruction: {name}") from exc


def encode_instruction(name: str, params: Union[Mapping[str, Any], Sequence[Any]]) -> bytes:
    """Serializa ``(operación, parámetros)`` en el payload de la instrucción.

    English:
        Serialize an instruction as ``discriminator ++ fields``. ``params`` is
        either a mapping keyed by field name or a positional sequence in
        schema order.

    Args:
        name (str): ``initialize_voting`` or ``vote``.
        params (Mapping | Sequence): Parameter values.

    Returns:
        bytes: Opaque instruction data.
    """
    schema = _schema_for(name)
    if not isinstance(params, Mapping):
        values = list(params)
        if len(values) != len(schema):
            raise ValueError(f"{name} expects {len(schema)} parameters, got {len(values)}")
        params = {field.name: value for field, value in zip(schema, values)}

    writer = BinaryWriter()
    writer.write_raw(instruction_discriminator(name))
    encode_fields(schema, params, writer)
    return writer.getvalue()


def decode_instruction(data: bytes) -> Tuple[str, Dict[str, Any]]:
    """Inverso de ``encode_instruction``; resuelve la operación por discriminador.

    English: Inverse of ``encode_instruction``, resolving the operation by discriminator.
    """
    reader = BinaryReader(data, operation="decode_instruction")
    discriminator = reader.read_raw(DISCRIMINATOR_LEN, "discriminator")
    for name, schema in INSTRUCTION_SCHEMAS.items():
        if instruction_discriminator(name) == discriminator:
            return name, decode_fields(schema, reader)
    raise DecodeError(f"Unknown instruction discriminator {discriminator.hex()}", operation="decode_instruction")


def encode_voting_session(session: VotingSession) -> bytes:
    """Serializa una sesión con el mismo layout que guarda el programa.

    English: Serialize a session using the program's stored account layout.
    """
    writer = BinaryWriter()
    writer.write_raw(account_discriminator(VOTING_ACCOUNT))
    encode_fields(
        VOTING_ACCOUNT_LAYOUT,
        {
            "company_id": session.company_id,
            "voting_id": session.voting_id,
            "question": session.question,
            "options": session.options,
            "votes": session.tallies,
            "total_votes": session.total,
        },
        writer,
    )
    return writer.getvalue()


def decode_voting_session(buffer: bytes) -> VotingSession:
    """Decodifica una cuenta VotingAccount de forma estrictamente posicional.

    The leading discriminator is skipped, not verified. Trailing bytes
    after ``total_votes`` are ignored: the program allocates a fixed
    account size and the unused tail is zero padding.

    Raises:
        DecodeError: On truncation, oversized length prefixes, invalid
            UTF-8 or broken tally invariants.
    """
    reader = BinaryReader(buffer, operation="decode_voting_session")
    reader.read_raw(DISCRIMINATOR_LEN, "discriminator")
    values = decode_fields(VOTING_ACCOUNT_LAYOUT, reader)
    session = VotingSession(
        company_id=values["company_id"],
        voting_id=values["voting_id"],
        question=values["question"],
        options=tuple(values["options"]),
        tallies=tuple(values["votes"]),
        total=values["total_votes"],
    )
    session.check_invariants()
    return session


def encode_vote_record(record: VoteRecord) -> bytes:
    """Escribe un VoteAccount como lo guarda el programa.

    English: Only the program creates vote records on-chain; this encoder
    exists for test ledgers and fixtures that emulate those writes.
    """
    writer = BinaryWriter()
    writer.write_raw(account_discriminator(VOTE_ACCOUNT))
    encode_fields(
        VOTE_ACCOUNT_LAYOUT,
        {"voter": record.voter, "selected_option": record.selected_option},
        writer,
    )
    return writer.getvalue()


def decode_vote_record(buffer: bytes) -> VoteRecord:
    reader = BinaryReader(buffer, operation="decode_vote_record")
    reader.read_raw(DISCRIMINATOR_LEN, "discriminator")
    values = decode_fields(VOTE_ACCOUNT_LAYOUT, reader)
    return VoteRecord(voter=values["voter"], selected_option=values["selected_option"])
