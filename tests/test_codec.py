"""
======================== ENGLISH ========================
File: `tests/test_codec.py`.

Detected components:
  - instruction payload layout tests
  - account decoder tests (round-trip, invariants, truncation safety)
  - vote record decoder tests
"""

import hashlib
import struct

import pytest
from solders.keypair import Keypair

from solvote.core.codec import (
    BinaryWriter,
    FieldKind,
    account_discriminator,
    decode_instruction,
    decode_vote_record,
    decode_voting_session,
    encode_instruction,
    encode_vote_record,
    encode_voting_session,
    instruction_discriminator,
)
from solvote.core.errors import DecodeError
from solvote.core.models import VoteRecord, VotingSession

QUESTION = "Do you like Solana?"


def _session(**overrides):
    values = dict(
        company_id=1,
        voting_id=1,
        question=QUESTION,
        options=("Yes", "No"),
        tallies=(1, 0),
        total=1,
    )
    values.update(overrides)
    return VotingSession(**values)


def test_instruction_discriminator_is_sha256_prefix():
    expected = hashlib.sha256(b"global:initialize_voting").digest()[:8]

    assert instruction_discriminator("initialize_voting") == expected
    assert len(instruction_discriminator("vote")) == 8


def test_initialize_voting_layout_is_byte_exact():
    payload = encode_instruction(
        "initialize_voting",
        {"company_id": 1, "voting_id": 1, "question": QUESTION, "options": ["Yes", "No"]},
    )

    expected = (
        instruction_discriminator("initialize_voting")
        + struct.pack("<QQ", 1, 1)
        + struct.pack("<I", len(QUESTION))
        + QUESTION.encode("utf-8")
        + struct.pack("<I", 2)
        + struct.pack("<I", 3)
        + b"Yes"
        + struct.pack("<I", 2)
        + b"No"
    )
    assert payload == expected


def test_vote_layout_is_byte_exact():
    payload = encode_instruction("vote", [1, 1, 0])

    assert payload == instruction_discriminator("vote") + struct.pack("<QQB", 1, 1, 0)
    assert len(payload) == 8 + 8 + 8 + 1


def test_string_length_counts_utf8_bytes():
    question = "¿Te gusta Solana?"
    payload = encode_instruction("initialize_voting", [1, 1, question, ["Sí", "No"]])

    declared = struct.unpack_from("<I", payload, 24)[0]
    assert declared == len(question.encode("utf-8"))
    assert declared > len(question)


def test_init_payload_round_trip():
    """Español: Decodificar el payload de inicialización reconstruye pregunta y opciones.

    English: Decoding the initialize_voting payload reconstructs question and options.
    """
    payload = encode_instruction("initialize_voting", [1, 1, QUESTION, ["Yes", "No"]])

    name, args = decode_instruction(payload)

    assert name == "initialize_voting"
    assert args["question"] == QUESTION
    assert args["options"] == ["Yes", "No"]


def test_encoder_rejects_bad_parameters():
    with pytest.raises(ValueError):
        encode_instruction("vote", [1, 1, 256])
    with pytest.raises(ValueError):
        encode_instruction("vote", [1, 1])
    with pytest.raises(ValueError):
        encode_instruction("vote", {"company_id": 1, "voting_id": 1})
    with pytest.raises(ValueError):
        encode_instruction("close_voting", [])
    with pytest.raises(ValueError):
        encode_instruction("vote", [2**64, 1, 0])


def test_encoder_rejects_non_string_text():
    with pytest.raises(ValueError, match="question"):
        encode_instruction("initialize_voting", [1, 1, None, ["a", "b"]])
    with pytest.raises(ValueError, match="options"):
        encode_instruction("initialize_voting", [1, 1, QUESTION, "ab"])
    with pytest.raises(ValueError):
        encode_instruction("initialize_voting", [1, 1, QUESTION, ["a", 7]])


def test_decode_instruction_unknown_discriminator():
    with pytest.raises(DecodeError):
        decode_instruction(b"\x00" * 8)


def test_account_round_trip_and_invariants():
    session = _session(options=("Yes", "No", "Maybe"), tallies=(3, 1, 2), total=6)

    decoded = decode_voting_session(encode_voting_session(session))

    assert decoded == session
    assert sum(decoded.tallies) == decoded.total
    assert len(decoded.options) == len(decoded.tallies)


def test_account_starts_with_account_discriminator():
    data = encode_voting_session(_session())

    assert data[:8] == account_discriminator("VotingAccount")


def test_trailing_padding_is_ignored():
    data = encode_voting_session(_session()) + b"\x00" * 200

    assert decode_voting_session(data).tallies == (1, 0)


def test_short_buffer_raises_decode_error():
    with pytest.raises(DecodeError):
        decode_voting_session(b"")
    with pytest.raises(DecodeError):
        decode_voting_session(b"\x01" * 7)


def test_every_truncation_raises_decode_error():
    data = encode_voting_session(_session())

    for cut in range(len(data)):
        with pytest.raises(DecodeError):
            decode_voting_session(data[:cut])


def test_oversized_string_length_raises_decode_error():
    data = bytearray(encode_voting_session(_session()))
    # Question length prefix sits right after discriminator + two u64 ids.
    struct.pack_into("<I", data, 24, 10_000)

    with pytest.raises(DecodeError):
        decode_voting_session(bytes(data))


def test_oversized_list_count_raises_decode_error():
    writer = BinaryWriter()
    writer.write_raw(account_discriminator("VotingAccount"))
    writer.write_int(FieldKind.U64, 1)
    writer.write_int(FieldKind.U64, 1)
    writer.write_string(QUESTION)
    writer.write_int(FieldKind.U32, 2**32 - 1)

    with pytest.raises(DecodeError):
        decode_voting_session(writer.getvalue())


def test_broken_tally_invariant_raises_decode_error():
    with pytest.raises(DecodeError):
        decode_voting_session(encode_voting_session(_session(tallies=(1, 1), total=1)))
    with pytest.raises(DecodeError):
        decode_voting_session(encode_voting_session(_session(tallies=(1,), total=1)))


def test_invalid_utf8_raises_decode_error():
    data = bytearray(encode_voting_session(_session(question="abc")))
    data[28] = 0xFF

    with pytest.raises(DecodeError):
        decode_voting_session(bytes(data))


def test_vote_record_round_trip():
    voter = Keypair().pubkey()

    record = decode_vote_record(encode_vote_record(VoteRecord(voter=voter, selected_option=2)))

    assert record.voter == voter
    assert record.selected_option == 2


def test_truncated_vote_record_raises_decode_error():
    data = encode_vote_record(VoteRecord(voter=Keypair().pubkey(), selected_option=0))

    with pytest.raises(DecodeError):
        decode_vote_record(data[:-1])
