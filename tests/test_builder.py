"""
Tests for transaction assembly.
"""
import pytest

from contractflow_sdk.builder import TransactionBuilder
from contractflow_sdk.exceptions import EncodingError, SequenceMismatchError
from contractflow_sdk.models import Account, CALL_TX_TYPE

ADDRESS = "37236DF251AB70022B1DA351F08A20FB52443E37"
CONTRACT = "9FC1ECFCAE2A554D4D1A000D0D80F748E66359E3"


@pytest.fixture
def builder():
    return TransactionBuilder(fee=0, gas_limit=1000, amount=1)


def test_sequence_is_account_sequence_plus_one(builder):
    tx = builder.build(Account(address=ADDRESS, sequence=6), b"\x60\x06")
    assert tx.sequence == 7
    assert tx.data == "6006"
    assert tx.is_deploy
    assert (tx.fee, tx.gas_limit, tx.amount) == (0, 1000, 1)


def test_fresh_account_starts_at_one(builder):
    assert builder.build(Account(address=ADDRESS), "6006").sequence == 1


@pytest.mark.parametrize("explicit", [6, 8, 1])
def test_wrong_explicit_sequence_rejected(builder, explicit):
    with pytest.raises(SequenceMismatchError) as exc_info:
        builder.build(Account(address=ADDRESS, sequence=6), "6006", sequence=explicit)
    assert exc_info.value.expected == 7
    assert exc_info.value.got == explicit


def test_matching_explicit_sequence_accepted(builder):
    assert builder.build(Account(address=ADDRESS, sequence=6), "6006", sequence=7).sequence == 7


def test_stale_transaction_detected(builder):
    tx = builder.build(Account(address=ADDRESS, sequence=6), "6006")
    builder.check_sequence(tx, Account(address=ADDRESS, sequence=6))
    with pytest.raises(SequenceMismatchError, match="Stale"):
        builder.check_sequence(tx, Account(address=ADDRESS, sequence=7))


def test_call_to_contract_uses_uppercase_hex(builder):
    tx = builder.build(Account(address=ADDRESS.lower(), sequence=0), bytes.fromhex("a5f3c23b"),
                       recipient=CONTRACT.lower())
    assert tx.address == CONTRACT
    assert tx.input_address == ADDRESS
    assert tx.data == "A5F3C23B"
    assert not tx.is_deploy


def test_invalid_fields_raise_encoding_error(builder):
    with pytest.raises(EncodingError):
        builder.build(Account(address=ADDRESS), "not-hex")
    with pytest.raises(EncodingError):
        builder.build(Account(address=ADDRESS), "6006", fee=-1)


def test_attach_signature_and_wire_form(builder):
    tx = builder.build(Account(address=ADDRESS, sequence=2), "6006", recipient=CONTRACT)
    signed = builder.attach_signature(tx, "AB" * 32, "CD" * 64)

    kind, body = signed.to_wire()
    assert kind == CALL_TX_TYPE
    assert body["input"] == {
        "address": ADDRESS,
        "amount": 1,
        "sequence": 3,
        "signature": [1, "CD" * 64],
        "pub_key": [1, "AB" * 32],
    }
    assert body["address"] == CONTRACT
    assert body["data"] == "6006"


@pytest.mark.parametrize("pub_key, signature", [("", "CD"), ("AB", "")])
def test_attach_signature_requires_both(builder, pub_key, signature):
    tx = builder.build(Account(address=ADDRESS), "6006")
    with pytest.raises(EncodingError):
        builder.attach_signature(tx, pub_key, signature)
