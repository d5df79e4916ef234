"""
Canonical sign-bytes encoding for call transactions.

The node re-derives these bytes independently when it checks a signature, so
the rendering must be byte-for-byte stable: keys sorted at every level, no
whitespace, integers as plain decimals and strings escaped only as far as
JSON requires.
"""
import json
from typing import Any, Dict, Mapping, Union

from .exceptions import EncodingError
from .models import CALL_TX_TYPE, CallTx

_TX_STRING_FIELDS = ("address", "data")
_TX_INT_FIELDS = ("fee", "gas_limit")
_INPUT_STRING_FIELDS = ("address",)
_INPUT_INT_FIELDS = ("amount", "sequence")


def _require(mapping: Mapping[str, Any], key: str, kind: type, where: str) -> Any:
    if key not in mapping:
        raise EncodingError(f"Missing required field '{where}{key}'")
    value = mapping[key]
    # bool is an int subclass and would render as true/false
    if kind is int and (isinstance(value, bool) or not isinstance(value, int)):
        raise EncodingError(f"Field '{where}{key}' must be an integer, got {type(value).__name__}")
    if kind is int and value < 0:
        raise EncodingError(f"Field '{where}{key}' must be non-negative, got {value}")
    if kind is str and not isinstance(value, str):
        raise EncodingError(f"Field '{where}{key}' must be a string, got {type(value).__name__}")
    return value


def _canonical_tx(tx: Union[CallTx, Mapping[str, Any]]) -> Dict[str, Any]:
    if isinstance(tx, CallTx):
        tx = tx.to_sign_dict()
    if not isinstance(tx, Mapping):
        raise EncodingError(f"Transaction must be a CallTx or mapping, got {type(tx).__name__}")

    body: Dict[str, Any] = {}
    for key in _TX_STRING_FIELDS:
        body[key] = _require(tx, key, str, "")
    for key in _TX_INT_FIELDS:
        body[key] = _require(tx, key, int, "")

    tx_input = tx.get("input")
    if not isinstance(tx_input, Mapping):
        raise EncodingError("Missing required field 'input'")
    body["input"] = {}
    for key in _INPUT_STRING_FIELDS:
        body["input"][key] = _require(tx_input, key, str, "input.")
    for key in _INPUT_INT_FIELDS:
        body["input"][key] = _require(tx_input, key, int, "input.")
    return body


def sign_bytes(chain_id: str, tx: Union[CallTx, Mapping[str, Any]]) -> bytes:
    """
    Produce the exact bytes the account key must sign.

    Args:
        chain_id: Chain identifier, included to prevent cross-chain replay
        tx: Unsigned call transaction, as a model or a mapping of the same shape

    Returns:
        UTF-8 encoded canonical JSON

    Raises:
        EncodingError: If a required field is absent or has the wrong type
    """
    if not isinstance(chain_id, str) or not chain_id:
        raise EncodingError("chain_id must be a non-empty string")

    document = {"chain_id": chain_id, "tx": [CALL_TX_TYPE, _canonical_tx(tx)]}
    return json.dumps(
        document,
        sort_keys=True,
        separators=(',', ':'),
        ensure_ascii=False,
    ).encode('utf-8')


def sign_bytes_hex(chain_id: str, tx: Union[CallTx, Mapping[str, Any]]) -> str:
    """Uppercase hex rendering of :func:`sign_bytes` for the textual signer transport."""
    return sign_bytes(chain_id, tx).hex().upper()
