"""
ABI call-data encoding and return-value decoding.

Selectors are the first four bytes of the keccak-256 hash of the canonical
function signature; arguments are packed by ``eth_abi`` into 32-byte words.
"""
import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Tuple

import eth_abi
from eth_abi.exceptions import DecodingError as AbiDecodingError
from eth_abi.exceptions import EncodingError as AbiEncodingError
from web3 import Web3

from .exceptions import (
    ArgumentArityError, ArgumentTypeError, DecodingError, UnknownFunctionError
)

_TYPE_RE = re.compile(r'^([a-z]+)(\d*(?:x\d+)?)((?:\[\d*\])*)$')
_ARRAY_RE = re.compile(r'^(.*)\[(\d*)\]$')
_HEX_RE = re.compile(r'^[0-9A-Fa-f]*$')


def canonical_type(abi_type: str) -> str:
    """
    Expand type aliases the way signatures are hashed.

    ``int`` -> ``int256``, ``uint`` -> ``uint256``, ``byte`` -> ``bytes1``,
    ``fixed`` -> ``fixed128x18``; array suffixes are kept.
    """
    match = _TYPE_RE.match(abi_type.strip())
    if not match:
        return abi_type.strip()
    base, size, arrays = match.groups()
    if base in ("int", "uint") and not size:
        size = "256"
    elif base in ("fixed", "ufixed") and not size:
        size = "128x18"
    elif base == "byte" and not size:
        base, size = "bytes", "1"
    return f"{base}{size}{arrays}"


def function_signature(entry: Dict[str, Any]) -> str:
    """Canonical signature, e.g. ``add(int256,int256)``"""
    types = ",".join(canonical_type(arg["type"]) for arg in entry.get("inputs", []))
    return f"{entry['name']}({types})"


def function_selector(entry: Dict[str, Any]) -> bytes:
    """Four-byte selector for an ABI function entry"""
    return bytes(Web3.keccak(text=function_signature(entry))[:4])


def _functions_named(abi: Sequence[Dict[str, Any]], name: str) -> List[Dict[str, Any]]:
    return [
        entry for entry in abi
        if entry.get("type", "function") == "function" and entry.get("name") == name
    ]


def find_function(abi: Sequence[Dict[str, Any]], name: str, arity: Optional[int] = None) -> Dict[str, Any]:
    """
    Look up a function entry by name, and by argument count for overloads.

    Raises:
        UnknownFunctionError: If no function of that name exists
        ArgumentArityError: If no overload takes `arity` arguments
    """
    candidates = _functions_named(abi, name)
    if not candidates:
        available = sorted({e.get("name", "") for e in abi if e.get("type", "function") == "function"})
        raise UnknownFunctionError(f"Function '{name}' not found in ABI. Available: {', '.join(available)}")
    if arity is None:
        return candidates[0]
    for entry in candidates:
        if len(entry.get("inputs", [])) == arity:
            return entry
    expected = sorted({len(e.get("inputs", [])) for e in candidates})
    raise ArgumentArityError(
        f"Function '{name}' takes {' or '.join(map(str, expected))} argument(s), got {arity}"
    )


def _strip_hex(value: str) -> str:
    value = value.strip().strip('"')
    if value.startswith(('0x', '0X')):
        value = value[2:]
    return value


def _hex_bytes(value: Any, abi_type: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        text = _strip_hex(value)
        if _HEX_RE.match(text) and len(text) % 2 == 0:
            return bytes.fromhex(text)
    raise ArgumentTypeError(f"Cannot convert {value!r} to {abi_type}: expected hex")


def coerce_argument(abi_type: str, value: Any) -> Any:
    """
    Convert a literal into the Python value eth_abi expects for a type.

    Raises:
        ArgumentTypeError: If the literal does not fit the type
    """
    array = _ARRAY_RE.match(abi_type)
    if array:
        inner, length = array.groups()
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                raise ArgumentTypeError(f"Cannot convert {value!r} to {abi_type}: expected a JSON array")
        if not isinstance(value, (list, tuple)):
            raise ArgumentTypeError(f"Cannot convert {value!r} to {abi_type}: expected a list")
        if length and len(value) != int(length):
            raise ArgumentTypeError(f"{abi_type} needs exactly {length} elements, got {len(value)}")
        return [coerce_argument(inner, item) for item in value]

    if abi_type.startswith(("int", "uint")):
        if isinstance(value, bool):
            raise ArgumentTypeError(f"Cannot convert boolean to {abi_type}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            text = value.strip()
            try:
                if text.lower().startswith(("0x", "-0x")):
                    return int(text, 16)
                return int(text, 10)
            except ValueError:
                pass
        raise ArgumentTypeError(f"Cannot convert {value!r} to {abi_type}")

    if abi_type == "bool":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "1", "false", "0"):
            return value.strip().lower() in ("true", "1")
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise ArgumentTypeError(f"Cannot convert {value!r} to bool")

    if abi_type == "address":
        raw = _hex_bytes(value, abi_type)
        if len(raw) != 20:
            raise ArgumentTypeError(f"Address must be 20 bytes, got {len(raw)}")
        return raw

    if abi_type == "string":
        if not isinstance(value, str):
            raise ArgumentTypeError(f"Cannot convert {value!r} to string")
        return value

    if abi_type.startswith("bytes"):
        return _hex_bytes(value, abi_type)

    if abi_type.startswith(("fixed", "ufixed")):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            raise ArgumentTypeError(f"Cannot convert {value!r} to {abi_type}")

    raise ArgumentTypeError(f"Unsupported ABI type: {abi_type}")


def encode_arguments(entry: Dict[str, Any], args: Sequence[Any]) -> Tuple[List[str], bytes]:
    types = [canonical_type(arg["type"]) for arg in entry.get("inputs", [])]
    if len(types) != len(args):
        raise ArgumentArityError(f"Function '{entry['name']}' takes {len(types)} argument(s), got {len(args)}")
    values = [coerce_argument(t, v) for t, v in zip(types, args)]
    try:
        return types, eth_abi.encode(types, values)
    except (AbiEncodingError, TypeError, ValueError, OverflowError) as e:
        raise ArgumentTypeError(f"Cannot encode arguments for {function_signature(entry)}: {str(e)}") from e


def encode_call(abi: Sequence[Dict[str, Any]], name: str, args: Sequence[Any]) -> bytes:
    """
    Build call data for a contract function.

    Args:
        abi: Contract ABI entries
        name: Function name
        args: Positional argument literals

    Returns:
        Selector followed by the ABI-encoded arguments

    Raises:
        UnknownFunctionError: If the name is not in the ABI
        ArgumentArityError: If the argument count does not match
        ArgumentTypeError: If a literal cannot be coerced to its type
    """
    entry = find_function(abi, name, len(args))
    _, encoded = encode_arguments(entry, args)
    return function_selector(entry) + encoded


def decode_int(hex_value: str) -> int:
    """
    Decode a raw hex return value as a big-endian unsigned integer.

    Leading zero padding is stripped; an empty or all-zero value is 0.

    Raises:
        DecodingError: If the value is not hex
    """
    if hex_value is None:
        raise DecodingError("No return value to decode")
    text = _strip_hex(hex_value).lstrip("0")
    if not text:
        return 0
    if not _HEX_RE.match(text):
        raise DecodingError(f"Return value is not hex: {hex_value!r}")
    return int(text, 16)


def decode_return(abi: Sequence[Dict[str, Any]], name: str, hex_value: str, arity: Optional[int] = None) -> Any:
    """
    Decode a return value according to a function's declared outputs.

    A single integer output shorter than one 32-byte word is read the way
    nodes that trim padding return it, as a plain big-endian number.

    Returns:
        None for no outputs, a scalar for one output, otherwise a tuple

    Raises:
        UnknownFunctionError: If the name is not in the ABI
        DecodingError: If the data does not match the declared outputs
    """
    entry = find_function(abi, name, arity)
    types = [canonical_type(out["type"]) for out in entry.get("outputs", [])]
    if not types:
        return None
    text = _strip_hex(hex_value or "")
    scalar = types[0] if len(types) == 1 and "[" not in types[0] else ""
    if scalar.startswith(("int", "uint")) and len(text) < 64:
        return decode_int(text)
    if not _HEX_RE.match(text) or len(text) % 2:
        raise DecodingError(f"Return value is not hex: {hex_value!r}")
    try:
        values = eth_abi.decode(types, bytes.fromhex(text))
    except AbiDecodingError as e:
        raise DecodingError(f"Cannot decode return of {function_signature(entry)}: {str(e)}") from e
    if len(values) == 1:
        return values[0]
    return tuple(values)
