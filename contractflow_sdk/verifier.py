"""
Check that the code stored at a contract address is what was deployed.
"""
import logging
import warnings
from typing import Union

from .exceptions import VerificationMismatch
from .models import VerificationResult

logger = logging.getLogger(__name__)


def _as_hex(value: Union[bytes, str]) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex().upper()
    value = value.strip()
    if value.startswith(('0x', '0X')):
        value = value[2:]
    return value.upper()


def verify_bytecode(deployed_code: Union[bytes, str], submitted: Union[bytes, str]) -> VerificationResult:
    """
    Compare on-chain code with the submitted deployment bytecode.

    The deployed code lacks the constructor/init section of the submitted
    payload, so the check is that it occurs inside the submitted bytecode
    rather than equality. This is a sanity check, not a cryptographic one:
    a substituted program that happens to be a substring would still pass.

    A mismatch is emitted as a VerificationMismatch warning; the deployment
    is already final on-chain so nothing is raised.

    Args:
        deployed_code: Code read from the contract account (hex or bytes)
        submitted: Bytecode sent in the deploy transaction (hex or bytes)

    Returns:
        VerificationResult with both compared values
    """
    deployed_hex = _as_hex(deployed_code)
    submitted_hex = _as_hex(submitted)

    passed = bool(deployed_hex) and deployed_hex in submitted_hex
    result = VerificationResult(passed=passed, deployed_code=deployed_hex, submitted_code=submitted_hex)

    if passed:
        logger.info("Deployed code matches submitted bytecode")
    else:
        logger.warning(f"Code at contract is not what was deployed. Deployed: {submitted_hex} Got: {deployed_hex}")
        warnings.warn(
            f"Deployed code ({len(deployed_hex) // 2} bytes) not found in submitted bytecode",
            VerificationMismatch,
            stacklevel=2
        )
    return result
