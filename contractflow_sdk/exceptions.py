"""
Exceptions for the contractflow SDK.
"""
from typing import Optional


class ContractFlowError(Exception):
    """Base exception for all SDK errors."""
    pass


class EncodingError(ContractFlowError):
    """Raised when a transaction cannot be rendered into canonical sign bytes."""
    pass


class SequenceMismatchError(EncodingError):
    """Raised when a transaction sequence is not the account sequence + 1."""

    def __init__(self, message: str, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(message)


class CompileError(ContractFlowError):
    """Raised when the compile service fails or returns an unusable artifact."""
    pass


class ChainQueryError(ContractFlowError):
    """Raised when a read query against the node fails."""

    def __init__(self, message: str, endpoint: Optional[str] = None):
        self.endpoint = endpoint
        super().__init__(message)


class SigningError(ContractFlowError):
    """Raised when the signing service refuses or fails to sign."""
    pass


class BroadcastError(ContractFlowError):
    """Raised when the node rejects a transaction or cannot be reached."""

    def __init__(self, message: str, reason: Optional[str] = None):
        self.reason = reason
        super().__init__(message)


class ConfirmationTimeout(ContractFlowError):
    """Raised when no new block was observed before the confirmation deadline."""

    def __init__(self, message: str, start_height: Optional[int] = None, last_height: Optional[int] = None):
        self.start_height = start_height
        self.last_height = last_height
        super().__init__(message)


class ConfirmationCancelled(ConfirmationTimeout):
    """Raised when a caller cancels an in-flight confirmation wait."""
    pass


class AbiError(ContractFlowError):
    """Base class for call encoding errors."""
    pass


class UnknownFunctionError(AbiError):
    """Raised when the ABI does not declare the requested function."""
    pass


class ArgumentArityError(AbiError):
    """Raised when the number of arguments does not match the declared inputs."""
    pass


class ArgumentTypeError(AbiError):
    """Raised when a literal cannot be coerced to its declared ABI type."""
    pass


class DecodingError(ContractFlowError):
    """Raised when a return value is not valid hex for its declared type."""
    pass


class NotFoundError(ContractFlowError):
    """Raised when the registry has no record for a contract name."""
    pass


class RegistryError(ContractFlowError):
    """Raised when a registry file is malformed or an update is not allowed."""
    pass


class VerificationMismatch(UserWarning):
    """
    Warning emitted when deployed code is not found inside the submitted bytecode.

    The deployment is already final on-chain, so this is reported, never raised.
    """
    pass
