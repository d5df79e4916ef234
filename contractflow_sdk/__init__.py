"""
contractflow SDK - deploy and call contracts through a node's RPC interface,
with signing delegated to an external keys service.
"""
from .version import __version__
from .client import ContractClient
from .config import ClientConfig, NetworkConfig
from .models import (
    Account, BroadcastResult, CallTx, CompiledArtifact, ContractRecord,
    ContractSource, DeploymentResult, SignedTransaction, VerificationResult
)
from .exceptions import (
    ContractFlowError, EncodingError, SequenceMismatchError, CompileError,
    ChainQueryError, SigningError, BroadcastError, ConfirmationTimeout,
    ConfirmationCancelled, AbiError, UnknownFunctionError, ArgumentArityError,
    ArgumentTypeError, DecodingError, NotFoundError, RegistryError,
    VerificationMismatch
)
from .encoding import sign_bytes, sign_bytes_hex
from .abi import encode_call, decode_int, decode_return, function_selector
from .compiler import CompilerClient, parse_contract_source
from .node import NodeClient
from .signer import Signer, RemoteSigner, LocalSigner
from .builder import TransactionBuilder
from .poller import ConfirmationPoller, PollState
from .verifier import verify_bytecode
from .registry import ContractRegistry

__all__ = [
    "ContractClient",
    "ClientConfig",
    "NetworkConfig",
    "Account",
    "BroadcastResult",
    "CallTx",
    "CompiledArtifact",
    "ContractRecord",
    "ContractSource",
    "DeploymentResult",
    "SignedTransaction",
    "VerificationResult",
    "ContractFlowError",
    "EncodingError",
    "SequenceMismatchError",
    "CompileError",
    "ChainQueryError",
    "SigningError",
    "BroadcastError",
    "ConfirmationTimeout",
    "ConfirmationCancelled",
    "AbiError",
    "UnknownFunctionError",
    "ArgumentArityError",
    "ArgumentTypeError",
    "DecodingError",
    "NotFoundError",
    "RegistryError",
    "VerificationMismatch",
    "sign_bytes",
    "sign_bytes_hex",
    "encode_call",
    "decode_int",
    "decode_return",
    "function_selector",
    "CompilerClient",
    "parse_contract_source",
    "NodeClient",
    "Signer",
    "RemoteSigner",
    "LocalSigner",
    "TransactionBuilder",
    "ConfirmationPoller",
    "PollState",
    "verify_bytecode",
    "ContractRegistry",
    "__version__",
]
