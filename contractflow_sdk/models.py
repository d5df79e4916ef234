"""
Data models for the contractflow SDK.
"""
import re
from typing import Dict, Any, Optional, List, Literal

from pydantic import BaseModel, Field, field_validator

# Transaction-kind discriminant the node expects for call transactions
CALL_TX_TYPE = 2

# Key-type discriminant used for ed25519 signatures and public keys
ED25519_KEY_TYPE = 1

_HEX_RE = re.compile(r'^[0-9A-Fa-f]*$')

# Contract names double as registry file stems
CONTRACT_NAME_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


def _normalize_hex(value: str) -> str:
    if value.startswith(('0x', '0X')):
        value = value[2:]
    if not _HEX_RE.match(value) or len(value) % 2:
        raise ValueError("must be an even-length hex string")
    return value.upper()


class Account(BaseModel):
    """On-chain account state as reported by the node"""
    address: str
    sequence: int = Field(0, ge=0)
    code: str = ""


class ContractSource(BaseModel):
    """Contract source text together with the contract name declared in it"""
    name: str
    code: str


class CompiledArtifact(BaseModel):
    """Output of the compile service for one contract"""
    name: str
    bytecode: bytes
    abi: List[Dict[str, Any]]

    class Config:
        frozen = True

    @property
    def bytecode_hex(self) -> str:
        return self.bytecode.hex().upper()


class CallTx(BaseModel):
    """
    Unsigned call transaction.

    An empty ``address`` creates a new contract from ``data``; otherwise
    ``data`` is call data for the contract at ``address``.
    """
    input_address: str
    address: str = ""
    amount: int = Field(..., ge=0)
    fee: int = Field(..., ge=0)
    gas_limit: int = Field(..., ge=0)
    data: str = ""
    sequence: int = Field(..., ge=1)

    @field_validator('data', 'address', 'input_address')
    @classmethod
    def validate_hex(cls, v: str) -> str:
        return _normalize_hex(v)

    @property
    def is_deploy(self) -> bool:
        return self.address == ""

    def to_sign_dict(self) -> Dict[str, Any]:
        """Field layout signed by the account key (without the chain id)"""
        return {
            "address": self.address,
            "data": self.data,
            "fee": self.fee,
            "gas_limit": self.gas_limit,
            "input": {
                "address": self.input_address,
                "amount": self.amount,
                "sequence": self.sequence,
            },
        }


class SignedTransaction(BaseModel):
    """A call transaction together with the signer's public key and signature"""
    tx: CallTx
    pub_key: str
    signature: str

    def to_wire(self) -> List[Any]:
        """
        Render the transaction the way ``broadcast_tx`` expects it.

        Returns:
            ``[CALL_TX_TYPE, body]`` with signature and public key tagged as ed25519
        """
        return [CALL_TX_TYPE, {
            "input": {
                "address": self.tx.input_address,
                "amount": self.tx.amount,
                "sequence": self.tx.sequence,
                "signature": [ED25519_KEY_TYPE, self.signature],
                "pub_key": [ED25519_KEY_TYPE, self.pub_key],
            },
            "address": self.tx.address,
            "gas_limit": self.tx.gas_limit,
            "fee": self.tx.fee,
            "data": self.tx.data,
        }]


class BroadcastResult(BaseModel):
    """Acknowledgement returned by the node when it accepts a transaction"""
    tx_hash: Optional[str] = None
    contract_address: Optional[str] = None
    return_value: Optional[str] = None


class ContractRecord(BaseModel):
    """Persisted knowledge about a deployed (or deploying) contract"""
    contract_name: str
    abi: List[Dict[str, Any]]
    deployer_address: str
    deployed_address: Optional[str] = None
    bytecode: Optional[str] = None
    status: Literal["pending", "confirmed"] = "pending"

    @field_validator('contract_name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not CONTRACT_NAME_RE.match(v):
            raise ValueError("contract_name must be a valid identifier")
        return v

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"


class VerificationResult(BaseModel):
    """Outcome of comparing on-chain code with the submitted bytecode"""
    passed: bool
    deployed_code: str
    submitted_code: str


class DeploymentResult(BaseModel):
    """Everything a caller needs after a deployment finished"""
    record: ContractRecord
    broadcast: BroadcastResult
    confirmed_height: int
    verification: VerificationResult
