"""
Composition of call transactions from account state, payload and signature.
"""
from typing import Optional, Union

from pydantic import ValidationError

from .exceptions import EncodingError, SequenceMismatchError
from .models import Account, CallTx, SignedTransaction


class TransactionBuilder:
    """
    Pure transaction assembly; performs no I/O.

    Args:
        fee: Fee attached to every transaction
        gas_limit: Gas limit attached to every transaction
        amount: Amount transferred with every transaction
    """

    def __init__(self, fee: int = 0, gas_limit: int = 1000, amount: int = 1):
        self.fee = fee
        self.gas_limit = gas_limit
        self.amount = amount

    def build(
        self,
        account: Account,
        data: Union[bytes, str],
        recipient: str = "",
        sequence: Optional[int] = None,
        amount: Optional[int] = None,
        fee: Optional[int] = None,
        gas_limit: Optional[int] = None
    ) -> CallTx:
        """
        Build an unsigned call transaction.

        Args:
            account: Sender state as read from the node
            data: Bytecode (deploy) or call data, raw or hex
            recipient: Contract address, or "" to deploy a new contract
            sequence: Optional explicit sequence; must equal account.sequence + 1

        Returns:
            CallTx ready for sign-bytes encoding

        Raises:
            SequenceMismatchError: If an explicit sequence is stale or ahead
            EncodingError: If a field is invalid
        """
        expected = account.sequence + 1
        if sequence is not None and sequence != expected:
            raise SequenceMismatchError(
                f"Sequence {sequence} does not follow account sequence {account.sequence} (expected {expected})",
                expected=expected,
                got=sequence,
            )

        if isinstance(data, (bytes, bytearray)):
            data = bytes(data).hex()

        try:
            return CallTx(
                input_address=account.address,
                address=recipient,
                amount=self.amount if amount is None else amount,
                fee=self.fee if fee is None else fee,
                gas_limit=self.gas_limit if gas_limit is None else gas_limit,
                data=data,
                sequence=expected,
            )
        except ValidationError as e:
            raise EncodingError(f"Invalid transaction fields: {str(e)}") from e

    @staticmethod
    def check_sequence(tx: CallTx, account: Account) -> None:
        """
        Detect a transaction built against stale account state.

        Raises:
            SequenceMismatchError: If tx.sequence != account.sequence + 1
        """
        expected = account.sequence + 1
        if tx.sequence != expected:
            raise SequenceMismatchError(
                f"Stale transaction: sequence {tx.sequence}, account is at {account.sequence}",
                expected=expected,
                got=tx.sequence,
            )

    @staticmethod
    def attach_signature(tx: CallTx, pub_key: str, signature: str) -> SignedTransaction:
        """
        Combine an unsigned transaction with its signature.

        Raises:
            EncodingError: If the public key or signature is missing
        """
        if not pub_key:
            raise EncodingError("Missing public key")
        if not signature:
            raise EncodingError("Missing signature")
        return SignedTransaction(tx=tx, pub_key=pub_key, signature=signature)
