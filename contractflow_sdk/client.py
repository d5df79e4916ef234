"""
ContractClient - deploys and invokes contracts end to end.
"""
import logging
import threading
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from .abi import decode_return, encode_call
from .builder import TransactionBuilder
from .compiler import CompilerClient
from .config import ClientConfig
from .encoding import sign_bytes_hex
from .exceptions import ChainQueryError, RegistryError, SigningError
from .models import (
    BroadcastResult, CompiledArtifact, ContractRecord, ContractSource,
    DeploymentResult, SignedTransaction, VerificationResult
)
from .node import NodeClient
from .poller import ConfirmationPoller
from .registry import ContractRegistry
from .signer import RemoteSigner, Signer
from .verifier import verify_bytecode


class ContractClient:
    """
    Client for deploying and calling contracts.

    This client handles:
    1. Compiling source through the compile service
    2. Building, signing and broadcasting call transactions
    3. Waiting for confirmation and verifying deployed code
    4. Keeping the contract registry up to date

    Every step of one deployment runs sequentially. Concurrent use for
    different senders is safe; transactions from the same sender are
    serialized so that two of them never read the same sequence.
    """

    def __init__(
        self,
        config: ClientConfig,
        signer: Optional[Signer] = None,
        registry: Optional[ContractRegistry] = None,
        node: Optional[NodeClient] = None,
        compiler: Optional[CompilerClient] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the ContractClient

        Args:
            config: Session settings, including the chain id
            signer: Signer to use (defaults to RemoteSigner on config.keys_url)
            registry: Contract registry (defaults to one in config.registry_dir)
            node: Node client (defaults to one on config.node_url)
            compiler: Compiler client (defaults to one on config.compiler_url, if set)
            logger: Optional logger instance to use for debug/info logging
        """
        self.config = config
        self.chain_id = config.chain_id
        self.logger = logger or logging.getLogger(__name__)

        http = dict(retry_count=config.retry_count, timeout=config.timeout, allow_insecure=config.allow_insecure)
        self.node = node or NodeClient(config.node_url, logger=self.logger, **http)
        self.signer = signer or RemoteSigner(config.keys_url, logger=self.logger, **http)
        if compiler is None and config.compiler_url:
            compiler = CompilerClient(config.compiler_url, language=config.language, logger=self.logger, **http)
        self.compiler = compiler
        self.registry = registry or ContractRegistry(config.registry_dir)
        self.builder = TransactionBuilder(fee=config.fee, gas_limit=config.gas_limit, amount=config.amount)

        self._sender_locks: Dict[str, threading.Lock] = {}
        self._sender_locks_guard = threading.Lock()

    def _sender_lock(self, address: str) -> threading.Lock:
        with self._sender_locks_guard:
            key = address.upper()
            if key not in self._sender_locks:
                self._sender_locks[key] = threading.Lock()
            return self._sender_locks[key]

    def new_poller(self) -> ConfirmationPoller:
        """Create a poller using the session's interval and timeout"""
        return ConfirmationPoller(
            self.node,
            poll_interval=self.config.poll_interval,
            timeout=self.config.confirmation_timeout,
            logger=self.logger,
        )

    def assert_chain_id(self) -> None:
        """
        Check that the node serves the configured chain.

        Raises:
            ChainQueryError: If the genesis cannot be read or the chain id differs
        """
        genesis = self.node.get_genesis()
        actual = genesis.get("chain_id")
        if actual != self.chain_id:
            raise ChainQueryError(
                f"Chain ID mismatch: configured {self.chain_id}, node reports {actual}",
                endpoint="/genesis",
            )

    def _sign(self, msg_hex: str, address: str) -> Tuple[str, str]:
        try:
            signature = self.signer.sign(msg_hex, address)
            pub_key = self.signer.public_key(address)
        except SigningError:
            raise
        except Exception as e:
            self.logger.error(f"Transaction signing failed: {e}")
            raise SigningError(f"Failed to sign transaction: {str(e)}") from e
        return signature, pub_key

    def send_transaction(
        self,
        sender: str,
        data: Union[bytes, str],
        recipient: str = ""
    ) -> Tuple[SignedTransaction, BroadcastResult, int]:
        """
        Read the sender's sequence, sign and broadcast one transaction.

        Args:
            sender: Address of the signing account
            data: Bytecode (recipient "") or call data
            recipient: Contract address, or "" to deploy

        Returns:
            (signed transaction, broadcast acknowledgement, height before broadcast)

        Raises:
            ChainQueryError: If account state or height cannot be read
            SigningError: If signing fails
            BroadcastError: If the node rejects the transaction
        """
        with self._sender_lock(sender):
            account = self.node.get_account(sender)
            tx = self.builder.build(account, data, recipient=recipient)
            msg_hex = sign_bytes_hex(self.chain_id, tx)
            self.logger.debug(f"Sign bytes for {sender} seq={tx.sequence}: {len(msg_hex) // 2} bytes")

            signature, pub_key = self._sign(msg_hex, sender)
            signed = self.builder.attach_signature(tx, pub_key, signature)

            start_height = self.node.get_block_height()
            broadcast = self.node.broadcast_tx(signed)
        return signed, broadcast, start_height

    def deploy(self, source: Union[ContractSource, str], deployer: str) -> DeploymentResult:
        """
        Compile and deploy a contract.

        Args:
            source: ContractSource or raw source text
            deployer: Address of the deploying account

        Returns:
            DeploymentResult with the stored record and verification outcome

        Raises:
            ValueError: If no compiler is configured
            CompileError, SigningError, BroadcastError: Nothing is stored
            ConfirmationTimeout: The record stays pending; see resume_deployment
        """
        if self.compiler is None:
            raise ValueError("Compiler URL not provided in configuration")
        artifact = self.compiler.compile(source)
        return self.deploy_artifact(artifact, deployer)

    def deploy_artifact(self, artifact: CompiledArtifact, deployer: str) -> DeploymentResult:
        """Deploy an already compiled artifact; see deploy()"""
        signed, broadcast, start_height = self.send_transaction(deployer, artifact.bytecode)
        name = artifact.name

        self.registry.put(name, ContractRecord(
            contract_name=name,
            abi=artifact.abi,
            deployer_address=deployer,
            bytecode=signed.tx.data,
        ))
        record = self.registry.update_deployed_address(name, broadcast.contract_address)
        self.logger.info(f"Contract {name} submitted, address {broadcast.contract_address}")

        height = self.new_poller().wait(start_height)
        record = self.registry.mark_confirmed(name)

        verification = self.verify_deployment(name)
        return DeploymentResult(
            record=record,
            broadcast=broadcast,
            confirmed_height=height,
            verification=verification,
        )

    def verify_deployment(self, name: str) -> VerificationResult:
        """
        Compare the code at a recorded contract with its submitted bytecode.

        Raises:
            NotFoundError: If the contract is not in the registry
            RegistryError: If the record lacks an address or bytecode
        """
        record = self.registry.get(name)
        if not record.deployed_address or not record.bytecode:
            raise RegistryError(f"Contract {name} has no deployed address or bytecode to verify")
        code = self.node.get_code(record.deployed_address)
        return verify_bytecode(code, record.bytecode)

    def resume_deployment(self, name: str) -> VerificationResult:
        """
        Finish a deployment whose confirmation was not observed.

        Waits for one more block if no code is at the contract address yet,
        marks the record confirmed once code appears, and verifies it.

        Raises:
            NotFoundError: If the contract is not in the registry
            RegistryError: If the record has no deployed address
            ConfirmationTimeout: If no new block appears
        """
        record = self.registry.get(name)
        if not record.deployed_address:
            raise RegistryError(f"Contract {name} has no deployed address; deploy it again")
        if not record.is_pending:
            return self.verify_deployment(name)

        code = self.node.get_code(record.deployed_address)
        if not code:
            self.new_poller().wait()
            code = self.node.get_code(record.deployed_address)
        if code:
            self.registry.mark_confirmed(name)
        else:
            self.logger.warning(f"Still no code at {record.deployed_address} for {name}")
        return verify_bytecode(code, record.bytecode or "")

    def _deployed(self, name: str) -> ContractRecord:
        record = self.registry.get(name)
        if not record.deployed_address:
            raise RegistryError(f"Contract {name} has no deployed address")
        return record

    def call(self, name: str, function: str, args: Sequence[Any], caller: Optional[str] = None) -> Any:
        """
        Call a contract function with a transaction and wait for confirmation.

        If the node's receipt carries no return value, the value is read back
        with a simulated call at the confirmed state.

        Args:
            name: Registered contract name
            function: Function name
            args: Positional argument literals
            caller: Sending address (defaults to the deployer)

        Returns:
            Decoded return value
        """
        record = self._deployed(name)
        data = encode_call(record.abi, function, args)
        caller = caller or record.deployer_address

        _, broadcast, start_height = self.send_transaction(caller, data, recipient=record.deployed_address)
        self.new_poller().wait(start_height)

        raw = broadcast.return_value
        if raw is None:
            raw = self.node.call(caller, record.deployed_address, data.hex().upper())
        self.logger.debug(f"{name}.{function} returned {raw}")
        return decode_return(record.abi, function, raw, arity=len(args))

    def query(self, name: str, function: str, args: Sequence[Any], caller: Optional[str] = None) -> Any:
        """
        Call a contract function without a transaction (simulated call).

        Returns:
            Decoded return value
        """
        record = self._deployed(name)
        data = encode_call(record.abi, function, args)
        raw = self.node.call(caller or record.deployer_address, record.deployed_address, data.hex().upper())
        return decode_return(record.abi, function, raw, arity=len(args))
