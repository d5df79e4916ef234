"""
Durable contract registry.

Each contract lives in ``<directory>/<name>.abi`` as newline-delimited
``KEY~VALUE`` lines::

    ABI~[{"constant":true,...}]
    ADDRESS~<deployer address>
    CONTRACT_ADDRESS~<deployed address>

``BYTECODE~`` and ``STATUS~`` lines carry what is needed to resume a
deployment whose confirmation was not observed. Later lines override
earlier ones, so filling in the deployed address is an append, not a rewrite.
"""
import json
import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional

import portalocker
from pydantic import ValidationError

from .exceptions import NotFoundError, RegistryError
from .models import CONTRACT_NAME_RE, ContractRecord

logger = logging.getLogger(__name__)

KEY_ABI = "ABI"
KEY_DEPLOYER = "ADDRESS"
KEY_CONTRACT = "CONTRACT_ADDRESS"
KEY_BYTECODE = "BYTECODE"
KEY_STATUS = "STATUS"

_SEPARATOR = "~"


def parse_record(name: str, text: str) -> ContractRecord:
    """
    Parse the ``KEY~VALUE`` layout into a record.

    Raises:
        RegistryError: If required keys are missing or the ABI is not JSON
    """
    values: Dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip() or _SEPARATOR not in line:
            continue
        key, value = line.split(_SEPARATOR, 1)
        values[key.strip()] = value.strip()

    missing = [k for k in (KEY_ABI, KEY_DEPLOYER) if k not in values]
    if missing:
        raise RegistryError(f"Record for {name} missing keys: {', '.join(missing)}")
    try:
        abi = json.loads(values[KEY_ABI])
    except ValueError as e:
        raise RegistryError(f"Record for {name} has an invalid ABI: {str(e)}") from e

    try:
        return ContractRecord(
            contract_name=name,
            abi=abi,
            deployer_address=values[KEY_DEPLOYER],
            deployed_address=values.get(KEY_CONTRACT) or None,
            bytecode=values.get(KEY_BYTECODE) or None,
            # files written by other tooling carry no status; an address means deployed
            status=values.get(KEY_STATUS) or ("confirmed" if values.get(KEY_CONTRACT) else "pending"),
        )
    except ValidationError as e:
        raise RegistryError(f"Record for {name} is invalid: {str(e)}") from e


def format_record(record: ContractRecord) -> str:
    """Render a record in the ``KEY~VALUE`` layout"""
    lines = [
        f"{KEY_ABI}{_SEPARATOR}{json.dumps(record.abi, separators=(',', ':'))}",
        f"{KEY_DEPLOYER}{_SEPARATOR}{record.deployer_address}",
    ]
    if record.bytecode:
        lines.append(f"{KEY_BYTECODE}{_SEPARATOR}{record.bytecode}")
    lines.append(f"{KEY_STATUS}{_SEPARATOR}{record.status}")
    if record.deployed_address:
        lines.append(f"{KEY_CONTRACT}{_SEPARATOR}{record.deployed_address}")
    return "\n".join(lines) + "\n"


class ContractRegistry:
    """
    Thread-safe and process-safe contract registry.

    Writes to one name are serialized by a per-name thread lock and a
    portalocker lock file; writes to different names do not block each other.
    """

    def __init__(self, directory: Optional[str] = None, lock_timeout: int = 10):
        """
        Initialize the registry.

        Args:
            directory: Directory holding the ``.abi`` files; defaults to
                CONTRACTFLOW_REGISTRY_DIR or ~/.contractflow/contracts
            lock_timeout: Seconds to wait for a file lock
        """
        if directory:
            self.directory = Path(directory)
        else:
            self.directory = Path(os.environ.get(
                "CONTRACTFLOW_REGISTRY_DIR",
                os.path.expanduser("~/.contractflow/contracts")
            ))
        self.directory.mkdir(parents=True, exist_ok=True)
        self.lock_timeout = lock_timeout
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _path(self, name: str) -> Path:
        if not CONTRACT_NAME_RE.match(name):
            raise RegistryError(f"Invalid contract name {name!r}")
        return self.directory / f"{name}.abi"

    def _lock_path(self, name: str) -> str:
        return str(self._path(name)) + '.lock'

    def _name_lock(self, name: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.Lock()
            return lock

    def _read_locked(self, name: str) -> ContractRecord:
        path = self._path(name)
        try:
            text = path.read_text(encoding='utf-8')
        except FileNotFoundError:
            raise NotFoundError(f"No contract named '{name}' in {self.directory}")
        return parse_record(name, text)

    def put(self, name: str, record: ContractRecord) -> None:
        """
        Create or overwrite the record for a name.

        Args:
            name: Contract name (file stem)
            record: Record to store
        """
        if record.contract_name != name:
            record = record.model_copy(update={"contract_name": name})
        with self._name_lock(name):
            with portalocker.Lock(self._lock_path(name), timeout=self.lock_timeout):
                tmp = self._path(name).with_suffix('.abi.tmp')
                tmp.write_text(format_record(record), encoding='utf-8')
                os.replace(tmp, self._path(name))
        logger.debug(f"Saved contract record {name} to {self._path(name)}")

    def get(self, name: str) -> ContractRecord:
        """
        Get a record by name.

        Raises:
            NotFoundError: If no record exists for the name
        """
        with portalocker.Lock(self._lock_path(name), timeout=self.lock_timeout):
            return self._read_locked(name)

    def list_all(self) -> List[ContractRecord]:
        """
        List all records, sorted by name.

        Files that cannot be parsed are skipped with a warning.
        """
        records = []
        for path in sorted(self.directory.glob("*.abi")):
            try:
                records.append(self.get(path.stem))
            except (RegistryError, NotFoundError) as e:
                logger.warning(f"Skipping unreadable registry entry {path.name}: {e}")
        return records

    def _append_line(self, name: str, key: str, value: str) -> ContractRecord:
        # caller holds both locks
        path = self._path(name)
        with open(path, 'a+b') as f:
            prefix = b""
            if f.seek(0, os.SEEK_END):
                f.seek(-1, os.SEEK_END)
                if f.read(1) != b"\n":
                    prefix = b"\n"
            f.write(prefix + f"{key}{_SEPARATOR}{value}\n".encode('utf-8'))
        return self._read_locked(name)

    def update_deployed_address(self, name: str, address: str) -> ContractRecord:
        """
        Fill in the deployed address of an existing record.

        Only the address line is appended; fields written earlier are kept.

        Raises:
            NotFoundError: If no record exists for the name
            RegistryError: If a different address was already recorded
        """
        with self._name_lock(name):
            with portalocker.Lock(self._lock_path(name), timeout=self.lock_timeout):
                current = self._read_locked(name)
                if current.deployed_address == address:
                    return current
                if current.deployed_address:
                    raise RegistryError(
                        f"Contract {name} already deployed at {current.deployed_address}; "
                        f"use put() to replace the record"
                    )
                record = self._append_line(name, KEY_CONTRACT, address)
        logger.info(f"Recorded deployed address {address} for {name}")
        return record

    def mark_confirmed(self, name: str) -> ContractRecord:
        """
        Flag a record as confirmed on-chain.

        Raises:
            NotFoundError: If no record exists for the name
            RegistryError: If the record has no deployed address yet
        """
        with self._name_lock(name):
            with portalocker.Lock(self._lock_path(name), timeout=self.lock_timeout):
                current = self._read_locked(name)
                if not current.deployed_address:
                    raise RegistryError(f"Contract {name} has no deployed address to confirm")
                if not current.is_pending:
                    return current
                return self._append_line(name, KEY_STATUS, "confirmed")

    def export_record(self, name: str) -> str:
        """Return the ``KEY~VALUE`` text for a record"""
        return format_record(self.get(name))

    def import_record(self, name: str, text: str) -> ContractRecord:
        """
        Store a record given in the ``KEY~VALUE`` layout.

        Raises:
            RegistryError: If the text is not a valid record
        """
        record = parse_record(name, text)
        self.put(name, record)
        return record
