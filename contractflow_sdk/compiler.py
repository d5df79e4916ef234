"""
Client for the remote contract compile service.
"""
import base64
import binascii
import json
import logging
import re
from typing import Any, Dict, List, Optional, Union

import requests

from ._http import build_session, json_or_none, summarize, validate_url
from .exceptions import CompileError
from .models import CompiledArtifact, ContractSource

_CONTRACT_NAME_RE = re.compile(r'\bcontract\s+([A-Za-z_][A-Za-z0-9_]*)')


def parse_contract_source(code: str) -> ContractSource:
    """
    Pick the contract name out of source text.

    Args:
        code: Contract source text

    Returns:
        ContractSource with the first declared contract name

    Raises:
        CompileError: If the text declares no contract
    """
    match = _CONTRACT_NAME_RE.search(code or "")
    if not match:
        raise CompileError("No 'contract <Name>' declaration found in source")
    return ContractSource(name=match.group(1), code=code)


def parse_abi(raw: Union[str, List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """
    Parse the ABI returned by the compile service.

    The service sometimes escapes the ABI JSON twice. Exactly one corrective
    unescape pass is applied before the final parse.

    Raises:
        CompileError: If the ABI cannot be turned into a list of entries
    """
    if isinstance(raw, list):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise CompileError(f"Compile service returned no ABI: {summarize(raw)}")

    text = raw.strip()
    try:
        parsed: Any = json.loads(text)
    except ValueError:
        parsed = None

    if isinstance(parsed, list):
        return parsed

    # single corrective pass: either a JSON string wrapping the JSON, or bare escaped quotes
    if isinstance(parsed, str):
        text = parsed
    else:
        text = text.replace('\\"', '"')

    try:
        parsed = json.loads(text)
    except ValueError as e:
        raise CompileError(f"Invalid ABI from compile service: {str(e)}")
    if not isinstance(parsed, list):
        raise CompileError(f"ABI must be a list of entries, got {type(parsed).__name__}")
    return parsed


class CompilerClient:
    """
    Turns contract source into bytecode and an ABI via the compile service.

    No retries happen here beyond the transport-level ones; whether to try
    again after a CompileError is the caller's decision.
    """

    def __init__(
        self,
        compiler_url: str,
        language: str = "sol",
        source_field: str = "source",
        retry_count: int = 3,
        timeout: int = 30,
        allow_insecure: bool = False,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the compiler client

        Args:
            compiler_url: Full URL of the compile endpoint
            language: Language tag sent with every request
            source_field: Request field carrying the base64 source ("script" on older servers)
            retry_count: Number of retries for HTTP requests
            timeout: Timeout for HTTP requests in seconds
            allow_insecure: Accept plain http:// for non-local hosts
            session: Optional pre-configured requests session
            logger: Optional logger instance
        """
        self.compiler_url = validate_url("compiler_url", compiler_url, allow_insecure)
        self.language = language
        self.source_field = source_field
        self.timeout = timeout
        self.session = session or build_session(retry_count)
        self.logger = logger or logging.getLogger(__name__)

    def compile(self, source: Union[ContractSource, str]) -> CompiledArtifact:
        """
        Compile contract source.

        Args:
            source: ContractSource or raw source text

        Returns:
            CompiledArtifact with raw bytecode and parsed ABI

        Raises:
            CompileError: On transport failure, an error reply, or an unusable artifact
        """
        if isinstance(source, str):
            source = parse_contract_source(source)

        request = {
            "name": source.name,
            "language": self.language,
            self.source_field: base64.b64encode(source.code.encode('utf-8')).decode('ascii'),
        }
        self.logger.debug(f"Compiling {source.name} ({len(source.code)} chars) via {self.compiler_url}")

        try:
            response = self.session.post(self.compiler_url, json=request, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            self.logger.error(f"Compile request failed: {e}")
            raise CompileError(f"Compile request to {self.compiler_url} failed: {str(e)}") from e

        result = json_or_none(response)
        if not isinstance(result, dict):
            raise CompileError(f"Invalid JSON response from compile service: {summarize(response.text)}")

        if result.get("error"):
            raise CompileError(f"Compile service reported an error for {source.name}: {result['error']}")

        encoded = result.get("bytecode")
        if not encoded:
            raise CompileError(f"Missing bytecode in compile response: {summarize(result)}")
        try:
            bytecode = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise CompileError(f"Bytecode is not valid base64: {str(e)}") from e
        if not bytecode:
            raise CompileError("Compile service returned empty bytecode")

        abi = parse_abi(result.get("abi"))
        self.logger.info(f"Compiled {source.name}: {len(bytecode)} bytes, {len(abi)} ABI entries")
        return CompiledArtifact(name=source.name, bytecode=bytecode, abi=abi)
