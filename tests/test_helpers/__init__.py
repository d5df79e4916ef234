"""
Fake services for tests: a node, a keys daemon and a compile service
served through requests_mock.
"""
import base64
import hashlib
import json
import urllib.parse
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from contractflow_sdk.signer import LocalSigner

# Test constants used throughout tests
TEST_CHAIN_ID = "mychain"
TEST_NODE_URL = "http://localhost:46657"
TEST_KEYS_URL = "http://localhost:4767"
TEST_COMPILER_URL = "https://compiler.example.com/compile"

ADD_SOURCE = """
contract MyContract {
    function add(int a, int b) constant returns (int sum) {
        sum = a + b;
    }
}
"""

ADD_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "a", "type": "int256"}, {"name": "b", "type": "int256"}],
        "name": "add",
        "outputs": [{"name": "sum", "type": "int256"}],
        "type": "function"
    }
]

# Deployment payload = constructor prefix + runtime code
INIT_CODE = "6006"
RUNTIME_CODE = "60016002600301"
ADD_BYTECODE = bytes.fromhex(INIT_CODE + RUNTIME_CODE)
ADD_SELECTOR = "a5f3c23b"


def _query(request) -> Dict[str, Any]:
    parsed = urllib.parse.parse_qs(urllib.parse.urlparse(request.url).query)
    return {k: json.loads(v[0]) for k, v in parsed.items()}


def _sign_bytes(chain_id: str, body: Dict[str, Any]) -> bytes:
    # Literal layout the node signs over, rebuilt from the wire form
    inp = body["input"]
    return (
        '{"chain_id":"%s","tx":[2,{"address":"%s","data":"%s","fee":%d,"gas_limit":%d,'
        '"input":{"address":"%s","amount":%d,"sequence":%d}}]}' % (
            chain_id, body["address"], body["data"], body["fee"], body["gas_limit"],
            inp["address"], inp["amount"], inp["sequence"],
        )
    ).encode("utf-8")


class FakeChain:
    """
    In-memory node: accounts, block height, broadcast with signature and
    sequence checks, and an `add(int256,int256)` contract for /call.
    """

    def __init__(self, requests_mock, chain_id: str = TEST_CHAIN_ID, node_url: str = TEST_NODE_URL,
                 start_height: int = 5):
        self.chain_id = chain_id
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.height = start_height
        self.pending = False
        self.freeze_height = False
        self.reject_reason: Optional[str] = None
        self.broadcasts = []

        requests_mock.get(f"{node_url}/status", json=self._status)
        requests_mock.get(f"{node_url}/genesis", json=self._genesis)
        requests_mock.get(f"{node_url}/get_account", json=self._get_account)
        requests_mock.get(f"{node_url}/call", json=self._call)
        requests_mock.post(f"{node_url}/", json=self._broadcast)

    def _status(self, request, context):
        if self.pending and not self.freeze_height:
            self.height += 1
            self.pending = False
        return {"jsonrpc": "2.0", "id": "", "result": [1, {"latest_block_height": self.height}], "error": ""}

    def _genesis(self, request, context):
        return {"jsonrpc": "2.0", "id": "", "result": [8, {"genesis": {"chain_id": self.chain_id}}], "error": ""}

    def _get_account(self, request, context):
        address = _query(request)["address"].upper()
        account = self.accounts.get(address)
        if account is not None:
            account = dict(account, address=address)
        return {"jsonrpc": "2.0", "id": "", "result": [3, {"account": account}], "error": ""}

    def _call(self, request, context):
        data = bytes.fromhex(_query(request)["data"])
        if data[:4].hex() != ADD_SELECTOR:
            return {"result": None, "error": "unknown selector"}
        a = int.from_bytes(data[4:36], "big", signed=True)
        b = int.from_bytes(data[36:68], "big", signed=True)
        value = (a + b).to_bytes(32, "big", signed=True).hex().upper()
        return {"jsonrpc": "2.0", "id": "", "result": [0, {"return": value, "gas_used": 0}], "error": ""}

    def _error(self, reason: str) -> Dict[str, Any]:
        return {"jsonrpc": "2.0", "id": "", "result": None, "error": reason}

    def _broadcast(self, request, context):
        body = request.json()
        assert body["method"] == "broadcast_tx"
        tx_type, tx = body["params"][0]
        self.broadcasts.append(tx)
        if self.reject_reason:
            return self._error(self.reject_reason)
        if tx_type != 2:
            return self._error("unknown tx type")

        inp = tx["input"]
        pub = Ed25519PublicKey.from_public_bytes(bytes.fromhex(inp["pub_key"][1]))
        try:
            pub.verify(bytes.fromhex(inp["signature"][1]), _sign_bytes(self.chain_id, tx))
        except InvalidSignature:
            return self._error("Error invalid signature")

        sender = self.accounts.setdefault(inp["address"], {"sequence": 0, "code": ""})
        if inp["sequence"] != sender["sequence"] + 1:
            return self._error(f"Error invalid sequence. Got {inp['sequence']}, expected {sender['sequence'] + 1}")
        sender["sequence"] = inp["sequence"]

        tx_hash = hashlib.sha256(json.dumps(tx, sort_keys=True).encode()).hexdigest()[:40].upper()
        contract_addr = ""
        if tx["address"] == "":
            contract_addr = hashlib.sha256(f"{inp['address']}{inp['sequence']}".encode()).hexdigest()[:40].upper()
            self.accounts[contract_addr] = {"sequence": 0, "code": tx["data"][len(INIT_CODE):]}
        self.pending = True
        receipt = {"tx_hash": tx_hash, "creates_contract": 1 if contract_addr else 0, "contract_addr": contract_addr}
        return {"jsonrpc": "2.0", "id": "", "result": [16, {"receipt": receipt}], "error": ""}


class FakeKeysDaemon:
    """Keys daemon backed by a LocalSigner"""

    def __init__(self, requests_mock, signer: LocalSigner, keys_url: str = TEST_KEYS_URL):
        self.signer = signer
        self.requests = []
        requests_mock.post(f"{keys_url}/sign", json=self._sign)
        requests_mock.post(f"{keys_url}/pub", json=self._pub)

    def _sign(self, request, context):
        body = request.json()
        self.requests.append(body)
        return {"Response": self.signer.sign(body["msg"], body["addr"]), "Error": ""}

    def _pub(self, request, context):
        body = request.json()
        return {"Response": self.signer.public_key(body["addr"]), "Error": ""}


def register_compile_service(requests_mock, abi=None, bytecode: bytes = ADD_BYTECODE,
                             double_escape: bool = True, url: str = TEST_COMPILER_URL):
    """Serve one compile result; the ABI is a JSON string like the real server returns"""
    abi_text = json.dumps(abi if abi is not None else ADD_ABI)
    if double_escape:
        abi_text = json.dumps(abi_text)
    return requests_mock.post(url, json={
        "bytecode": base64.b64encode(bytecode).decode("ascii"),
        "abi": abi_text,
        "error": "",
    })
