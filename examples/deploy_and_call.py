#!/usr/bin/env python3
"""
Deploy a contract and call it with the contractflow SDK.
"""
import os
import sys

from contractflow_sdk import ClientConfig, ContractClient, ContractFlowError, ContractSource

SOURCE = """
contract MyContract {
    function add(int a, int b) constant returns (int sum) {
        sum = a + b;
    }
}
"""


def main():
    """
    Demonstrate basic usage of the ContractClient.

    This example shows how to:
    1. Build a configuration from the "local" network profile
    2. Compile and deploy a contract, waiting for confirmation
    3. Call a function with a transaction and with a simulated call
    """
    # Read configuration from environment
    DEPLOYER = os.environ.get("DEPLOYER_ADDRESS")
    if not DEPLOYER:
        print("ERROR: DEPLOYER_ADDRESS environment variable is required")
        return 1

    config = ClientConfig.from_network(os.environ.get("CONTRACTFLOW_NETWORK", "local"))
    client = ContractClient(config)

    try:
        client.assert_chain_id()
        result = client.deploy(ContractSource(name="MyContract", code=SOURCE), DEPLOYER)
        print(f"Deployed MyContract at {result.record.deployed_address} (height {result.confirmed_height})")
        print(f"Bytecode verification: {'passed' if result.verification.passed else 'FAILED'}")

        print(f"add(25, 37) via transaction = {client.call('MyContract', 'add', [25, 37])}")
        print(f"add(-5, 16) via simulated call = {client.query('MyContract', 'add', ['-5', '0x10'])}")
    except ContractFlowError as e:
        print(f"Error: {str(e)}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
