import json
from pathlib import Path

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.middleware import SignAndSendRawMiddlewareBuilder


class ContractUtility:
    """
    Utility for contract interaction and ABI loading.

    Can be used in two modes:
    1. Full mode: Initialize with an RPC URL and secret to sign transactions
    2. ABI-only mode: Initialize with empty strings to just load ABIs
    """

    CONTRACTS_DIR = Path(__file__).resolve().parent.parent / "contracts"

    def __init__(self, rpc_url: str = "", secret: str = "", request_timeout: float = 30.0):
        """
        Initialize the ContractUtility.

        Args:
            rpc_url: HTTP RPC endpoint (optional for ABI-only mode)
            secret: Private key of the signing account (optional for ABI-only mode)
            request_timeout: Timeout in seconds for each RPC request
        """
        if rpc_url and secret:
            self.rpc_url = rpc_url
            self.account: LocalAccount | None = Account.from_key(secret)
            self.w3 = self.setup_web3_middleware(self.account, request_timeout)
        else:
            # ABI-only mode - no network connection needed
            self.rpc_url = None
            self.account = None
            self.w3 = None

    def setup_web3_middleware(self, account: LocalAccount, request_timeout: float) -> AsyncWeb3:
        provider = AsyncWeb3.AsyncHTTPProvider(
            self.rpc_url,
            request_kwargs={'timeout': request_timeout}
        )
        w3 = AsyncWeb3(provider)
        w3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(account))
        w3.eth.default_account = account.address
        return w3

    def get_contract_abi(self, contract_name: str) -> list:
        """Fetches ABI of the given contract from the bundled contracts folder"""
        contract_path = (self.CONTRACTS_DIR / f"{contract_name}.json").resolve()

        with contract_path.open() as file:
            contract_data = json.load(file)

        return contract_data["abi"]
