#!/usr/bin/env python3
"""Ledger access for the submission pipeline.

The pipeline depends only on the ``LedgerClient`` capabilities below.
``Web3Ledger`` provides them for an EVM chain through web3.py, bound to a
single signing account.
"""

import logging
from typing import Any, Mapping, Protocol

from hexbytes import HexBytes
from web3 import AsyncWeb3, Web3
from web3.contract import AsyncContract

from .models import BridgePayload, NetworkInfo
from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)


class PendingTransaction(Protocol):
    """A transaction accepted by the network but not yet final."""

    transaction_id: str

    async def wait_for_finality(self) -> Mapping[str, Any]: ...


class LedgerClient(Protocol):
    """Capabilities the pipeline needs from a ledger."""

    address: str

    async def get_network_info(self) -> NetworkInfo: ...

    async def get_latest_sequence_number(self) -> int: ...

    async def submit(self, payload: BridgePayload) -> PendingTransaction: ...

    async def query_balance(self, account: str, asset: str | None = None) -> int: ...

    async def query_authorization(self, account: str, asset: str, spender: str) -> int: ...

    async def grant_authorization(self, spender: str, amount: int) -> PendingTransaction: ...


class Web3PendingTransaction:
    """Pending EVM transaction waited on through ``wait_for_transaction_receipt``."""

    def __init__(self, w3: AsyncWeb3, tx_hash: HexBytes, timeout: float) -> None:
        self.w3 = w3
        self.tx_hash = tx_hash
        self.timeout = timeout
        self.transaction_id: str = Web3.to_hex(tx_hash)

    async def wait_for_finality(self) -> Mapping[str, Any]:
        return await self.w3.eth.wait_for_transaction_receipt(self.tx_hash, timeout=self.timeout)


class Web3Ledger:
    """EVM ledger client for one signing account."""

    def __init__(
        self,
        contract_util: ContractUtility,
        bridge_address: str,
        asset_address: str,
        receipt_timeout: float = 180.0
    ) -> None:
        """
        Initialize the Web3Ledger.

        Args:
            contract_util: Contract utility holding the signing AsyncWeb3 instance
            bridge_address: Address of the UCS03 bridge contract
            asset_address: Address of the funding ERC20 asset
            receipt_timeout: Seconds to wait for a transaction receipt
        """
        if contract_util.w3 is None or contract_util.account is None:
            raise ValueError("Web3Ledger needs a ContractUtility with a signing account")

        self.contract_util = contract_util
        self.w3: AsyncWeb3 = contract_util.w3
        self.address: str = contract_util.account.address
        self.asset_address = Web3.to_checksum_address(asset_address)
        self.receipt_timeout = receipt_timeout

        self.bridge: AsyncContract = self.w3.eth.contract(
            address=Web3.to_checksum_address(bridge_address),
            abi=contract_util.get_contract_abi("UCS03")
        )
        self.erc20_abi: list[dict[str, Any]] = contract_util.get_contract_abi("ERC20")

    @classmethod
    def from_key(
        cls,
        rpc_url: str,
        private_key: str,
        bridge_address: str,
        asset_address: str,
        receipt_timeout: float = 180.0,
        request_timeout: float = 30.0
    ) -> "Web3Ledger":
        contract_util = ContractUtility(rpc_url=rpc_url, secret=private_key, request_timeout=request_timeout)
        return cls(contract_util, bridge_address, asset_address, receipt_timeout)

    def _token(self, asset: str) -> AsyncContract:
        return self.w3.eth.contract(address=Web3.to_checksum_address(asset), abi=self.erc20_abi)

    async def get_network_info(self) -> NetworkInfo:
        chain_id = await self.w3.eth.chain_id
        return NetworkInfo(chain_id=int(chain_id))

    async def get_latest_sequence_number(self) -> int:
        return int(await self.w3.eth.block_number)

    async def submit(self, payload: BridgePayload) -> Web3PendingTransaction:
        tx_hash: HexBytes = await self.bridge.functions.send(*payload.to_args()).transact(
            {'from': self.address}
        )
        logger.debug(f"Bridge send accepted: {Web3.to_hex(tx_hash)}")
        return Web3PendingTransaction(self.w3, tx_hash, self.receipt_timeout)

    async def query_balance(self, account: str, asset: str | None = None) -> int:
        account = Web3.to_checksum_address(account)
        if asset is None:
            return int(await self.w3.eth.get_balance(account))
        return int(await self._token(asset).functions.balanceOf(account).call())

    async def query_authorization(self, account: str, asset: str, spender: str) -> int:
        return int(await self._token(asset).functions.allowance(
            Web3.to_checksum_address(account),
            Web3.to_checksum_address(spender)
        ).call())

    async def grant_authorization(self, spender: str, amount: int) -> Web3PendingTransaction:
        tx_hash: HexBytes = await self._token(self.asset_address).functions.approve(
            Web3.to_checksum_address(spender),
            amount
        ).transact({'from': self.address})
        logger.debug(f"Approval accepted: {Web3.to_hex(tx_hash)}")
        return Web3PendingTransaction(self.w3, tx_hash, self.receipt_timeout)
