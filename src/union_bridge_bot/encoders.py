"""
Payload encoders for the UCS03 bridge.

Each destination route has its own wire format for the transferred asset.
Encoders turn a TransferRequest into the Instruction the bridge contract's
``send`` call expects, keeping those formats out of the submission pipeline.
"""

import logging
from typing import Protocol

from eth_abi import encode
from web3 import Web3

from .config import BotConfig, DestinationConfig
from .models import Instruction, TransferRequest

logger = logging.getLogger(__name__)

# UCS03 instruction versions and opcodes
BATCH_VERSION = 0
OP_BATCH = 2
FUNGIBLE_ASSET_ORDER_VERSION = 1
OP_FUNGIBLE_ASSET_ORDER = 3

FUNGIBLE_ASSET_ORDER_TYPES = [
    "bytes",    # sender
    "bytes",    # receiver
    "bytes",    # baseToken
    "uint256",  # baseAmount
    "string",   # baseTokenSymbol
    "string",   # baseTokenName
    "uint8",    # baseTokenDecimals
    "uint256",  # baseTokenPath
    "bytes",    # quoteToken
    "uint256",  # quoteAmount
]
INSTRUCTION_TYPE = "(uint8,uint8,bytes)"


class PayloadEncoder(Protocol):
    """Builds the bridge instruction for one transfer."""

    def encode(self, request: TransferRequest) -> Instruction: ...


class FungibleAssetOrderEncoder:
    """
    Encodes a transfer as a batch holding one fungible asset order.

    The order moves ``request.amount`` of the base token and asks for the
    same quote amount on the destination, with addresses passed as raw bytes.
    """

    def __init__(
        self,
        base_token: str,
        quote_token: str,
        symbol: str = "USDC",
        name: str = "USDC",
        decimals: int = 6,
        path: int = 0
    ) -> None:
        self.base_token = Web3.to_checksum_address(base_token)
        self.quote_token = quote_token
        self.symbol = symbol
        self.name = name
        self.decimals = decimals
        self.path = path

    def receiver_bytes(self, destination: str) -> bytes:
        return Web3.to_bytes(hexstr=destination)

    def quote_token_bytes(self) -> bytes:
        return Web3.to_bytes(hexstr=self.quote_token)

    def order_operand(self, request: TransferRequest) -> bytes:
        """ABI-encode the fungible asset order fields."""
        return encode(
            FUNGIBLE_ASSET_ORDER_TYPES,
            [
                Web3.to_bytes(hexstr=request.sender),
                self.receiver_bytes(request.destination),
                Web3.to_bytes(hexstr=self.base_token),
                request.amount,
                self.symbol,
                self.name,
                self.decimals,
                self.path,
                self.quote_token_bytes(),
                request.amount,
            ]
        )

    def encode(self, request: TransferRequest) -> Instruction:
        order = (FUNGIBLE_ASSET_ORDER_VERSION, OP_FUNGIBLE_ASSET_ORDER, self.order_operand(request))
        operand = encode([f"{INSTRUCTION_TYPE}[]"], [[order]])
        return Instruction(version=BATCH_VERSION, opcode=OP_BATCH, operand=operand)


class BabylonOrderEncoder(FungibleAssetOrderEncoder):
    """
    Fungible asset order towards a Cosmos chain.

    The receiver and the quote token are bech32 strings, carried as their
    UTF-8 bytes.
    """

    # TODO: check this layout against a transfer indexed by the Union explorer before relying on it
    def receiver_bytes(self, destination: str) -> bytes:
        if not destination.startswith("bbn1"):
            raise ValueError(f"Invalid Babylon receiver address: {destination}")
        return destination.encode("utf-8")

    def quote_token_bytes(self) -> bytes:
        return self.quote_token.encode("utf-8")


def encoder_for(destination: DestinationConfig, asset_address: str) -> PayloadEncoder:
    """Pick the encoder matching a destination's receiver format."""
    match destination.receiver_kind:
        case 'bech32':
            return BabylonOrderEncoder(base_token=asset_address, quote_token=destination.quote_token)
        case _:
            return FungibleAssetOrderEncoder(base_token=asset_address, quote_token=destination.quote_token)


def build_encoders(config: BotConfig) -> dict[int, PayloadEncoder]:
    """
    Build one encoder per configured destination.

    Args:
        config: Bot configuration

    Returns:
        Encoders keyed by channel id
    """
    encoders = {
        channel_id: encoder_for(dest, config.network.asset_address)
        for channel_id, dest in config.destinations.items()
    }
    logger.debug(f"Encoders registered for channels {sorted(encoders)}")
    return encoders
