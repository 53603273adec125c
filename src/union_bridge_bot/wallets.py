"""
Wallet loading for the bridge bot.

Wallets come from a ``wallet.json`` file of the form::

    {"wallets": [{"name": "main", "privatekey": "0x...", "babylonAddress": "bbn1..."}]}

Entries with a missing or malformed key are skipped with a warning.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from eth_account import Account

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WalletEntry:
    """A funding identity loaded from the wallet file.

    Attributes:
        name: Display name
        private_key: 0x-prefixed 64 hex character secret
        babylon_address: Receiver on Babylon, if the wallet bridges there
    """
    name: str
    private_key: str
    babylon_address: str | None = None

    @property
    def address(self) -> str:
        return Account.from_key(self.private_key).address

    def __repr__(self) -> str:
        return f"WalletEntry(name={self.name!r}, private_key='[HIDDEN]')"


def normalize_private_key(key: str) -> str:
    """
    Validate a private key and return it with a 0x prefix.

    Raises:
        ValueError: If the key is not 64 hexadecimal characters
    """
    key = key.strip()
    bare = key[2:] if key.startswith('0x') else key

    if len(bare) != 64:
        raise ValueError(
            f"Invalid private key length. Expected 64 hex characters, got {len(bare)}"
        )
    try:
        int(bare, 16)
    except ValueError:
        raise ValueError("Invalid private key format. Must be hexadecimal") from None

    return f"0x{bare}"


def load_wallets(path: str | Path) -> list[WalletEntry]:
    """
    Load and validate wallets from a JSON file.

    Args:
        path: Location of the wallet file

    Returns:
        Valid wallet entries in file order

    Raises:
        ConfigurationError: If the file is missing, unreadable or holds no valid wallet
    """
    wallet_path = Path(path)
    if not wallet_path.exists():
        raise ConfigurationError(f"{wallet_path.name} not found")

    try:
        with wallet_path.open() as file:
            data = json.load(file)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Error loading {wallet_path.name}: {e}") from e

    entries = data.get('wallets', []) if isinstance(data, dict) else []

    wallets: list[WalletEntry] = []
    for index, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            logger.warning(f"Skipping wallet {index}: entry is not an object")
            continue
        name = entry.get('name') or f"Wallet {index}"
        raw_key = entry.get('privatekey')
        if not raw_key:
            logger.warning(f"Skipping wallet {name}: Missing private key")
            continue
        try:
            private_key = normalize_private_key(raw_key)
        except ValueError as e:
            logger.warning(f"Skipping wallet {name}: {e}")
            continue
        wallets.append(WalletEntry(
            name=name,
            private_key=private_key,
            babylon_address=entry.get('babylonAddress'),
        ))

    if not wallets:
        raise ConfigurationError("No valid wallets found")

    logger.info(f"Loaded {len(wallets)} wallet(s) from {wallet_path}")
    return wallets
