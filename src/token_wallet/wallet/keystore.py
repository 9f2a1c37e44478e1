"""Key provider: the wallet's encrypted keystore and its active account."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from eth_account import Account
from web3 import Web3

logger = logging.getLogger("token_wallet.wallet.keystore")

KEYSTORE_FILE = "keystore.json"


class KeyService:
    """Owns the single keystore file in *wallet_dir*.

    The address is read from the keystore without the password; only
    :meth:`get_private_key` needs it.
    """

    def __init__(self, wallet_dir: Path) -> None:
        self.wallet_dir = Path(wallet_dir)

    @property
    def keystore_path(self) -> Path:
        return self.wallet_dir / KEYSTORE_FILE

    def has_wallet(self) -> bool:
        return self.keystore_path.exists()

    def create(self, password: str) -> str:
        """Generate a keypair, store it encrypted, return its address.

        Raises ``FileExistsError`` rather than overwrite an existing keystore.
        """
        if self.has_wallet():
            raise FileExistsError(
                f"Wallet already exists at {self.keystore_path}. "
                "Delete it first if you want to create a new one."
            )
        account = Account.create()
        self.wallet_dir.mkdir(parents=True, exist_ok=True)
        self.keystore_path.write_text(
            json.dumps(Account.encrypt(account.key, password), indent=2),
            encoding="utf-8",
        )
        logger.info(f"Created wallet {account.address}")
        return account.address

    def get_address(self) -> str:
        """Checksummed address of the active account.

        Raises ``RuntimeError`` if no keystore exists yet.
        """
        if not self.has_wallet():
            raise RuntimeError("No wallet found. Run 'token-wallet wallet create' first.")
        address = self._read_keystore().get("address", "")
        if not address.startswith("0x"):
            address = "0x" + address
        return Web3.to_checksum_address(address)

    def get_private_key(self, password: str) -> bytes:
        if not self.has_wallet():
            raise FileNotFoundError(f"No keystore found at {self.keystore_path}")
        try:
            return Account.decrypt(self._read_keystore(), password)
        except Exception as exc:
            raise ValueError(f"Failed to decrypt keystore: {exc}") from exc

    def _read_keystore(self) -> dict[str, Any]:
        return json.loads(self.keystore_path.read_text(encoding="utf-8"))
