"""WalletApp - wires configuration, storage, chain access and services together."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from token_wallet.config import AppConfig, get_root_dir, load_config, resolve_path
from token_wallet.services.access import Part4ValidationService, PartValidationService
from token_wallet.services.erc20 import Erc20Service
from token_wallet.services.route import ROUTES, RouteService
from token_wallet.storage.local import LocalStorage
from token_wallet.wallet.keystore import KeyService
from token_wallet.wallet.provider import Web3Service

logger = logging.getLogger("token_wallet.core.wallet_app")

WIZARD_KEY = "bcg-wizard"


class WalletApp:
    """Everything one wallet directory needs, built explicitly."""

    def __init__(
        self,
        config: AppConfig,
        root_dir: Path,
        storage: LocalStorage,
        web3_service: Web3Service | None = None,
    ) -> None:
        self.config = config
        self.root_dir = root_dir
        self.storage = storage
        self.network = config.network.resolve()

        self.key_service = KeyService(resolve_path(root_dir, config.wallet.keystore_dir))
        self.web3_service = web3_service or Web3Service(
            self.network, poll_interval=config.network.event_poll_interval
        )
        self.erc20_service = Erc20Service(
            self.key_service,
            self.web3_service,
            storage,
            self.network,
            storage_key=config.storage.token_key,
        )

        self.route_service = RouteService()
        self.parts: dict[int, PartValidationService] = {
            part: PartValidationService(part) for part in (1, 2, 3)
        }
        self.part4_validation_service = Part4ValidationService(
            self.parts[2], self.parts[3], self.route_service
        )

    @classmethod
    async def load(
        cls,
        base_path: Path | None = None,
        *,
        restore_tokens: bool = True,
        web3_service: Web3Service | None = None,
    ) -> WalletApp:
        """Load the wallet from a ``.token-wallet`` directory.

        A missing config file means defaults. With *restore_tokens* the saved
        token list is restored and enrichment starts in the background.
        """
        root_dir = get_root_dir(base_path)
        config = load_config(root_dir / "config.yaml")
        storage = LocalStorage(resolve_path(root_dir, config.storage.db_file))
        await storage.connect()

        app = cls(config=config, root_dir=root_dir, storage=storage, web3_service=web3_service)
        await app.load_wizard_progress()
        if restore_tokens:
            await app.erc20_service.load()
        return app

    # ------------------------------------------------------------------
    # Wizard progress
    # ------------------------------------------------------------------

    async def load_wizard_progress(self) -> None:
        raw = await self.storage.get_item(WIZARD_KEY)
        if not raw:
            return
        try:
            completed = {int(part) for part in json.loads(raw)}
        except (ValueError, TypeError):
            logger.warning("Error while parsing wizard progress. Resetting now...")
            await self.storage.remove_item(WIZARD_KEY)
            return
        for part, validator in self.parts.items():
            validator.part_complete = part in completed

    async def save_wizard_progress(self) -> None:
        completed = sorted(p for p, v in self.parts.items() if v.part_complete)
        await self.storage.set_item(WIZARD_KEY, json.dumps(completed))

    async def complete_part(self, part: int) -> None:
        if part not in self.parts:
            raise KeyError(f"Part {part} has no completion flag. Available: {sorted(self.parts)}")
        self.parts[part].mark_complete()
        await self.save_wizard_progress()

    async def reset_wizard(self) -> None:
        for validator in self.parts.values():
            validator.reset()
        self.route_service.navigate(ROUTES[1])
        await self.save_wizard_progress()

    def enter_part(self, part: int) -> bool:
        """Try to navigate to a wizard part. Returns whether it was allowed."""
        if part == 4 and not self.part4_validation_service.can_activate():
            return False
        self.route_service.navigate_to_part(part)
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Clean shutdown."""
        await self.erc20_service.aclose()
        await self.storage.close()
