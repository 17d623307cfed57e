import asyncio
from typing import Optional
from utils.exceptions import InvalidAddressError
from utils.models.data_models import ContractDocument
from utils.models.settings_model import SyncConfig
from utils.redis.contract_store import ContractSource
from utils.registry import AddressRegistry
from utils.logging import logger


class RegistrySync:
    """Keeps the registry in step with the authoritative contract store.

    Sync is add-only: contracts that later disappear from the store, or get
    marked inactive, stay watched until the process restarts.
    """

    def __init__(self, registry: AddressRegistry, config: SyncConfig):
        self._logger = logger.bind(module='RegistrySync')
        self.registry = registry
        self.config = config
        self.syncs_ok = 0
        self.syncs_failed = 0

    async def sync_once(self, source: ContractSource) -> Optional[Exception]:
        """Merge the store's address list into the registry.

        Failures are logged and returned, never raised.
        """
        try:
            addresses = await source.get_contract_addresses()
        except Exception as e:
            self.syncs_failed += 1
            self._logger.error(f"❌ Failed to fetch NFT contracts from store: {e}")
            return e

        added = self.registry.add_batch(addresses)
        self.syncs_ok += 1
        if addresses:
            self._logger.info(f"🔄 Synced {len(addresses)} NFT contracts from store ({added} new)")
        return None

    async def run_loop(self, stop_event: asyncio.Event, source: ContractSource) -> None:
        """Sync immediately, then every `interval_seconds` until `stop_event` is set."""
        if not self.config.enabled:
            self._logger.info("⏸️ Contract store sync is disabled")
            return

        interval = self.config.interval_seconds
        self._logger.info(f"🚀 Starting contract store sync (interval: {interval}s)")
        while not stop_event.is_set():
            await self.sync_once(source)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
        self._logger.info("🛑 Contract store sync stopped")

    async def handle_contract_change(self, doc: ContractDocument) -> None:
        if doc.is_deleted:
            self._logger.debug(f"Ignoring deleted contract {doc.contract_address}")
            return
        try:
            self.registry.add(doc.contract_address)
        except InvalidAddressError as e:
            self._logger.warning(f"⚠️ Ignoring change event with bad address: {e}")

    async def run_watch(self, stop_event: asyncio.Event, source) -> None:
        """Follow the store's change stream, restarting it after failures until stopped."""
        if not self.config.enabled or not self.config.watch_changes:
            self._logger.info("⏸️ Contract change watch is disabled")
            return
        if not hasattr(source, 'watch_contracts'):
            self._logger.warning(f"⚠️ {type(source).__name__} does not support change watching")
            return

        while not stop_event.is_set():
            try:
                await source.watch_contracts(stop_event, self.handle_contract_change)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._logger.error(
                    f"❌ Contract change watch failed: {e}. Restarting in {self.config.watch_retry_seconds}s"
                )
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self.config.watch_retry_seconds)
                except asyncio.TimeoutError:
                    pass
