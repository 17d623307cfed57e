import threading
from typing import FrozenSet, Iterable, List, Set
from utils.address import normalize_address
from utils.exceptions import ConfigurationError, InvalidAddressError
from utils.models.data_models import RegistryStats
from utils.logging import logger


class AddressRegistry:
    """In-memory set of contract addresses whose logs should be indexed.

    The factory and payment addresses are fixed for the lifetime of the
    registry; NFT collection contracts are added at runtime by discovery and
    store sync. Nothing is ever removed.

    All state sits behind one lock. The lock is never held across an await,
    so the registry is safe to share between asyncio tasks and worker threads.
    """

    def __init__(
        self,
        factory_address: str,
        payment_address: str,
        nft_contracts: Iterable[str] = (),
        enabled: bool = True,
    ):
        self._logger = logger.bind(module='AddressRegistry')
        try:
            self._factory_address = normalize_address(factory_address)
            self._payment_address = normalize_address(payment_address)
        except InvalidAddressError as e:
            raise ConfigurationError(f"Invalid fixed contract address: {e}") from e

        self._enabled = enabled
        self._lock = threading.Lock()
        self._nft_contracts: Set[str] = set()

        preloaded = self.add_batch(nft_contracts)
        self._logger.info(
            f"🗂️ Registry ready: factory={self._factory_address} payment={self._payment_address} "
            f"preloaded={preloaded} filtering={'on' if enabled else 'off'}"
        )

    @property
    def factory_address(self) -> str:
        return self._factory_address

    @property
    def payment_address(self) -> str:
        return self._payment_address

    @property
    def enabled(self) -> bool:
        return self._enabled

    def contains(self, address: str) -> bool:
        """True if logs emitted by `address` should be indexed."""
        if not self._enabled:
            return True
        try:
            address = normalize_address(address)
        except InvalidAddressError:
            return False
        if address == self._factory_address or address == self._payment_address:
            return True
        with self._lock:
            return address in self._nft_contracts

    def add(self, address: str) -> bool:
        """Add one NFT contract. Returns False if it was already watched."""
        address = normalize_address(address)
        with self._lock:
            if address in self._nft_contracts:
                return False
            self._nft_contracts.add(address)
            total = len(self._nft_contracts)
        self._logger.info(f"➕ Added NFT contract {address} (total: {total})")
        return True

    def add_batch(self, addresses: Iterable[str]) -> int:
        """Add many NFT contracts, returning how many were new.

        Malformed entries are logged and skipped, the rest of the batch is kept.
        """
        normalized = []
        for address in addresses:
            try:
                normalized.append(normalize_address(address))
            except InvalidAddressError as e:
                self._logger.warning(f"⚠️ Skipping malformed address in batch: {e}")

        with self._lock:
            before = len(self._nft_contracts)
            self._nft_contracts.update(normalized)
            total = len(self._nft_contracts)
        added = total - before

        if added > 0:
            self._logger.info(f"➕ Added {added} new NFT contracts (total: {total})")
        else:
            self._logger.debug(f"No new NFT contracts in batch of {len(normalized)} (total: {total})")
        return added

    def snapshot(self) -> FrozenSet[str]:
        """All watched addresses, fixed roles included."""
        with self._lock:
            members = frozenset(self._nft_contracts)
        return members | {self._factory_address, self._payment_address}

    def get_address_filter(self) -> List[str]:
        """Sorted lowercase addresses for the eth_getLogs `address` parameter."""
        return sorted(self.snapshot())

    def dynamic_count(self) -> int:
        with self._lock:
            return len(self._nft_contracts)

    def stats(self) -> RegistryStats:
        with self._lock:
            count = len(self._nft_contracts)
            watched = len(self._nft_contracts | {self._factory_address, self._payment_address})
        return RegistryStats(
            enabled=self._enabled,
            factory_address=self._factory_address,
            payment_address=self._payment_address,
            dynamic_count=count,
            total_watched=watched,
        )
