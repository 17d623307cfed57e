"""Address-filtered log retrieval.

`FilteredLogFetcher` wraps `RpcHelper.get_logs` with the watched-address
allow-list and keeps running retrieval counters. It does not own the
registry: callers hand it a fresh snapshot through `update_filter`, usually
right before each `fetch_logs`.
"""

from typing import Iterable, List, Optional
from utils.address import normalize_addresses
from utils.exceptions import LogFetchError
from utils.models.data_models import LogFilterStats, LogRecord
from utils.rpc import RpcHelper
from utils.logging import logger


def calculate_filter_efficiency(stats: LogFilterStats) -> float:
    """Percentage of received logs that the filter dropped.

    Returns 0.0 when nothing has been received yet.
    """
    if stats.total_logs_received == 0:
        return 0.0
    return (1.0 - stats.logs_after_filter / stats.total_logs_received) * 100


class FilteredLogFetcher:
    def __init__(self, rpc: RpcHelper, addresses: Iterable[str] = (), filter_enabled: bool = True):
        self._logger = logger.bind(module='FilteredLogFetcher')
        self.rpc = rpc
        self.filter_enabled = filter_enabled
        self._address_filter: List[str] = []
        self.stats = LogFilterStats(filter_enabled=filter_enabled)
        self.update_filter(addresses)

    @property
    def address_filter(self) -> List[str]:
        return list(self._address_filter)

    @property
    def is_constrained(self) -> bool:
        """True when the next fetch will carry an address constraint."""
        return self.filter_enabled and bool(self._address_filter)

    def update_filter(self, addresses: Iterable[str]) -> None:
        """Replace the cached allow-list."""
        self._address_filter = sorted(normalize_addresses(addresses))
        self.stats.contracts_watched = len(self._address_filter)
        self._logger.debug(f"🔄 Updated address filter: {len(self._address_filter)} addresses")

    async def fetch_logs(self, from_block: int, to_block: int) -> List[LogRecord]:
        """Fetch logs for [from_block, to_block] using the cached allow-list.

        With filtering disabled or an empty allow-list the call is issued
        without an address constraint, so an empty watch list never turns
        into an empty result.

        Raises:
            LogFetchError: the underlying RPC call failed
        """
        addresses = self._address_filter if self.is_constrained else None
        try:
            logs = await self.rpc.get_logs(from_block, to_block, addresses=addresses)
        except Exception as e:
            self._logger.error(f"❌ Log fetch failed for blocks {from_block}-{to_block}: {e}")
            raise LogFetchError(from_block, to_block, e) from e

        self._record(from_block, to_block, logs)
        if addresses:
            self._logger.debug(
                f"📥 Fetched {len(logs)} logs from {len(addresses)} contracts (blocks {from_block}-{to_block})"
            )
        else:
            self._logger.debug(f"📥 Fetched {len(logs)} unfiltered logs (blocks {from_block}-{to_block})")
        return logs

    async def fetch_factory_logs(
        self,
        from_block: int,
        to_block: int,
        factory_address: str,
        topic0s: Optional[List[str]] = None,
    ) -> List[LogRecord]:
        """Fetch only the factory's logs, optionally restricted to some topic0 hashes."""
        topics = [topic0s] if topic0s else None
        try:
            return await self.rpc.get_logs(from_block, to_block, addresses=[factory_address], topics=topics)
        except Exception as e:
            self._logger.error(f"❌ Factory log fetch failed for blocks {from_block}-{to_block}: {e}")
            raise LogFetchError(from_block, to_block, e) from e

    async def latest_block(self) -> int:
        return await self.rpc.get_current_block_number()

    def _record(self, from_block: int, to_block: int, logs: List[LogRecord]) -> None:
        self.stats.total_logs_received += len(logs)
        self.stats.blocks_processed += to_block - from_block + 1
        self.stats.filter_enabled = self.filter_enabled

    def record_retained(self, count: int) -> None:
        """Count logs the caller kept after its own membership check on a fetched batch.

        Efficiency only reflects logs that reached this process: whatever the
        node dropped for a constrained call is never seen here.
        """
        self.stats.logs_after_filter += count

    def efficiency(self) -> float:
        return calculate_filter_efficiency(self.stats)
