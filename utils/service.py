import asyncio
from typing import List, Optional
from redis import asyncio as aioredis
from utils.discovery import ContractDiscovery, get_event_signatures
from utils.exceptions import ContractSourceError
from utils.filtered_rpc import FilteredLogFetcher
from utils.models.data_models import ContractCreatedEvent, ContractDocument, RangeResult, ServiceStats
from utils.models.settings_model import Settings
from utils.redis.contract_store import RedisContractSource
from utils.redis.redis_conn import RedisPool
from utils.registry import AddressRegistry
from utils.rpc import RpcHelper
from utils.sync import RegistrySync
from utils.logging import logger


class ContractFilterService:
    """Wires registry, discovery, store sync and filtered retrieval together.

    The surrounding indexer decides which block ranges to scan and calls
    `process_range` for each; this service keeps the watch list current in
    the background between those calls.
    """

    def __init__(self, settings: Settings, rpc_helper: Optional[RpcHelper] = None):
        self.settings = settings
        self._logger = logger.bind(module='ContractFilterService')
        self._logger.info(f"🔧 Initializing contract filter for namespace: {settings.namespace} (chain {settings.chain_id})")

        contracts = settings.contracts
        self.registry = AddressRegistry(
            factory_address=contracts.factory_address,
            payment_address=contracts.payment_address,
            nft_contracts=contracts.nft_contracts,
            enabled=settings.filter.enabled,
        )
        self.discovery = ContractDiscovery(self.registry)
        self.rpc_helper = rpc_helper or RpcHelper(settings.rpc)
        self.fetcher = FilteredLogFetcher(
            self.rpc_helper,
            self.registry.get_address_filter(),
            filter_enabled=settings.filter.enabled,
        )
        self.sync = RegistrySync(self.registry, settings.sync)
        self.source: Optional[RedisContractSource] = None

        self._stop_event = asyncio.Event()
        self._tasks: List[asyncio.Task] = []

        self._logger.info(f"🔍 Auto-discovery: {'on' if settings.filter.auto_discovery else 'off'}")
        self._logger.info(
            f"⏱️ Store sync: {'every ' + str(settings.sync.interval_seconds) + 's' if settings.sync.enabled else 'off'}"
        )

    async def init(self, redis: Optional[aioredis.Redis] = None):
        """Connect to the contract store."""
        try:
            redis = redis or await RedisPool.get_pool(self.settings.redis)
            self.source = RedisContractSource(
                redis,
                namespace=self.settings.namespace,
                chain_id=self.settings.chain_id,
                network=self.settings.network,
            )
            self._logger.info("🚀 ContractFilterService initialized successfully.")
        except Exception as e:
            self._logger.critical(f"❌ Failed to initialize ContractFilterService: {e}")
            raise

    async def start(self):
        """Start store sync (and the change watch, if configured) as background tasks."""
        if any(not task.done() for task in self._tasks):
            self._logger.warning("⚠️ Background tasks already running, ignoring start()")
            return
        if self.source is None:
            await self.init()
        self._stop_event.clear()
        self._tasks = [
            asyncio.create_task(self.sync.run_loop(self._stop_event, self.source), name='contract-sync'),
            asyncio.create_task(self.sync.run_watch(self._stop_event, self.source), name='contract-watch'),
        ]

    async def wait(self):
        """Block until the background tasks finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks)

    async def stop(self):
        """Signal background tasks to stop and wait for in-flight work to finish."""
        self._stop_event.set()
        await self.wait()
        self._tasks = []

    async def process_range(self, from_block: int, to_block: int) -> RangeResult:
        """Fetch, discover and filter the logs of one inclusive block range.

        Fetch errors propagate as LogFetchError; the caller owns the retry policy.
        """
        self.fetcher.update_filter(self.registry.get_address_filter())
        logs = await self.fetcher.fetch_logs(from_block, to_block)

        discovered: List[ContractCreatedEvent] = []
        if self.settings.filter.auto_discovery:
            if self.discovery.parse_batch(logs):
                discovered = list(self.discovery.last_events)
                await self._persist_discovered(discovered)

        kept = [log for log in logs if self.registry.contains(log.address)]
        self.fetcher.record_retained(len(kept))
        self._logger.info(
            f"📦 Blocks {from_block}-{to_block}: {len(kept)}/{len(logs)} logs kept, "
            f"{len(discovered)} contract creations"
        )
        return RangeResult(
            from_block=from_block,
            to_block=to_block,
            logs=kept,
            discovered=discovered,
            total_fetched=len(logs),
        )

    async def backfill(self, from_block: int, to_block: int) -> int:
        """Discover contracts from the factory's historical logs over a block range."""
        logs = await self.fetcher.fetch_factory_logs(
            from_block,
            to_block,
            self.registry.factory_address,
            get_event_signatures(),
        )
        count = self.discovery.backfill(logs)
        await self._persist_discovered(self.discovery.last_events)
        return count

    async def _persist_discovered(self, events: List[ContractCreatedEvent]) -> None:
        if not self.settings.filter.persist_discovered or self.source is None:
            return
        for event in events:
            doc = ContractDocument(
                contract_address=event.contract_address,
                collection_id=event.collection_id,
                creator=event.creator,
                name=event.name or '',
                symbol=event.symbol or '',
                base_uri=event.base_uri or '',
                chain_id=self.settings.chain_id,
                network=self.settings.network,
                status='active',
            )
            try:
                await self.source.upsert_contract(doc)
            except ContractSourceError as e:
                self._logger.error(f"❌ Failed to persist discovered contract {event.contract_address}: {e}")

    def stats(self) -> ServiceStats:
        return ServiceStats(
            registry=self.registry.stats(),
            discovery=self.discovery.stats.model_copy(),
            fetch=self.fetcher.stats.model_copy(),
            filter_efficiency=self.fetcher.efficiency(),
            auto_discovery=self.settings.filter.auto_discovery,
            sync_enabled=self.settings.sync.enabled,
        )

    async def close(self):
        await self.stop()
        await self.rpc_helper.close()
