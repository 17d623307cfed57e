"""Authoritative NFT contract store backed by a Redis hash.

Layout: one hash per (namespace, chain id), field = lowercase contract
address, value = ContractDocument JSON. Every upsert is also published on a
pub/sub channel so that watchers can react without waiting for the next poll.
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Protocol, runtime_checkable
from pydantic import ValidationError
from redis import asyncio as aioredis
from redis.exceptions import RedisError
from utils.address import normalize_address
from utils.exceptions import ContractSourceError, InvalidAddressError
from utils.models.data_models import ContractDocument, ContractStoreStats
from utils.redis.redis_keys import nft_contracts_htable_key, nft_contracts_updates_channel
from utils.logging import logger

ContractHandler = Callable[[ContractDocument], Awaitable[None]]


@runtime_checkable
class ContractSource(Protocol):
    """Anything that can list the addresses the authoritative system considers valid."""

    async def get_contract_addresses(self) -> List[str]:
        ...


class RedisContractSource:
    def __init__(self, redis: aioredis.Redis, namespace: str, chain_id: int, network: str = ''):
        self._redis = redis
        self.namespace = namespace
        self.chain_id = chain_id
        self.network = network
        self.key = nft_contracts_htable_key(namespace, chain_id)
        self.channel = nft_contracts_updates_channel(namespace, chain_id)
        self._logger = logger.bind(module='RedisContractSource')

    def _decode(self, field: str, raw: str) -> Optional[ContractDocument]:
        try:
            doc = ContractDocument.model_validate_json(raw)
            doc.contract_address = normalize_address(doc.contract_address)
            return doc
        except (ValidationError, InvalidAddressError) as e:
            self._logger.warning(f"⚠️ Failed to decode contract document '{field}' in {self.key}: {e}")
            return None

    async def _load_documents(self) -> List[ContractDocument]:
        try:
            entries = await self._redis.hgetall(self.key)
        except RedisError as e:
            raise ContractSourceError(f"Failed to read {self.key}: {e}") from e
        docs = []
        for field, raw in entries.items():
            doc = self._decode(field, raw)
            if doc is not None:
                docs.append(doc)
        return docs

    async def get_contract_addresses(self) -> List[str]:
        """Addresses of every contract not marked deleted."""
        docs = await self._load_documents()
        return [doc.contract_address for doc in docs if not doc.is_deleted]

    async def get_active_contracts(self) -> List[ContractDocument]:
        """Contracts with status 'active', newest first."""
        docs = [doc for doc in await self._load_documents() if doc.status == 'active']
        docs.sort(key=lambda d: d.created_at.timestamp() if d.created_at else 0.0, reverse=True)
        return docs

    async def get_contract(self, address: str) -> Optional[ContractDocument]:
        address = normalize_address(address)
        try:
            raw = await self._redis.hget(self.key, address)
        except RedisError as e:
            raise ContractSourceError(f"Failed to read {address} from {self.key}: {e}") from e
        if raw is None:
            return None
        return self._decode(address, raw)

    async def upsert_contract(self, doc: ContractDocument) -> bool:
        """Insert or update a contract, returning True when it was new.

        `createdAt` of an existing entry is preserved, `updatedAt` is refreshed.
        """
        doc = doc.model_copy(deep=True)
        doc.contract_address = normalize_address(doc.contract_address)
        doc.chain_id = doc.chain_id or self.chain_id
        doc.network = doc.network or self.network
        now = datetime.now(timezone.utc)

        existing = await self.get_contract(doc.contract_address)
        if existing is not None and existing.created_at is not None:
            doc.created_at = existing.created_at
        elif doc.created_at is None:
            doc.created_at = now
        doc.updated_at = now

        payload = doc.model_dump_json(by_alias=True)
        try:
            await self._redis.hset(self.key, doc.contract_address, payload)
            await self._redis.publish(self.channel, payload)
        except RedisError as e:
            raise ContractSourceError(f"Failed to upsert {doc.contract_address}: {e}") from e

        if existing is None:
            self._logger.info(f"🗄️ Inserted new contract: {doc.contract_address}")
        else:
            self._logger.debug(f"🗄️ Updated contract: {doc.contract_address}")
        return existing is None

    async def get_stats(self) -> ContractStoreStats:
        docs = await self._load_documents()
        return ContractStoreStats(
            total_contracts=len(docs),
            active_contracts=sum(1 for doc in docs if doc.status == 'active'),
            key=self.key,
        )

    async def watch_contracts(self, stop_event: asyncio.Event, handler: ContractHandler) -> None:
        """Call `handler` for every document published on the update channel until stopped."""
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self.channel)
        self._logger.info(f"👀 Watching for NFT contract changes on {self.channel}")
        try:
            while not stop_event.is_set():
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None or message.get('type') != 'message':
                    continue
                doc = self._decode(self.channel, message['data'])
                if doc is None:
                    continue
                await handler(doc)
        finally:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()
            self._logger.info(f"🛑 Stopped watching {self.channel}")
