from unittest.mock import AsyncMock, MagicMock

import pytest

from utils.address import pad_address_topic
from utils.discovery import NFT_CONTRACT_CREATED_TOPIC
from utils.models.data_models import LogRecord
from utils.models.settings_model import Settings
from utils.registry import AddressRegistry

FACTORY = "0x1111111111111111111111111111111111111111"
PAYMENT = "0x2222222222222222222222222222222222222222"
NFT_A = "0x" + "a" * 40
NFT_B = "0x" + "b" * 40
CREATOR = "0x" + "c" * 40
OTHER = "0x" + "d" * 40


def make_log(
    address: str = FACTORY,
    topics: tuple = (),
    data: str = "0x",
    block_number: int = 100,
    tx_hash: str = "0x" + "e" * 64,
    log_index: int = 0,
) -> LogRecord:
    return LogRecord(
        address=address,
        topics=tuple(topics),
        data=data,
        block_number=block_number,
        tx_hash=tx_hash,
        log_index=log_index,
    )


def creation_log(contract: str = NFT_A, creator: str = CREATOR, **kwargs) -> LogRecord:
    topics = (NFT_CONTRACT_CREATED_TOPIC, pad_address_topic(contract), pad_address_topic(creator))
    return make_log(topics=topics, **kwargs)


def make_settings(**overrides) -> Settings:
    raw = {
        "namespace": "test",
        "chain_id": 8453,
        "network": "base",
        "rpc": {"url": "http://localhost:8545"},
        "redis": {"host": "localhost", "port": 6379, "db": 0},
        "logs": {"write_to_files": False},
        "contracts": {"factory_address": FACTORY, "payment_address": PAYMENT},
    }
    raw.update(overrides)
    return Settings(**raw)


@pytest.fixture
def registry() -> AddressRegistry:
    return AddressRegistry(FACTORY, PAYMENT)


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.get_logs = AsyncMock(return_value=[])
    rpc.get_current_block_number = AsyncMock(return_value=1_000)
    rpc.close = AsyncMock()
    return rpc


@pytest.fixture
def mock_redis():
    redis = AsyncMock()
    redis.hgetall = AsyncMock(return_value={})
    redis.hget = AsyncMock(return_value=None)
    redis.hset = AsyncMock(return_value=1)
    redis.publish = AsyncMock(return_value=0)
    redis.pubsub = MagicMock()
    return redis
