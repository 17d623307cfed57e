import asyncio
from unittest.mock import AsyncMock

import pytest
from eth_abi import encode

from tests.conftest import FACTORY, NFT_A, NFT_B, OTHER, PAYMENT, creation_log, make_log, make_settings
from utils.exceptions import ContractSourceError, LogFetchError, RPCError
from utils.models.data_models import ContractDocument
from utils.service import ContractFilterService


@pytest.fixture
def service(mock_rpc) -> ContractFilterService:
    return ContractFilterService(make_settings(sync={"enabled": False}), rpc_helper=mock_rpc)


@pytest.mark.asyncio
async def test_first_range_is_constrained_to_fixed_roles(service, mock_rpc) -> None:
    await service.process_range(1, 10)

    mock_rpc.get_logs.assert_awaited_once_with(1, 10, addresses=sorted([FACTORY, PAYMENT]))


@pytest.mark.asyncio
async def test_discovered_contract_is_watched_in_next_range(service, mock_rpc, mock_redis) -> None:
    await service.init(redis=mock_redis)
    data = "0x" + encode(["uint256", "string", "string", "string"], [3, "Genesis", "GEN", "ipfs://x/"]).hex()
    mock_rpc.get_logs.return_value = [
        creation_log(NFT_A, data=data),
        make_log(address=PAYMENT, log_index=1),
        make_log(address=OTHER, log_index=2),
    ]

    result = await service.process_range(100, 110)

    assert result.total_fetched == 3
    assert [log.address for log in result.logs] == [FACTORY, PAYMENT]
    assert [e.contract_address for e in result.discovered] == [NFT_A]
    assert service.registry.contains(NFT_A)

    saved = ContractDocument.model_validate_json(mock_redis.hset.await_args.args[2])
    assert saved.contract_address == NFT_A
    assert saved.collection_id == 3
    assert saved.name == "Genesis"
    assert saved.chain_id == 8453

    mock_rpc.get_logs.return_value = [make_log(address=NFT_A, block_number=111)]
    result = await service.process_range(111, 120)

    assert mock_rpc.get_logs.await_args.kwargs["addresses"] == sorted([FACTORY, PAYMENT, NFT_A])
    assert [log.address for log in result.logs] == [NFT_A]
    assert result.discovered == []


@pytest.mark.asyncio
async def test_auto_discovery_off(mock_rpc) -> None:
    service = ContractFilterService(
        make_settings(filter={"auto_discovery": False}, sync={"enabled": False}), rpc_helper=mock_rpc
    )
    mock_rpc.get_logs.return_value = [creation_log(NFT_A)]

    result = await service.process_range(1, 1)

    assert result.discovered == []
    assert not service.registry.contains(NFT_A)
    assert len(result.logs) == 1


@pytest.mark.asyncio
async def test_filter_disabled_keeps_everything(mock_rpc) -> None:
    service = ContractFilterService(
        make_settings(filter={"enabled": False}, sync={"enabled": False}), rpc_helper=mock_rpc
    )
    mock_rpc.get_logs.return_value = [make_log(address=OTHER)]

    result = await service.process_range(1, 1)

    mock_rpc.get_logs.assert_awaited_once_with(1, 1, addresses=None)
    assert len(result.logs) == 1


@pytest.mark.asyncio
async def test_fetch_error_propagates(service, mock_rpc) -> None:
    mock_rpc.get_logs.side_effect = RPCError("boom")

    with pytest.raises(LogFetchError):
        await service.process_range(5, 6)


@pytest.mark.asyncio
async def test_persist_failure_does_not_fail_range(service, mock_rpc, mock_redis) -> None:
    await service.init(redis=mock_redis)
    service.source.upsert_contract = AsyncMock(side_effect=ContractSourceError("down"))
    mock_rpc.get_logs.return_value = [creation_log(NFT_B)]

    result = await service.process_range(1, 1)

    assert service.registry.contains(NFT_B)
    assert len(result.discovered) == 1


@pytest.mark.asyncio
async def test_backfill_queries_factory_events_only(service, mock_rpc) -> None:
    mock_rpc.get_logs.return_value = [creation_log(NFT_A), creation_log(NFT_B, log_index=1)]

    assert await service.backfill(0, 500) == 2

    args = mock_rpc.get_logs.await_args
    assert args.args == (0, 500)
    assert args.kwargs["addresses"] == [FACTORY]
    assert len(args.kwargs["topics"][0]) == 1
    assert service.registry.dynamic_count() == 2


@pytest.mark.asyncio
async def test_start_syncs_from_store_and_stops(mock_rpc, mock_redis) -> None:
    service = ContractFilterService(make_settings(sync={"interval_seconds": 3600}), rpc_helper=mock_rpc)
    mock_redis.hgetall.return_value = {
        NFT_A: ContractDocument(contract_address=NFT_A).model_dump_json(by_alias=True),
    }
    await service.init(redis=mock_redis)

    await service.start()
    for _ in range(50):
        if service.registry.contains(NFT_A):
            break
        await asyncio.sleep(0.01)
    await asyncio.wait_for(service.close(), timeout=2)

    assert service.registry.contains(NFT_A)
    assert service.sync.syncs_ok == 1
    mock_rpc.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_second_start_keeps_running_tasks(mock_rpc, mock_redis) -> None:
    service = ContractFilterService(make_settings(sync={"interval_seconds": 3600}), rpc_helper=mock_rpc)
    await service.init(redis=mock_redis)

    await service.start()
    first = list(service._tasks)
    await service.start()

    assert service._tasks == first
    await asyncio.wait_for(service.stop(), timeout=2)
    assert all(task.done() for task in first)

    await service.start()
    assert service._tasks != first
    await asyncio.wait_for(service.close(), timeout=2)


@pytest.mark.asyncio
async def test_stats(service, mock_rpc) -> None:
    mock_rpc.get_logs.return_value = [
        make_log(address=FACTORY),
        creation_log(NFT_A, log_index=1),
        make_log(address=OTHER, log_index=2),
        make_log(address=OTHER, log_index=3),
    ]
    await service.process_range(1, 10)

    stats = service.stats()

    assert stats.registry.dynamic_count == 1
    assert stats.discovery.contracts_discovered == 1
    assert stats.fetch.total_logs_received == 4
    assert stats.fetch.logs_after_filter == 2
    assert stats.fetch.blocks_processed == 10
    assert stats.filter_efficiency == 50.0
    assert stats.auto_discovery is True
    assert stats.sync_enabled is False
