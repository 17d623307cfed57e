from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Tuple, Optional


class LogRecord(BaseModel):
    """Raw log as returned by eth_getLogs, minimally normalized."""
    model_config = ConfigDict(frozen=True)

    address: str  # lowercased 0x...
    topics: Tuple[str, ...]  # lowercased 0x...
    data: str = '0x'
    block_number: int
    tx_hash: str
    log_index: int


class ContractCreatedEvent(BaseModel):
    """Decoded NFTContractCreated event emitted by the factory."""
    contract_address: str
    creator: str
    block_number: int
    tx_hash: str
    log_index: int
    collection_id: Optional[int] = None
    name: Optional[str] = None
    symbol: Optional[str] = None
    base_uri: Optional[str] = None


class ContractDocument(BaseModel):
    """NFT contract entry kept in the authoritative contract store."""
    model_config = ConfigDict(populate_by_name=True)

    contract_address: str = Field(alias='contractAddress')
    collection_id: Optional[int] = Field(None, alias='collectionId')
    creator: str = ''
    name: str = ''
    symbol: str = ''
    base_uri: str = Field('', alias='baseURI')
    model_id: Optional[int] = Field(None, alias='modelId')
    chain_id: int = Field(0, alias='chainId')
    network: str = ''
    status: str = 'active'
    created_at: Optional[datetime] = Field(None, alias='createdAt')
    updated_at: Optional[datetime] = Field(None, alias='updatedAt')

    @property
    def is_deleted(self) -> bool:
        return self.status.lower() == 'deleted'


class RegistryStats(BaseModel):
    enabled: bool
    factory_address: str
    payment_address: str
    dynamic_count: int
    total_watched: int


class DiscoveryStats(BaseModel):
    logs_seen: int = 0
    events_matched: int = 0
    contracts_discovered: int = 0
    errors: int = 0


class LogFilterStats(BaseModel):
    total_logs_received: int = 0
    logs_after_filter: int = 0
    blocks_processed: int = 0
    contracts_watched: int = 0
    filter_enabled: bool = False


class ContractStoreStats(BaseModel):
    total_contracts: int
    active_contracts: int
    key: str


class ServiceStats(BaseModel):
    registry: RegistryStats
    discovery: DiscoveryStats
    fetch: LogFilterStats
    filter_efficiency: float
    auto_discovery: bool
    sync_enabled: bool


class RangeResult(BaseModel):
    """Outcome of one fetch/discover/filter cycle over a block range."""
    from_block: int
    to_block: int
    logs: List[LogRecord]
    discovered: List[ContractCreatedEvent]
    total_fetched: int
