from pydantic import BaseModel, Field, field_validator
from typing import Union, List
from utils.address import normalize_address, normalize_addresses

LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


class RPCConfig(BaseModel):
    """JSON-RPC endpoint configuration model."""
    url: str
    retry: int = Field(0, ge=0)
    request_time_out: int = Field(30, gt=0)


class Redis(BaseModel):
    """Redis configuration model."""
    host: str
    port: int
    db: int
    password: Union[str, None] = None
    ssl: bool = False


class Logs(BaseModel):
    """Logging configuration model."""
    debug_mode: bool = False
    write_to_files: bool = True
    level: str = "INFO"

    @field_validator('level')
    @classmethod
    def level_must_be_known(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"unknown log level {v}, expected one of {LOG_LEVELS}")
        return v


class ContractsConfig(BaseModel):
    """Fixed contract roles and the preloaded NFT collection contracts."""
    factory_address: str
    payment_address: str
    nft_contracts: List[str] = Field(default_factory=list)

    @field_validator('factory_address', 'payment_address')
    @classmethod
    def fixed_address_must_be_valid(cls, v: str) -> str:
        return normalize_address(v)

    @field_validator('nft_contracts')
    @classmethod
    def preload_must_be_valid(cls, v: List[str]) -> List[str]:
        return normalize_addresses(a for a in v if a)


class FilterConfig(BaseModel):
    """Address filtering and auto-discovery switches."""
    enabled: bool = True
    auto_discovery: bool = True
    persist_discovered: bool = True


class SyncConfig(BaseModel):
    """Contract store synchronization configuration."""
    enabled: bool = True
    interval_seconds: int = Field(60, gt=0)
    watch_changes: bool = False
    watch_retry_seconds: int = Field(5, gt=0)


class Settings(BaseModel):
    """Main settings configuration model."""
    namespace: str
    chain_id: int
    network: str = ''
    rpc: RPCConfig
    redis: Redis
    logs: Logs = Field(default_factory=Logs)
    contracts: ContractsConfig
    filter: FilterConfig = Field(default_factory=FilterConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
