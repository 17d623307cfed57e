import httpx
import asyncio
from typing import Any, Dict, List, Optional, Sequence
from utils.exceptions import RPCError
from utils.models.data_models import LogRecord
from utils.models.settings_model import RPCConfig
from utils.logging import logger


def to_hex_block(x: int) -> str:
    """Return a 0x-prefixed hex block number."""
    return hex(x)


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int(value, 16)


def parse_log(raw: Dict[str, Any]) -> LogRecord:
    """Normalize one eth_getLogs result entry."""
    return LogRecord(
        address=raw['address'].lower(),
        topics=tuple(t.lower() for t in raw.get('topics') or ()),
        data=str(raw.get('data') or '0x'),
        block_number=_to_int(raw['blockNumber']),
        tx_hash=(raw.get('transactionHash') or '').lower(),
        log_index=_to_int(raw['logIndex']),
    )


class RpcHelper:
    def __init__(self, config: RPCConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.client = client or httpx.AsyncClient(timeout=config.request_time_out)
        self._logger = logger.bind(module='RpcHelper')

    async def _make_request(self, method: str, params: list) -> Any:
        """Makes a JSON-RPC request, retrying transport errors `config.retry` times."""
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": 1,
        }
        for attempt in range(self.config.retry + 1):
            try:
                response = await self.client.post(self.config.url, json=payload)
                response.raise_for_status()
                data = response.json()
            except httpx.RequestError as e:
                self._logger.warning(f"Request failed ({method}, attempt {attempt+1}/{self.config.retry+1}): {e}")
                if attempt == self.config.retry:
                    self._logger.error(f"Max retries exceeded for {method}.")
                    raise RPCError(f"{method} failed after {attempt+1} attempts: {e}") from e
                await asyncio.sleep(1)
                continue
            except httpx.HTTPStatusError as e:
                raise RPCError(f"{method} returned HTTP {e.response.status_code}") from e
            except ValueError as e:
                raise RPCError(f"{method} returned a non-JSON response: {e}") from e

            if "error" in data:
                err = data["error"]
                msg = err.get("message") if isinstance(err, dict) else str(err)
                self._logger.error(f"RPC Error ({method}): {err}")
                raise RPCError(f"RPC error ({method}): {msg}")
            return data.get("result")

    async def get_current_block_number(self) -> int:
        result = await self._make_request("eth_blockNumber", [])
        return _to_int(result)

    async def get_logs(
        self,
        from_block: int,
        to_block: int,
        addresses: Optional[Sequence[str]] = None,
        topics: Optional[Sequence[Optional[Sequence[str]]]] = None,
    ) -> List[LogRecord]:
        """Fetch logs over an inclusive block range, optionally restricted by address and topics."""
        query: Dict[str, Any] = {
            "fromBlock": to_hex_block(from_block),
            "toBlock": to_hex_block(to_block),
        }
        if addresses:
            query["address"] = [a.lower() for a in addresses]
        if topics:
            query["topics"] = [list(t) if t is not None else None for t in topics]

        self._logger.trace(f"eth_getLogs {query}")
        result = await self._make_request("eth_getLogs", [query])
        if not isinstance(result, list):
            raise RPCError(f"eth_getLogs returned {type(result).__name__}, expected a list")
        try:
            return [parse_log(raw) for raw in result]
        except (KeyError, TypeError, ValueError) as e:
            raise RPCError(f"Malformed log in eth_getLogs response: {e}") from e

    async def close(self):
        await self.client.aclose()
