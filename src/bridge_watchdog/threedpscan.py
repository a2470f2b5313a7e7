import asyncio, logging, time
from typing import Any, Dict, List, Optional, Union

import aiohttp

from .address import to_canonical_account_id, to_network_text
from .config import Settings, explorer_url_for, ss58_format_for

PAGE_SIZE = 100
MIN_REQUEST_INTERVAL = 1.0
RETRY_DELAY = 60.0
MAX_ATTEMPTS = 7


class ScanError(Exception):
    pass


class TransferPage:

    def __init__(self) -> None:
        self.has_items: bool = False
        self.block_heights: List[int] = []
        self.total: Optional[int] = None
        self.page: Optional[int] = None

    def __str__(self) -> str:
        return (
            f"TransferPage(page={self.page}, total={self.total}, "
            f"items={len(self.block_heights) if self.has_items else None})"
        )

    @staticmethod
    def from_response(data: Dict[str, Any]) -> "TransferPage":
        """
        Build a TransferPage from a 3dpscan `/accounts/{address}/transfers` reply.
        """
        if not isinstance(data, dict):
            raise ScanError(f"unexpected 3dpscan response: {data!r}")
        page = TransferPage()
        page.total = data.get("total")
        page.page = data.get("page")
        items = data.get("items")
        if items is not None:
            page.has_items = True
            page.block_heights = [int(item["indexer"]["blockHeight"]) for item in items]
        return page

    @property
    def is_empty_account(self) -> bool:
        return self.total == 0 and self.page == 0


class ActivityScanner:
    def __init__(
        self,
        testnet: bool = False,
        page_size: int = PAGE_SIZE,
        min_request_interval: float = MIN_REQUEST_INTERVAL,
        retry_delay: float = RETRY_DELAY,
        max_attempts: int = MAX_ATTEMPTS,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.testnet = testnet
        self.base_url = explorer_url_for(testnet)
        self.ss58_format = ss58_format_for(testnet)
        self.page_size = page_size
        self.min_request_interval = min_request_interval
        self.retry_delay = retry_delay
        self.max_attempts = max_attempts
        self.session = session
        self._owns_session = session is None
        self._last_request_at = 0.0
        self._request_lock = asyncio.Lock()
        self.log = logging.getLogger("ActivityScanner")

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "ActivityScanner":
        return cls(testnet=settings.testnet, **kwargs)

    async def get_address_blocks(
        self, address: Union[str, bytes], start_block: Optional[int] = None
    ) -> List[int]:
        """
        Heights of all blocks where `address` sent or received a transfer,
        ascending and without duplicates, limited to `start_block` and above.

        The whole scan is retried on failure, `max_attempts` times in total and
        `retry_delay` seconds apart, before ScanError is raised.
        """
        ss58_address = to_network_text(to_canonical_account_id(address), self.testnet)
        for attempt in range(self.max_attempts):
            try:
                return await self._scan(ss58_address, start_block)
            except Exception as e:
                self.log.error(f"get_address_blocks from 3dpscan failed (attempt {attempt + 1}): {e}")
                if attempt + 1 >= self.max_attempts:
                    raise ScanError(
                        f"3dpscan scan of {address} failed after {self.max_attempts} attempts: {e}"
                    ) from e
                self.log.info(f"will retry get_address_blocks from 3dpscan in {self.retry_delay} sec")
                await asyncio.sleep(self.retry_delay)
        raise ScanError(f"3dpscan scan of {address} was not attempted")

    async def _scan(self, ss58_address: str, start_block: Optional[int]) -> List[int]:
        page_index = 0
        all_blocks: List[int] = []
        while True:
            data = await self._fetch_page(ss58_address, page_index)
            page = TransferPage.from_response(data)
            if not page.has_items:
                if page.is_empty_account:
                    break
                raise ScanError(f"no items from 3dpscan for {ss58_address}: {data}")
            blocks = page.block_heights
            all_blocks.extend(blocks)
            if len(blocks) < self.page_size:
                break
            if start_block is not None and blocks and min(blocks) < start_block:
                break
            if not blocks:
                break
            page_index += 1

        # a page can straddle start_block, so filter even after an early exit
        unique_blocks = set(all_blocks)
        if start_block is not None:
            unique_blocks = {b for b in unique_blocks if b >= start_block}
        return sorted(unique_blocks)

    async def _fetch_page(self, ss58_address: str, page_index: int) -> Dict[str, Any]:
        url = f"{self.base_url}/accounts/{ss58_address}/transfers"
        params = {"page": page_index, "page_size": self.page_size}
        async with self._request_lock:
            passed = time.monotonic() - self._last_request_at
            if passed < self.min_request_interval:
                wait = self.min_request_interval - passed
                self.log.debug(f"will wait for {wait * 1000:.0f} ms between 3dpscan requests")
                await asyncio.sleep(wait)
            try:
                return await self._get_json(url, params)
            finally:
                self._last_request_at = time.monotonic()

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                raise_for_status=True, timeout=aiohttp.ClientTimeout(total=30)
            )
        self.log.debug(f"GET {url} {params}")
        async with self.session.get(url, params=params) as response:
            return await response.json(content_type=None)

    async def close(self):
        if self._owns_session and self.session is not None:
            await self.session.close()
            self.session = None
