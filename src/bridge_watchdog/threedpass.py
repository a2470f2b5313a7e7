import logging
from typing import List, Optional, Union

from web3 import Web3

from .config import Settings
from .provider import call_provider, get_provider
from .threedpscan import ActivityScanner


class ThreeDPass:
    network = "3DPass"
    _created = False

    def __init__(
        self,
        settings: Settings,
        scanner: Optional[ActivityScanner] = None,
        provider: Optional[Web3] = None,
    ):
        if ThreeDPass._created:
            raise RuntimeError("ThreeDPass class already created, must be a singleton")
        ThreeDPass._created = True
        self.settings = settings
        self.scanner = scanner or ActivityScanner.from_settings(settings)
        self._provider = provider
        self.log = logging.getLogger("ThreeDPass")

    def get_provider(self) -> Web3:
        if self._provider is None:
            self._provider = get_provider(self.network, self.settings)
        return self._provider

    async def get_latest_block_number(self) -> int:
        provider = self.get_provider()
        return await call_provider(lambda: provider.eth.block_number)

    def get_native_symbol(self) -> str:
        return "P3D"

    def get_max_block_range(self) -> int:
        return 1000

    async def get_address_blocks(
        self, address: Union[str, bytes], start_block: Optional[int] = None
    ) -> List[int]:
        return await self.scanner.get_address_blocks(address, start_block)

    async def forget(self):
        self.log.info(f"Forgetting {self.network} chain")
        await self.scanner.close()
        self._provider = None
        ThreeDPass._created = False
