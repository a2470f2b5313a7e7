from typing import Dict, List, Optional
import threading

from attr import dataclass


def get_version(versions: Dict[str, str], aa: str) -> Optional[str]:
    """Return the version whose deployed address is `aa`, if any."""
    for version, address in versions.items():
        if address == aa:
            return version
    return None


@dataclass
class EthAddressLink:
    aa: str  # assistant address on the native chain
    eth_address: str


class AddressBook:
    _instance = None
    _lock = threading.Lock()

    def __new__(cls, *args, **kwargs):
        if not cls._instance:
            with cls._lock:
                if not cls._instance:
                    cls._instance = super(AddressBook, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not hasattr(self, "links"):
            self.links: List[EthAddressLink] = []

    def add(self, aa: str, eth_address: str) -> EthAddressLink:
        """Associate an assistant with an EVM address."""
        link = EthAddressLink(aa=aa, eth_address=eth_address)
        self.links.append(link)
        return link

    def get_assistants_for_eth_address(self, eth_address: str) -> List[str]:
        assistants: List[str] = []
        for link in self.links:
            if link.eth_address == eth_address and link.aa not in assistants:
                assistants.append(link.aa)
        return assistants

    def get_eth_address_for_assistant(self, aa: str) -> Optional[str]:
        for link in self.links:
            if link.aa == aa:
                return link.eth_address
        return None

    def clear(self):
        self.links.clear()
