import logging, os
from typing import List

import dotenv
from pydantic import BaseModel
from rich.logging import RichHandler

MAINNET_EXPLORER_URL = "https://api.3dpscan.xyz"
TESTNET_EXPLORER_URL = "https://api-testnet.3dpscan.xyz"

MAINNET_SS58_FORMAT = 71
TESTNET_SS58_FORMAT = 72


def explorer_url_for(testnet: bool) -> str:
    return TESTNET_EXPLORER_URL if testnet else MAINNET_EXPLORER_URL


def ss58_format_for(testnet: bool) -> int:
    return TESTNET_SS58_FORMAT if testnet else MAINNET_SS58_FORMAT


def _flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() not in ("", "0", "false", "no")


class Settings(BaseModel):
    testnet: bool = False
    devnet: bool = False
    threedpass_key: str = ""
    infura_project_id: str = ""
    moralis_key: str = ""
    watched_lock_keys: List[str] = []
    log_level: str = "INFO"

    # explorer url and ss58 prefix must never disagree, so both hang off `testnet`
    @property
    def explorer_base_url(self) -> str:
        return explorer_url_for(self.testnet)

    @property
    def ss58_format(self) -> int:
        return ss58_format_for(self.testnet)

    @classmethod
    def from_env(cls) -> "Settings":
        dotenv.load_dotenv()
        keys = os.getenv("WATCHED_LOCK_KEYS", "")
        return cls(
            testnet=_flag("TESTNET"),
            devnet=_flag("DEVNET"),
            threedpass_key=os.getenv("THREEDPASS_KEY") or "",
            infura_project_id=os.getenv("INFURA_PROJECT_ID") or "",
            moralis_key=os.getenv("MORALIS_KEY") or "",
            watched_lock_keys=[k.strip() for k in keys.split(",") if k.strip()],
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)-12s %(levelname)-8s %(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
