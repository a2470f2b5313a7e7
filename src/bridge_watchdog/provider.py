import asyncio, logging
from typing import Any, Callable, TypeVar

from web3 import LegacyWebSocketProvider, Web3
from web3.middleware import ExtraDataToPOAMiddleware

from .config import Settings
from .deadline import DEFAULT_TIME_LIMIT_MS, call_with_timeout
from .rate_limit import is_rate_limit_error

T = TypeVar("T")

log = logging.getLogger("provider")


def _http(url: str) -> Web3:
    return Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": 60}))


def _ws(url: str) -> Web3:
    return Web3(LegacyWebSocketProvider(url))


def get_provider(network: str, settings: Settings) -> Web3:
    testnet = settings.testnet
    if network == "Ethereum":
        if settings.devnet:
            return _http("http://0.0.0.0:7545")  # ganache
        chain = "sepolia" if testnet else "mainnet"
        return _http(f"https://{chain}.infura.io/v3/{settings.infura_project_id}")
    if network == "BSC":
        if settings.devnet:
            return _http("http://0.0.0.0:7545")
        chain = "testnet" if testnet else "mainnet"
        w3 = _ws(f"wss://speedy-nodes-nyc.moralis.io/{settings.moralis_key}/bsc/{chain}/ws")
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        return w3
    if network == "Polygon":
        if settings.devnet:
            return _http("http://0.0.0.0:7545")
        chain = "mumbai" if testnet else "mainnet"
        w3 = _ws(f"wss://speedy-nodes-nyc.moralis.io/{settings.moralis_key}/polygon/{chain}/ws")
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        return w3
    if network == "3DPass":
        if settings.devnet:
            return _http("http://127.0.0.1:9978")
        host = "test-rpc-http.3dpass.org" if testnet else "rpc-http.3dpass.org"
        return _ws(f"wss://{host}/ws/v1/{settings.threedpass_key}")
    raise ValueError(f"unknown network {network}")


async def call_provider(
    fn: Callable[..., T],
    *args: Any,
    time_limit: int = DEFAULT_TIME_LIMIT_MS,
    max_attempts: int = 5,
    backoff: float = 1.0,
) -> T:
    """
    Run a blocking web3 call off the event loop under a deadline.

    Rate-limit failures are retried with a linearly growing pause, everything
    else (timeouts included) goes straight back to the caller.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return await call_with_timeout(asyncio.to_thread(fn, *args), time_limit)
        except Exception as e:
            if attempt >= max_attempts or not is_rate_limit_error(str(e)):
                raise
            log.warning(f"Rate limited on attempt {attempt}, retrying in {backoff * attempt}s: {e}")
            await asyncio.sleep(backoff * attempt)
    raise RuntimeError("call_provider needs max_attempts >= 1")
