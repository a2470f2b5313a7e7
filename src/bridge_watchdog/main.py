from contextlib import asynccontextmanager
import logging
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
import uvicorn
from web3 import Web3

from .config import Settings, setup_logging
from .deadlock import default_canary
from .threedpass import ThreeDPass
from .threedpscan import ScanError


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    log = logging.getLogger("watchdog")
    log.info(f"Starting in {'testnet' if settings.testnet else 'mainnet'} mode, explorer {settings.explorer_base_url}")

    app.state.chain = ThreeDPass(settings)
    canary = default_canary()
    for key in settings.watched_lock_keys:
        canary.watch(key)
    app.state.canary = canary
    try:
        yield
    finally:
        await canary.stop()
        await app.state.chain.forget()
        log.info("Shutting down the application")


app = FastAPI(lifespan=lifespan)


class AddressBlocks(BaseModel):
    address: str
    blocks: List[int]


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/address_blocks", response_model=AddressBlocks)
async def address_blocks(address: str, start_block: Optional[int] = None):
    if not Web3.is_address(address):
        raise HTTPException(status_code=422, detail=f"not an EVM address: {address}")
    try:
        blocks = await app.state.chain.get_address_blocks(address, start_block)
    except ScanError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return AddressBlocks(address=address, blocks=blocks)


if __name__ == "__main__":
    uvicorn.run("bridge_watchdog.main:app", host="0.0.0.0", port=8000)
