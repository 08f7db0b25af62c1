"""
Per-product mutual exclusion for stock-counter updates.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict

logger = logging.getLogger(__name__)


class ProductLockRegistry:
    """
    Hands out one asyncio.Lock per product id.

    Two scans resolving to the same product inside this process run their
    read-modify-write one after the other. Writers in other processes are
    caught by the optimistic version check on StockLevel instead.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def get_lock(self, product_id: str) -> asyncio.Lock:
        lock = self._locks.get(product_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[product_id] = lock
        return lock

    @asynccontextmanager
    async def acquire(self, product_id: str):
        lock = self.get_lock(product_id)
        if lock.locked():
            logger.debug(f"Waiting for stock lock on {product_id}")
        async with lock:
            yield

    def __len__(self):
        return len(self._locks)
