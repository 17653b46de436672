"""Terminal-side offline order queue.

Orders taken while the terminal has no connection are kept in a JSON file
and replayed against ``/api/v1/orders/offline`` once it comes back. The
queue is drained one order at a time; an order that fails stays queued for
the next sync.
"""

import json
import logging
import os
import random
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx

logger = logging.getLogger(__name__)

OfflineOrder = Dict[str, Any]
Submitter = Callable[[OfflineOrder], Awaitable[Any]]

_ID_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"


def new_offline_id() -> str:
    """``offline_<epoch ms>_<9 random chars>``."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"offline_{int(time.time() * 1000)}_{suffix}"


class OfflineOrderQueue:
    """Persistent FIFO of orders waiting to be replayed."""

    def __init__(self, path: Union[str, Path], submit: Submitter):
        self.path = Path(path)
        self.submit = submit
        self._syncing = False

    @property
    def pending(self) -> List[OfflineOrder]:
        return self._load()

    def add(self, order: OfflineOrder) -> OfflineOrder:
        """Queue an order, stamping its client id and capture time."""
        entry = dict(order)
        entry["id"] = new_offline_id()
        entry["created_at"] = datetime.now(timezone.utc).isoformat()
        orders = self._load()
        orders.append(entry)
        self._save(orders)
        logger.info(f"Order {entry['id']} queued offline ({len(orders)} pending)")
        return entry

    async def sync(self) -> Dict[str, int]:
        """Replay queued orders in order. Failed ones are kept for the next sync.

        A sync already in progress makes this call a no-op. Orders added while
        the drain is running stay queued.
        """
        if self._syncing:
            logger.debug("Offline sync already running")
            return {"synced": 0, "failed": 0}

        orders = self._load()
        if not orders:
            return {"synced": 0, "failed": 0}

        self._syncing = True
        synced_ids = set()
        failed = 0
        try:
            for order in orders:
                try:
                    await self.submit(order)
                    synced_ids.add(order.get("id"))
                except Exception as e:
                    logger.warning(f"Offline order {order.get('id')} failed to sync: {e}")
                    failed += 1
        finally:
            remaining = [o for o in self._load() if o.get("id") not in synced_ids]
            self._save(remaining)
            self._syncing = False

        logger.info(f"Offline sync: {len(synced_ids)} synced, {failed} failed")
        return {"synced": len(synced_ids), "failed": failed}

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

    def _load(self) -> List[OfflineOrder]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Discarding unreadable offline queue {self.path}: {e}")
            self.clear()
            return []
        if not isinstance(data, list):
            logger.error(f"Discarding malformed offline queue {self.path}")
            self.clear()
            return []
        return data

    def _save(self, orders: List[OfflineOrder]) -> None:
        if not orders:
            self.clear()
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(orders), encoding="utf-8")
        os.replace(tmp_path, self.path)


class HttpOrderSubmitter:
    """Posts queued orders to the API's offline replay endpoint."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}", "Content-Type": "application/json"}

    async def __call__(self, order: OfflineOrder) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post(
                f"{self.base_url}/api/v1/orders/offline",
                headers=self._headers(),
                json=order,
            )
            resp.raise_for_status()
            return resp.json()
