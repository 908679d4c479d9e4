"""Fan-out of log lines and status changes to connected browser clients."""

from __future__ import annotations

import contextlib
import json
import threading
from datetime import datetime
from typing import Any, Dict, Optional, Protocol, Set


class Client(Protocol):
    """A connection that accepts text frames."""

    def send(self, text: str) -> None: ...

    def close(self) -> None: ...


def log_message(message: str, timestamp: Optional[datetime] = None) -> Dict[str, str]:
    """Build a log event stamped with the wall-clock time."""
    moment = timestamp if timestamp is not None else datetime.now()
    return {"type": "log", "message": message, "timestamp": moment.strftime("%H:%M:%S")}


def status_message(status: str) -> Dict[str, str]:
    """Build a status event."""
    return {"type": "status", "status": status}


class Broadcaster:
    """Keeps the set of clients and sends every event to all of them."""

    def __init__(self) -> None:
        self._clients: Set[Client] = set()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def __contains__(self, client: object) -> bool:
        with self._lock:
            return client in self._clients

    def add(self, client: Client) -> None:
        with self._lock:
            self._clients.add(client)

    def remove(self, client: Client) -> None:
        with self._lock:
            self._clients.discard(client)

    def broadcast(self, message: Any) -> int:
        """Send message as JSON to every client; drop those that fail.

        Returns the number of clients that received it.
        """
        payload = json.dumps(message, ensure_ascii=False)
        delivered = 0
        with self._lock:
            for client in list(self._clients):
                try:
                    client.send(payload)
                except Exception:
                    with contextlib.suppress(Exception):
                        client.close()
                    self._clients.discard(client)
                else:
                    delivered += 1
        return delivered

    def send_log(self, message: str) -> int:
        return self.broadcast(log_message(message))

    def update_status(self, status: str) -> int:
        return self.broadcast(status_message(status))