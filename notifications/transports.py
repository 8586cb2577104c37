#Purpose: The pub/sub "adapter" behind the NotificationRouter.
#Sole responsibility: publish one payload to one channel.
#Encapsulates transport-specific details:
#channel addressing (user-<id>, restaurant-<id>)
#URL construction for the realtime gateway
#timeouts and error normalisation (everything becomes TransportUnavailable)
#It should not decide who gets notified or what the message says.

from __future__ import annotations

import os
from threading import Lock
from typing import Any, Dict, List, Optional, Protocol, Tuple

import requests
from dotenv import load_dotenv

# Read the realtime gateway URL from environment
# Example in .env:
# NOTIFY_BASE_URL=http://localhost:6001
load_dotenv()
NOTIFY_BASE_URL = os.getenv("NOTIFY_BASE_URL")

Payload = Dict[str, Any]


class TransportUnavailable(Exception):
    """Raised when a payload could not be handed to the transport."""
    pass


class Transport(Protocol):
    def publish(self, channel: str, payload: Payload) -> None:
        ...


class InMemoryTransport:
    """
    Records every publish. Used by tests and the simulation script, and as a
    stand-in when no realtime gateway is configured.
    """

    def __init__(self) -> None:
        self._published: List[Tuple[str, Payload]] = []
        self._lock = Lock()

    def publish(self, channel: str, payload: Payload) -> None:
        with self._lock:
            self._published.append((channel, dict(payload)))

    @property
    def published(self) -> List[Tuple[str, Payload]]:
        with self._lock:
            return list(self._published)

    def for_channel(self, channel: str) -> List[Payload]:
        return [payload for published_channel, payload in self.published if published_channel == channel]

    def clear(self) -> None:
        with self._lock:
            self._published.clear()


class HttpTransport:
    """
    Realtime gateway adapter.

    POSTs {"channel": ..., "payload": ...} to <base_url>/publish. The gateway
    owns the sockets; this class only knows its HTTP contract.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 3.0, api_key: Optional[str] = None):
        self.base_url = (base_url or NOTIFY_BASE_URL or "").rstrip("/")
        self.timeout = timeout  # seconds to wait before treating the gateway as unreachable
        self.api_key = api_key or os.getenv("NOTIFY_API_KEY")

        if not self.base_url:
            raise ValueError("Notification gateway URL not set. Please set NOTIFY_BASE_URL in the .env file.")

    def publish(self, channel: str, payload: Payload) -> None:
        url = f"{self.base_url}/publish"
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

        try:
            response = requests.post(
                url,
                json={"channel": channel, "payload": payload},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportUnavailable(f"Gateway unreachable for {channel}: {exc}") from exc

        if not response.ok:
            raise TransportUnavailable(f"Gateway rejected {channel}: HTTP {response.status_code}")
