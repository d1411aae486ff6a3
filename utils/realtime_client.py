import asyncio
import json
import logging
from typing import Optional
from urllib.parse import urlencode

import websockets
from websockets.exceptions import WebSocketException

from utils.config import REALTIME_RECONNECT_ATTEMPTS, REALTIME_RECONNECT_DELAY
from utils.notification_store import NotificationLog

logger = logging.getLogger(__name__)


class RealtimeListener:
    """
    Keeps a websocket open to the notification endpoint and feeds a NotificationLog.

    A dropped connection is retried up to ``max_attempts`` times in a row with
    a fixed delay; a successful connection resets the counter. Events sent
    while disconnected are not replayed.
    """

    def __init__(
        self,
        url: str,
        token: str,
        log: Optional[NotificationLog] = None,
        max_attempts: int = REALTIME_RECONNECT_ATTEMPTS,
        retry_delay: float = REALTIME_RECONNECT_DELAY,
        connect=websockets.connect,
        sleep=asyncio.sleep,
    ):
        self.url = url
        self.token = token
        self.log = log if log is not None else NotificationLog()
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.failed_attempts = 0
        self._connect = connect
        self._sleep = sleep
        self._websocket = None
        self._stopped = False

    @property
    def uri(self) -> str:
        return f"{self.url}?{urlencode({'token': self.token})}"

    @property
    def connected(self) -> bool:
        return self._websocket is not None

    async def run(self) -> bool:
        """Listen until stopped (returns True) or out of reconnect attempts (returns False)."""
        while not self._stopped:
            try:
                async with self._connect(self.uri) as websocket:
                    self._websocket = websocket
                    self.failed_attempts = 0
                    logger.info(f"Connected to realtime channel {self.url}")
                    async for raw in websocket:
                        self.handle_message(raw)
                    if self._stopped:
                        return True
                    logger.warning("Realtime channel closed by server")
            except (WebSocketException, OSError) as e:
                logger.warning(f"Realtime connection failed: {str(e)}")
            finally:
                self._websocket = None

            if self._stopped:
                return True
            self.failed_attempts += 1
            if self.failed_attempts > self.max_attempts:
                logger.error(f"Giving up on realtime channel after {self.max_attempts} reconnect attempts")
                return False
            logger.info(f"Reconnecting in {self.retry_delay}s (attempt {self.failed_attempts}/{self.max_attempts})")
            await self._sleep(self.retry_delay)
        return True

    def handle_message(self, raw):
        try:
            message = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            logger.debug("Dropping malformed realtime frame")
            return None
        if not isinstance(message, dict) or not isinstance(message.get("event"), str):
            return None
        data = message.get("data")
        return self.log.ingest(message["event"], data if isinstance(data, dict) else {})

    async def emit(self, event: str, data: dict) -> bool:
        """Send a client event (e.g. ``orderReady``) for the server to relay. No-op while disconnected."""
        if self._websocket is None:
            logger.debug(f"Not connected, dropping outgoing event {event}")
            return False
        await self._websocket.send(json.dumps({"event": event, "data": data}))
        return True

    async def stop(self):
        self._stopped = True
        if self._websocket is not None:
            await self._websocket.close()
