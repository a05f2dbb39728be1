"""
Remote Key Sender

Sends key hold/release commands to a HID controller over TCP as
newline-delimited JSON.
"""

import socket
import json
import logging
import threading
import time
from typing import Optional, Dict, Any
from dataclasses import dataclass
from datetime import datetime

logger = logging.getLogger(__name__)


@dataclass
class SenderStats:
    """Statistics about command sending."""
    commands_sent: int = 0
    errors: int = 0
    reconnects: int = 0
    last_send_time: float = 0.0


class RemoteSender:
    """
    Sends keyboard commands to the HID controller.

    Maintains a single TCP connection to the keyboard port. Failures are
    logged and reported through the return value, never raised.
    """

    def __init__(
        self,
        host: str = '192.168.100.1',
        keyboard_port: int = 8889,
        timeout: float = 5.0,
        auto_reconnect: bool = True
    ):
        """
        Initialize remote sender.

        Args:
            host: HID controller host
            keyboard_port: Keyboard command port
            timeout: Socket timeout
            auto_reconnect: Automatically reconnect on failure
        """
        self.host = host
        self.keyboard_port = keyboard_port
        self.timeout = timeout
        self.auto_reconnect = auto_reconnect

        self._socket: Optional[socket.socket] = None
        self._lock = threading.Lock()
        self._connected = False

        self.stats = SenderStats()

    def connect(self) -> bool:
        """
        Connect to HID controller.

        Returns:
            True if the connection succeeded
        """
        try:
            self._socket = socket.create_connection(
                (self.host, self.keyboard_port), timeout=self.timeout
            )
            logger.info(f"Connected to keyboard port {self.host}:{self.keyboard_port}")
            self._connected = True
            return True

        except OSError as e:
            logger.error(f"Connection failed: {e}")
            self.disconnect()
            return False

    def disconnect(self) -> None:
        """Disconnect from HID controller."""
        was_connected = self._connected
        self._connected = False

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        if was_connected:
            logger.info("Disconnected from HID controller")

    def is_connected(self) -> bool:
        """Check if connected."""
        return self._connected

    def _ensure_connected(self) -> bool:
        """Ensure connection is active, reconnect if needed."""
        if self._connected:
            return True

        if self.auto_reconnect:
            logger.info("Reconnecting to HID controller...")
            self.stats.reconnects += 1
            return self.connect()

        return False

    def _send(self, command: Dict[str, Any]) -> bool:
        """
        Send a command over the keyboard socket.

        Args:
            command: Command dictionary

        Returns:
            True if sent successfully
        """
        if not self._socket:
            return False

        with self._lock:
            try:
                command['timestamp'] = datetime.now().isoformat()

                data = json.dumps(command) + '\n'
                self._socket.sendall(data.encode('utf-8'))

                self.stats.commands_sent += 1
                self.stats.last_send_time = time.time()
                return True

            except OSError as e:
                logger.error(f"Send failed: {e}")
                self.stats.errors += 1
                self._connected = False
                return False

    def send_key(self, key: str, action: str) -> bool:
        """
        Send keyboard key command.

        Args:
            key: Key name or character
            action: 'down', 'up', or 'press'

        Returns:
            True if sent successfully
        """
        if not self._ensure_connected():
            self.stats.errors += 1
            logger.warning(f"Dropped key {action} for {key!r}: not connected")
            return False

        command = {
            'type': 'keyboard',
            'key': key,
            'action': action,
        }
        return self._send(command)

    def get_stats(self) -> Dict[str, Any]:
        """Get sender statistics."""
        return {
            'connected': self._connected,
            'commands_sent': self.stats.commands_sent,
            'errors': self.stats.errors,
            'reconnects': self.stats.reconnects,
            'last_send': self.stats.last_send_time,
        }

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
        return False
