"""
Scan Loop Host

Runs the engine the way keyboard firmware would: a tight loop that
drains toggle events and ticks the driver every few milliseconds.
Whatever way the loop ends, it force-stops the driver so no key is
left held.
"""

import os
import queue
import signal
import sys
import time
import logging
from typing import Callable, Optional

from .engine.clock import MonotonicClock
from .engine.driver import ScanTickDriver
from .errors import UnknownModeError
from .input.effectors import DryRunEffector, SenderEffector
from .input.remote_sender import RemoteSender
from .input.toggle_listener import ToggleListener
from .utils.config import Config

logger = logging.getLogger(__name__)


class ScanLoop:
    """Single-threaded scan loop driving a ScanTickDriver."""

    def __init__(
        self,
        driver: ScanTickDriver,
        events: 'queue.Queue' = None,
        scan_interval_ms: float = 2.0,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize scan loop.

        Args:
            driver: Engine driver to tick
            events: Queue of ToggleEvent objects from a listener
            scan_interval_ms: Pause between iterations
            sleep: Sleep function (seconds)
        """
        self.driver = driver
        self.events = events if events is not None else queue.Queue()
        self.scan_interval_ms = scan_interval_ms
        self._sleep = sleep

        self.running = False
        self.iterations = 0
        self._signal_count = 0

    def run_once(self) -> None:
        """Drain pending toggle events, then tick once."""
        while True:
            try:
                event = self.events.get_nowait()
            except queue.Empty:
                break
            try:
                self.driver.on_toggle_key_down(event.mode)
            except UnknownModeError as e:
                logger.error(str(e))

        self.driver.on_scan_tick()
        self.iterations += 1

    def run_forever(self) -> None:
        """Loop until stop() is called."""
        self.running = True
        logger.info(f"Scan loop running every {self.scan_interval_ms}ms")
        try:
            while self.running:
                self.run_once()
                self._sleep(self.scan_interval_ms / 1000)
        finally:
            self.driver.force_stop()
            logger.info(f"Scan loop stopped after {self.iterations} iterations")

    def stop(self) -> None:
        self.running = False

    def handle_signal(self, signum, frame) -> None:
        """Handle shutdown signals - force exit on second signal."""
        self._signal_count += 1

        if self._signal_count >= 2:
            logger.info(f"Force exit (signal {signum} received {self._signal_count} times)")
            self.driver.force_stop()
            os._exit(1)

        logger.info(f"Received signal {signum}, stopping... (send again to force)")
        self.stop()

    def install_signal_handlers(self) -> None:
        """Route SIGINT/SIGTERM to handle_signal (Unix only)."""
        if sys.platform != 'win32':
            signal.signal(signal.SIGINT, self.handle_signal)
            signal.signal(signal.SIGTERM, self.handle_signal)


def build_driver(config: Config, effector) -> ScanTickDriver:
    """Create a driver for the configured modes on the real clock."""
    driver = ScanTickDriver(
        effector=effector,
        clock=MonotonicClock(),
        policies=config.registry(),
        config=config.engine,
    )

    def on_change(mode: Optional[str]) -> None:
        if mode:
            logger.info(f"Active macro: {mode}")
        else:
            logger.info("Macro idle")

    driver.on_session_change = on_change
    return driver


def run_host(config: Config, dry_run: bool = False) -> int:
    """
    Run the listener and scan loop until interrupted.

    Args:
        config: Loaded configuration
        dry_run: Log key actions instead of sending them

    Returns:
        Process exit code
    """
    sender = None
    if dry_run or config.host.dry_run:
        effector = DryRunEffector()
        logger.info("Dry run: key actions are only logged")
    else:
        sender = RemoteSender(
            host=config.hid.host,
            keyboard_port=config.hid.keyboard_port,
            timeout=config.hid.timeout,
            auto_reconnect=config.hid.auto_reconnect,
        )
        if not sender.connect() and not config.hid.auto_reconnect:
            logger.error("Could not reach HID controller")
            return 1
        effector = SenderEffector(sender)

    driver = build_driver(config, effector)
    registry = config.registry()
    toggles = {p.toggle_key: p.name for p in registry if p.toggle_key}
    if not toggles:
        logger.error("No mode has a toggle_key configured")
        return 1

    events = queue.Queue()
    listener = ToggleListener(toggles, events)
    loop = ScanLoop(driver, events, config.host.scan_interval_ms)
    loop.install_signal_handlers()

    listener.start()
    try:
        loop.run_forever()
    finally:
        listener.stop()
        if sender:
            logger.info(f"Sender stats: {sender.get_stats()}")
            sender.disconnect()

    return 0
