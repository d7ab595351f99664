"""
Bridge Transport Framework
Base abstract class for the publish/subscribe transport to the bridge
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Any, Optional, Callable
import asyncio
import inspect
import logging

from huereset.core.patterns import StateMachine, ClientState, StatusReporter, LogLevel


@dataclass(frozen=True)
class InboundMessage:
    topic: str
    payload: bytes


class TransportConfig:
    """Configuration class for transports."""

    def __init__(self,
                 connection_params: Dict[str, Any],
                 subscriptions: List[str] = None,
                 max_retries: int = 5,
                 retry_delay: float = 1.0,
                 max_retry_delay: float = 60.0,
                 timeout: int = 5):
        self.connection_params = connection_params
        self.subscriptions = subscriptions or []
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.max_retry_delay = max_retry_delay
        self.timeout = timeout


class BaseTransport(ABC):
    """
    Abstract base class for bridge transports.

    Implements the Template Method pattern: validate, initialize, connect with
    retry, subscribe, then run a single dispatch loop that hands inbound
    messages to the message callback one at a time, in arrival order.
    """

    def __init__(self, config: TransportConfig, reporter: Optional[StatusReporter] = None):
        self.config = config
        self.reporter = reporter or StatusReporter()
        self.logger = logging.getLogger(self.__class__.__name__)
        self.state_machine = StateMachine(ClientState.DISCONNECTED)
        self.running = False
        self.retry_count = 0
        self.message_callback: Optional[Callable] = None
        self.error_callback: Optional[Callable] = None
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._inbound: Optional[asyncio.Queue] = None

    # Template method - defines the algorithm skeleton
    async def start(self, message_callback: Callable = None, error_callback: Callable = None):
        """
        Template method that defines the standard transport lifecycle.
        Runs until stop() is called.
        """
        try:
            await self.open(message_callback, error_callback)
            await self._run_main_loop()
        finally:
            await self._cleanup()

    async def open(self, message_callback: Callable = None, error_callback: Callable = None):
        """Validate, initialize, connect and subscribe without entering the dispatch loop."""
        self.message_callback = message_callback
        self.error_callback = error_callback
        self.running = True
        self.loop = asyncio.get_running_loop()
        self._inbound = asyncio.Queue()

        self.logger.info("Starting transport...")

        # Step 1: Validate configuration
        self._validate_config()

        # Step 2: Initialize client
        await self._initialize_client()

        # Step 3: Connect with retry logic
        await self._connect_with_retry()

        # Step 4: Setup subscriptions
        await self._setup_monitoring()

    async def stop(self):
        """Stop the transport gracefully."""
        self.logger.info("Stopping transport...")
        self.running = False
        await self._cleanup()

    # Abstract methods that subclasses must implement
    @abstractmethod
    async def _initialize_client(self):
        """Initialize the protocol-specific client."""
        pass

    @abstractmethod
    async def _connect(self):
        """Establish connection to the broker."""
        pass

    @abstractmethod
    async def _disconnect(self):
        """Disconnect from the broker."""
        pass

    @abstractmethod
    async def _setup_monitoring(self):
        """Subscribe to the configured topics."""
        pass

    @abstractmethod
    def _validate_config(self):
        """Validate protocol-specific configuration."""
        pass

    @abstractmethod
    async def publish_message(self, topic: str, payload: Any):
        """Publish a message; raise PublishFailed or TransportUnavailable on failure."""
        pass

    @abstractmethod
    async def subscribe_to_topic(self, topic: str):
        """Subscribe to a topic; raise ProtocolError on failure."""
        pass

    # Inbound path
    def enqueue_message(self, topic: str, payload: bytes):
        """Hand an inbound message to the dispatch loop. Safe to call from any thread."""
        if self.loop is None or self._inbound is None:
            return
        self.loop.call_soon_threadsafe(self._inbound.put_nowait, InboundMessage(topic, payload))

    def report_threadsafe(self, message: str, level: LogLevel):
        if self.loop is None or self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.reporter.log, message, level)

    # Common implementations that can be overridden
    async def _connect_with_retry(self):
        """Connect with exponential backoff retry strategy."""
        self.retry_count = 0

        while self.running and self.retry_count < self.config.max_retries:
            try:
                self.state_machine.transition(ClientState.CONNECTING)
                await self._connect()
                self.state_machine.transition(ClientState.CONNECTED)
                self.retry_count = 0
                self.logger.info("Successfully connected")
                return

            except Exception as e:
                self.retry_count += 1
                self.state_machine.transition(ClientState.RECONNECTING)

                if self.retry_count >= self.config.max_retries:
                    self.state_machine.transition(ClientState.ERROR)
                    raise ConnectionError(f"Failed to connect after {self.config.max_retries} attempts: {e}")

                delay = min(
                    self.config.retry_delay * (2 ** (self.retry_count - 1)),
                    self.config.max_retry_delay
                )

                self.logger.warning(f"Connection attempt {self.retry_count} failed: {e}. Retrying in {delay:.2f}s...")
                await asyncio.sleep(delay)

    async def _run_main_loop(self):
        """Dispatch loop: the only place inbound messages reach the application."""
        self.logger.info("Starting dispatch loop...")

        while self.running:
            try:
                message = await asyncio.wait_for(self._inbound.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            if self.message_callback:
                await self._safe_callback(self.message_callback, message.topic, message.payload)

        self.logger.info("Dispatch loop stopped")

    async def _safe_callback(self, callback: Callable, *args, **kwargs):
        """Safely execute callback functions."""
        try:
            if inspect.iscoroutinefunction(callback):
                await callback(*args, **kwargs)
            else:
                callback(*args, **kwargs)
        except Exception as e:
            self.logger.error(f"Error in callback: {e}", exc_info=True)
            if self.error_callback and callback is not self.error_callback:
                await self._safe_callback(self.error_callback, e)

    async def _cleanup(self):
        """Cleanup resources."""
        try:
            await self._disconnect()
        except Exception as e:
            self.logger.error(f"Error during cleanup: {e}")
        finally:
            self.state_machine.transition(ClientState.DISCONNECTED)

    # Utility methods
    def get_connection_state(self) -> ClientState:
        return self.state_machine.state

    def is_connected(self) -> bool:
        return self.state_machine.state == ClientState.CONNECTED
