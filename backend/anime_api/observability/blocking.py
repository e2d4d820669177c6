"""Detection of blocking calls on the asyncio event loop.

Validation, routing and status selection must never block; only store calls
may suspend. ``BlockingCallGuard`` enforces that at test time: it puts the
running loop in debug mode with a low ``slow_callback_duration`` and collects
the "Executing ... took N seconds" warnings asyncio emits for any loop step
that ran too long without yielding.

Example:
    ```python
    async with BlockingCallGuard(threshold_seconds=0.05):
        await client.get("/anime")
    ```
"""
import asyncio
import logging
from dataclasses import dataclass, field

ASYNCIO_LOGGER_NAME = "asyncio"
DEFAULT_THRESHOLD_SECONDS = 0.1
_SLOW_STEP_MARKER = "Executing "


class BlockingOperationError(AssertionError):
    """Raised when a loop step blocked longer than the allowed threshold."""


class _SlowStepHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.messages: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        message = record.getMessage()
        if message.startswith(_SLOW_STEP_MARKER) and " took " in message:
            self.messages.append(message)


@dataclass
class BlockingCallGuard:
    threshold_seconds: float = DEFAULT_THRESHOLD_SECONDS
    violations: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._handler = _SlowStepHandler()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._previous_debug = False
        self._previous_duration = 0.0
        self._previous_level = logging.NOTSET

    async def __aenter__(self) -> "BlockingCallGuard":
        self._loop = asyncio.get_running_loop()
        self._previous_debug = self._loop.get_debug()
        self._previous_duration = self._loop.slow_callback_duration
        self._loop.slow_callback_duration = self.threshold_seconds
        self._loop.set_debug(True)
        asyncio_logger = logging.getLogger(ASYNCIO_LOGGER_NAME)
        self._previous_level = asyncio_logger.level
        if asyncio_logger.getEffectiveLevel() > logging.WARNING:
            asyncio_logger.setLevel(logging.WARNING)
        asyncio_logger.addHandler(self._handler)
        # Only steps that start in debug mode are timed; begin a fresh one.
        await asyncio.sleep(0)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        # asyncio reports a slow step only once it ends, so yield once to let
        # the current step finish and be measured.
        await asyncio.sleep(0)

        asyncio_logger = logging.getLogger(ASYNCIO_LOGGER_NAME)
        asyncio_logger.removeHandler(self._handler)
        asyncio_logger.setLevel(self._previous_level)
        if self._loop is not None:
            self._loop.set_debug(self._previous_debug)
            self._loop.slow_callback_duration = self._previous_duration

        self.violations.extend(self._handler.messages)
        if self.violations and exc_type is None:
            raise BlockingOperationError(
                "Blocking call detected on the event loop: " + "; ".join(self.violations)
            )
        return False
