"""
Waiting for a new block after a transaction was broadcast.
"""
import enum
import logging
import threading
import time
from typing import Optional

from ._rate_limited_log import rate_limited_log
from .exceptions import ChainQueryError, ConfirmationCancelled, ConfirmationTimeout
from .node import NodeClient


class PollState(str, enum.Enum):
    """States of a confirmation wait"""
    START = "start"
    POLLING = "polling"
    CONFIRMED = "confirmed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class ConfirmationPoller:
    """
    Blocks until the chain height moves past the height seen at submission.

    The wait is bounded by a wall-clock timeout and can be cancelled from
    another thread with :meth:`cancel`. Failed status queries are retried with
    exponential backoff instead of counting as "no new block".
    """

    def __init__(
        self,
        node: NodeClient,
        poll_interval: float = 0.5,
        timeout: float = 60.0,
        max_backoff: float = 5.0,
        logger: Optional[logging.Logger] = None
    ):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.node = node
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.max_backoff = max_backoff
        self.logger = logger or logging.getLogger(__name__)
        self.state = PollState.START
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop an in-flight wait; it raises ConfirmationCancelled"""
        self._cancelled.set()

    def _height_or_none(self, failures: int) -> Optional[int]:
        try:
            return self.node.get_block_height()
        except ChainQueryError as e:
            rate_limited_log(
                f"Status query failed while waiting for confirmation: {e}",
                level="warning",
                interval=30,
                logger_instance=self.logger,
            )
            self.logger.debug(f"Status query failure #{failures + 1}: {e}")
            return None

    def wait(self, start_height: Optional[int] = None) -> int:
        """
        Wait for confirmation.

        Args:
            start_height: Height observed before broadcasting; read from the
                node when omitted

        Returns:
            The first observed height greater than the start height

        Raises:
            ConfirmationTimeout: If no new block appeared within the timeout
            ConfirmationCancelled: If cancel() was called
        """
        self._cancelled.clear()
        self.state = PollState.START
        deadline = time.monotonic() + self.timeout
        failures = 0
        last_height = start_height

        while start_height is None:
            start_height = self._height_or_none(failures)
            if start_height is None:
                failures += 1
                self._sleep(self._backoff(failures), deadline, None, None)
            last_height = start_height

        self.logger.debug(f"Waiting for a block above height {start_height}")
        self.state = PollState.POLLING

        while True:
            height = self._height_or_none(failures)
            if height is None:
                failures += 1
                delay = self._backoff(failures)
            else:
                failures = 0
                last_height = height
                if height > start_height:
                    self.state = PollState.CONFIRMED
                    self.logger.info(f"Confirmed at block height {height}")
                    return height
                delay = self.poll_interval
            self._sleep(delay, deadline, start_height, last_height)

    def _backoff(self, failures: int) -> float:
        return min(self.poll_interval * (2 ** min(failures, 32)), self.max_backoff)

    def _sleep(self, delay: float, deadline: float, start_height: Optional[int], last_height: Optional[int]) -> None:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            self.state = PollState.TIMED_OUT
            raise ConfirmationTimeout(
                f"No block above height {start_height} within {self.timeout}s (last seen {last_height})",
                start_height=start_height,
                last_height=last_height,
            )
        if self._cancelled.wait(min(delay, remaining)):
            self.state = PollState.CANCELLED
            raise ConfirmationCancelled(
                "Confirmation wait cancelled",
                start_height=start_height,
                last_height=last_height,
            )
