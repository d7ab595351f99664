"""Table of operations awaiting a correlated response, keyed by transaction id."""
import asyncio
import itertools
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from huereset.core.exceptions import ActionTimedOut, HueResetError


@dataclass
class PendingOperation:
    transaction: str
    deadline: float
    future: asyncio.Future
    timer: asyncio.TimerHandle


class TransactionIdFactory:
    """
    Callable producing transaction ids unique for the life of the process.

    Ids are `<prefix><n>` with a process-random prefix by default.
    """

    def __init__(self, prefix: Optional[str] = None):
        self.prefix = prefix if prefix is not None else f"{uuid.uuid4().hex[:8]}-"
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self.prefix}{next(self._counter)}"


class PendingOperations:
    """
    Each entry holds a deadline timer and the future its waiter awaits.
    An entry is removed exactly once: by a matching response, by its timer,
    or by an explicit failure such as supersession.
    """

    def __init__(self, timeout_error: Callable[[str], HueResetError] = None):
        self._table: Dict[str, PendingOperation] = {}
        self._timeout_error = timeout_error or (
            lambda tx: ActionTimedOut(f"No response for transaction {tx}")
        )
        self.logger = logging.getLogger(self.__class__.__name__)

    def register(self, transaction: str, timeout: float) -> asyncio.Future:
        if transaction in self._table:
            raise ValueError(f"Transaction {transaction} is already pending")
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        timer = loop.call_later(timeout, self._expire, transaction)
        self._table[transaction] = PendingOperation(transaction, loop.time() + timeout, future, timer)
        return future

    def resolve(self, transaction: Optional[str], result: Any) -> bool:
        """Complete the waiter for `transaction`. Unknown or missing ids never match."""
        if not transaction:
            return False
        operation = self._table.pop(transaction, None)
        if operation is None:
            return False
        operation.timer.cancel()
        if not operation.future.done():
            operation.future.set_result(result)
        return True

    def fail(self, transaction: str, error: BaseException) -> bool:
        operation = self._table.pop(transaction, None)
        if operation is None:
            return False
        operation.timer.cancel()
        if not operation.future.done():
            operation.future.set_exception(error)
        return True

    def fail_all(self, make_error: Callable[[str], BaseException]) -> int:
        count = 0
        for transaction in list(self._table):
            count += self.fail(transaction, make_error(transaction))
        return count

    def _expire(self, transaction: str):
        self.logger.debug(f"Transaction {transaction} expired")
        self.fail(transaction, self._timeout_error(transaction))

    def deadline(self, transaction: str) -> Optional[float]:
        operation = self._table.get(transaction)
        return operation.deadline if operation else None

    def __contains__(self, transaction: str) -> bool:
        return transaction in self._table

    def __len__(self) -> int:
        return len(self._table)
