# huereset/orchestration/__init__.py
"""Reset orchestration: state machine, pending correlation table, rejoin watch."""

from .orchestrator import ResetOrchestrator
from .state_machine import ResetStateMachine, ResetState
from .pending import PendingOperations, PendingOperation, TransactionIdFactory
from .rejoin_watcher import RejoinWatcher

__all__ = [
    'ResetOrchestrator',
    'ResetStateMachine',
    'ResetState',
    'PendingOperations',
    'PendingOperation',
    'TransactionIdFactory',
    'RejoinWatcher',
]
