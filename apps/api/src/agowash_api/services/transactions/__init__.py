from .orchestrator import OrchestrationState, TransactionOrchestrator, TransactionOutcome, TransactionRequest
from .store import TransactionStore

__all__ = [
    "OrchestrationState",
    "TransactionOrchestrator",
    "TransactionOutcome",
    "TransactionRequest",
    "TransactionStore",
]
