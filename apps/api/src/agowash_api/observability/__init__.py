from .ledger import LedgerObservabilityStore, LedgerSnapshot, get_ledger_store

__all__ = ["get_ledger_store", "LedgerObservabilityStore", "LedgerSnapshot"]
