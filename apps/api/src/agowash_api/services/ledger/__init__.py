"""Ledger access: chain clients, typed records and the caching gateway."""

from .chain import ChainClient, ChainReceipt, HttpChainClient, InMemoryChainClient
from .gateway import ADMINS_KEY, LedgerGateway, normalize_address
from .records import ActiveFreeWash, ActivityEntry, FreeWashCoupon, NFTMetadata, checked_int

__all__ = [
    "ADMINS_KEY",
    "ActiveFreeWash",
    "ActivityEntry",
    "ChainClient",
    "ChainReceipt",
    "FreeWashCoupon",
    "HttpChainClient",
    "InMemoryChainClient",
    "LedgerGateway",
    "NFTMetadata",
    "checked_int",
    "normalize_address",
]
