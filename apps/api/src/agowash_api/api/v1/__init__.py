from fastapi import APIRouter

from .endpoints import events, health, ledger, prices, transactions, users

router = APIRouter()
router.include_router(health.router, tags=["Health"])
router.include_router(users.router)
router.include_router(transactions.router)
router.include_router(ledger.router)
router.include_router(prices.router)
router.include_router(events.router)
