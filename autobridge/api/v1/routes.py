from fastapi import APIRouter
from autobridge.api.v1.endpoints import wallet, bids

router = APIRouter()

router.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
router.include_router(bids.router, prefix="/bids", tags=["bids"])
