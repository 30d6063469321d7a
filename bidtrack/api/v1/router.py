from fastapi import APIRouter

from bidtrack.api.v1.health import router as health_router
from bidtrack.api.v1.auth import router as auth_router
from bidtrack.api.v1.users import roles_router, users_router
from bidtrack.api.v1.clients import router as clients_router
from bidtrack.api.v1.bid_types import router as bid_types_router
from bidtrack.api.v1.bids import router as bids_router
from bidtrack.api.v1.notifications import router as notifications_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / CORE
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(auth_router, tags=["auth"])

# ------------------------------------------------------------------
# ADMIN
# ------------------------------------------------------------------
v1_router.include_router(roles_router, tags=["roles"])
v1_router.include_router(users_router, tags=["users"])

# ------------------------------------------------------------------
# CLIENTS / WORKFLOW / BIDS
# ------------------------------------------------------------------
v1_router.include_router(clients_router, tags=["clients"])
v1_router.include_router(bid_types_router, tags=["bid-types"])
v1_router.include_router(bids_router, tags=["bids"])
v1_router.include_router(notifications_router, tags=["notifications"])
