from bidtrack.schemas.bid_types import (
    StatusSchema,
    TransitionSchema,
    BidTypeCreateRequest,
    BidTypeUpdateRequest,
    BidTypeResponse,
)
from bidtrack.schemas.bids import BidCreateRequest, BidUpdateRequest, BidResponse, BidListResponse
from bidtrack.schemas.auth import LoginRequest, TokenResponse
