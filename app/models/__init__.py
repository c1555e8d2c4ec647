from app.models.fh_cem import FHCem
from app.models.funding_request import FundingRequest
from app.models.user import User

__all__ = [
    "FHCem",
    "FundingRequest",
    "User",
]
