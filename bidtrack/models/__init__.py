# Import every model so Base.metadata knows all tables.
from bidtrack.models.role import Role  # noqa: F401
from bidtrack.models.user import User  # noqa: F401
from bidtrack.models.client import Client  # noqa: F401
from bidtrack.models.bid_type import BidType  # noqa: F401
from bidtrack.models.bid import Bid  # noqa: F401
from bidtrack.models.bid_comment import BidComment  # noqa: F401
from bidtrack.models.audit_log import BidAuditLog  # noqa: F401
from bidtrack.models.notification import Notification  # noqa: F401
