"""ORM models. Importing this package registers every table on Base.metadata."""

from bazaar.models.address import AddressType, Location, UserAddress
from bazaar.models.courier import CourierCredentials, CourierEnvironment, CourierProvider
from bazaar.models.customer import (
    Complaint,
    ComplaintMessage,
    ComplaintPriority,
    ComplaintStatus,
    CustomerProfile,
    LoyaltyTransaction,
    LoyaltyTransactionType,
    Review,
    User,
    WalletTransaction,
    WalletTransactionType,
)

__all__ = [
    "AddressType",
    "Complaint",
    "ComplaintMessage",
    "ComplaintPriority",
    "ComplaintStatus",
    "CourierCredentials",
    "CourierEnvironment",
    "CourierProvider",
    "CustomerProfile",
    "Location",
    "LoyaltyTransaction",
    "LoyaltyTransactionType",
    "Review",
    "User",
    "UserAddress",
    "WalletTransaction",
    "WalletTransactionType",
]
