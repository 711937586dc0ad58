"""
Shared enumerations for the animal transport domain.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        SUPER_ADMIN / ADMIN: Platform operators (pricing configuration, payouts)
        SHELTER_ADMIN / MANAGER: Shelter staff who request transports
        DRIVER: Volunteer or paid driver executing transports
        VET: Veterinarian issuing clearances
    """
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    SHELTER_ADMIN = "SHELTER_ADMIN"
    MANAGER = "MANAGER"
    DRIVER = "DRIVER"
    VET = "VET"


ADMIN_ROLES = [UserRole.SUPER_ADMIN, UserRole.ADMIN]
SHELTER_ROLES = [UserRole.SHELTER_ADMIN, UserRole.MANAGER]


class ComplexityType(str, enum.Enum):
    """Animal handling difficulty classification used for complexity fees."""
    STANDARD = "STANDARD"
    PUPPY_KITTEN = "PUPPY_KITTEN"
    MEDICAL = "MEDICAL"
    SPECIAL_HANDLING = "SPECIAL_HANDLING"


class TransportStatus(str, enum.Enum):
    """Transport job status enumeration."""
    PENDING = "PENDING"  # Requested by shelter, no driver yet
    ACCEPTED = "ACCEPTED"  # Driver accepted, route and price locked
    PICKED_UP = "PICKED_UP"  # Animal collected
    IN_TRANSIT = "IN_TRANSIT"  # On the road
    COMPLETED = "COMPLETED"  # Delivered
    CANCELLED = "CANCELLED"


ACTIVE_TRANSPORT_STATUSES = [
    TransportStatus.ACCEPTED,
    TransportStatus.PICKED_UP,
    TransportStatus.IN_TRANSIT,
]


class TransactionStatus(str, enum.Enum):
    """Payment transaction status enumeration."""
    PENDING = "PENDING"
    HOLD = "HOLD"
    PROCESSING = "PROCESSING"
    CHARGED = "CHARGED"
    TRANSFERRED = "TRANSFERRED"
    FAILED = "FAILED"


SETTLED_TRANSACTION_STATUSES = [
    TransactionStatus.CHARGED,
    TransactionStatus.TRANSFERRED,
    TransactionStatus.PROCESSING,
]
