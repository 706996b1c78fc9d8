from .tenancy import Business, Branch
from .auth import Identity, Profile, SessionToken
from .resources import ResourceKind, ScopedResource, StockAdjustment
from .security import SecurityEvent, OwnershipRepairAudit

__all__ = [
    'Business', 'Branch',
    'Identity', 'Profile', 'SessionToken',
    'ResourceKind', 'ScopedResource', 'StockAdjustment',
    'SecurityEvent', 'OwnershipRepairAudit',
]
