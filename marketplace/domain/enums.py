"""
marketplace.domain.enums -- Enumerations shared by the store and the API.

Keep this module import-clean (stdlib only).
"""

from enum import Enum


class ProfileType(str, Enum):
    """Role of a profile on the marketplace."""
    CLIENT     = "client"
    CONTRACTOR = "contractor"


class ContractStatus(str, Enum):
    """Lifecycle state of a contract."""
    NEW         = "new"
    IN_PROGRESS = "in_progress"
    TERMINATED  = "terminated"

    @property
    def is_active(self) -> bool:
        """Active contracts are listed to their parties."""
        return self is not ContractStatus.TERMINATED


class ReportGrouping(str, Enum):
    """Dimension a paid-job report sums over."""
    PROFESSION = "profession"   # contractor's profession
    CLIENT     = "client"       # paying client profile
