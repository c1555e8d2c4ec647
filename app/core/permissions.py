from enum import Enum
from typing import List


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    FH_CEM = "FH_CEM"
    # Registered but not yet approved; cannot reach any funding request.
    NEW = "NEW"

    @classmethod
    def parse(cls, value: str | None) -> "UserRole":
        """Unknown or missing roles are treated as unapproved."""
        try:
            return cls(str(value or "").upper())
        except ValueError:
            return cls.NEW


class FundingStatus(str, Enum):
    SUBMITTED = "Submitted"
    VERIFYING = "Verifying"
    APPROVED = "Approved"
    FUNDED = "Funded"
    CLOSED = "Closed"

    @classmethod
    def list_all(cls) -> List[str]:
        return [status.value for status in cls]


# Statuses in which owners and organization-mates may still change a record.
EDITABLE_STATUSES = frozenset({FundingStatus.SUBMITTED.value})


class RecordAction(str, Enum):
    VIEW = "request.view"
    EDIT = "request.edit"
    DELETE = "request.delete"
    DELETE_ATTACHMENT = "request.attachment.delete"
