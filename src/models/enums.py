"""
Enum definitions for the Drive Case Folder API
"""

from enum import Enum


class StatusRole(str, Enum):
    """
    Role of a status folder directly under a case root.

    The role is not stored on the folder; it is inferred from the folder's
    label (see STATUS_FOLDER_NAMES).
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TokenRole(str, Enum):
    DEBTOR = "debtor"
    REVIEWER = "reviewer"


class TokenScope(str, Enum):
    PREVIEW = "preview"
    LIST = "list"


# Case registry status values used by this service; the column itself is free-form text
class CaseStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
