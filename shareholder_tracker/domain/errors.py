"""Error types raised by the shareholder tracker."""
from __future__ import annotations

from enum import Enum
from typing import Any, Sequence


class ShareholderTrackerError(Exception):
    """Base class for every error the package raises on purpose."""


class ParseErrorReason(str, Enum):
    NO_DATE_HEADER = "NoDateHeader"
    UNREADABLE_WORKBOOK = "UnreadableWorkbook"


class ParseError(ShareholderTrackerError):
    """An upload was rejected wholesale; nothing from it is ingested."""

    def __init__(self, reason: ParseErrorReason, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        message = reason.value if not detail else f"{reason.value}: {detail}"
        super().__init__(message)


class GroupSaveError(ShareholderTrackerError):
    """Structured rejection of a manual group save.

    ``status_code`` and ``to_payload()`` match what the group registry's HTTP
    layer returns, so a transport can forward them unchanged.
    """

    status_code = 400
    error_code = "invalid_group"

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error_code}


class DuplicateGroupNameError(GroupSaveError):
    status_code = 409
    error_code = "duplicate_name"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"A group named {name!r} already exists")


class CategoryRequiredError(GroupSaveError):
    """Members span several categories and no category was chosen."""

    status_code = 400
    error_code = "category_required"

    def __init__(self, categories: Sequence[str]) -> None:
        self.categories = sorted(categories)
        super().__init__(f"Members span categories {', '.join(self.categories)}; pick one")

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error_code, "categories": list(self.categories)}


class InvalidGroupError(GroupSaveError):
    def to_payload(self) -> dict[str, Any]:
        return {"error": str(self)}


class GroupNotFoundError(ShareholderTrackerError):
    status_code = 404

    def __init__(self, group_id: int) -> None:
        self.group_id = group_id
        super().__init__(f"Group {group_id} not found")


class QuotaExceededError(ShareholderTrackerError):
    """The fast storage tier cannot hold the value."""
