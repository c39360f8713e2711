# src/richmenu/domain/exceptions.py
"""
Rich Menu Domain Exceptions
"""
from typing import Any, Dict, List, Optional

from src.shared.exceptions import (
    AuthenticationError,
    BadGatewayError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
)


class RichMenuDomainError(DomainError):
    """Base exception for rich menu domain errors."""
    code = "richmenu_error"


class InvariantViolation(RichMenuDomainError):
    """Raised when an entity transition would break its invariants."""
    code = "invariant_violation"


class LineChannelNotConfiguredError(AuthenticationError):
    """Raised when the user has no LINE channel access token on file."""
    code = "line_channel_not_configured"

    def __init__(self, user_id: Any) -> None:
        super().__init__(
            "No LINE channel access token is configured for this account",
            details={"user_id": str(user_id)},
        )


class MenuValidationError(ValidationError):
    """Raised when menus fail pre-flight checks; publishing never starts."""
    code = "menu_validation_failed"

    def __init__(self, issues: List[Dict[str, str]]) -> None:
        self.issues = issues
        super().__init__(
            f"{len(issues)} validation issue(s) must be fixed before publishing",
            details={"errors": issues},
        )


class PublishInProgressError(ConflictError):
    """Raised when another publish holds the per-user lock."""
    code = "publish_in_progress"

    def __init__(self, user_id: Any) -> None:
        super().__init__(
            "Another publish is already running for this account",
            details={"user_id": str(user_id)},
        )


class PublishJobNotFoundError(NotFoundError):
    code = "publish_job_not_found"


class DraftNotFoundError(NotFoundError):
    code = "draft_not_found"


class LineAPIError(BadGatewayError):
    """
    Non-success response from the LINE Messaging API.

    The message embeds the raw status and body so it can be shown to the
    user verbatim (quota exceeded, bad image format, ...).
    """
    code = "line_api_error"

    def __init__(self, operation: str, status_code: Optional[int], body: str) -> None:
        self.operation = operation
        self.upstream_status = status_code
        self.body = body
        status_text = status_code if status_code is not None else "no response"
        super().__init__(
            f"{operation} failed ({status_text}): {body}",
            details={"operation": operation, "status": status_code},
        )

    @property
    def is_not_found(self) -> bool:
        if self.upstream_status == 404:
            return True
        # LINE answers 400 "richmenu alias not found" on alias updates
        return self.upstream_status == 400 and "not found" in self.body.lower()


class ImageLoadError(RichMenuDomainError):
    """Raised when a menu image cannot be decoded or downloaded."""
    code = "image_load_error"


class MenuStepFailedError(RichMenuDomainError):
    """A per-menu provisioning step failed; the publish is aborted."""
    code = "publish_failed"

    def __init__(self, alias_id: str, step: str, cause: str) -> None:
        self.alias_id = alias_id
        self.step = step
        super().__init__(cause, details={"alias_id": alias_id, "step": step})
