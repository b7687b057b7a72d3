from typing import Any, Dict, List, Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    code = "SERVICE_ERROR"

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_detail(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(ServiceError):
    """Malformed or inconsistent input. Carries every problem found, not just the first."""

    code = "VALIDATION_ERROR"

    def __init__(self, errors: List[Any], message: str = "Validation failed") -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)
        self.errors = list(errors)

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail["errors"] = self.errors
        return detail


class BusinessError(ServiceError):
    """Well-formed input that breaks a domain rule. `code` is stable for clients."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, status_code)
        self.code = code
        self.extra = extra or {}

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        detail.update(self.extra)
        return detail
