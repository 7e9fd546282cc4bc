from fastapi import HTTPException, status


class AppException(HTTPException):
    def __init__(self, code: str, message: str, status_code: int = 400, details: dict = None):
        self.error_code = code
        self.error_message = message
        self.error_details = details
        super().__init__(
            status_code=status_code,
            detail={
                "error": {
                    "code": code,
                    "message": message,
                    "details": details,
                }
            },
        )


class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: str = None):
        details = {"entity": entity}
        if entity_id:
            details["id"] = entity_id
        super().__init__(
            code="NOT_FOUND",
            message=f"{entity}不存在",
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
        )


class DuplicateError(AppException):
    def __init__(self, message: str = "記錄已存在", details: dict = None):
        super().__init__(
            code="DUPLICATE",
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
        )


class ConflictError(AppException):
    def __init__(self, message: str, details: dict = None):
        super().__init__(
            code="CONFLICT",
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
        )


class ForbiddenError(AppException):
    def __init__(self, message: str = "你沒有權限進行此操作"):
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
        )


class UnauthorizedError(AppException):
    def __init__(self, message: str = "請先登入"):
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


class ValidationError(AppException):
    def __init__(self, message: str, field: str = None):
        details = {"field": field} if field else None
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class InvalidStatusTransition(AppException):
    def __init__(self, current: str, target: str):
        super().__init__(
            code="INVALID_TRANSITION",
            message=f"不能將狀態由 {current} 更改為 {target}",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"current": current, "target": target},
        )


class ServiceUnavailableError(AppException):
    """Storage or identity provider I/O failed; the caller may retry."""

    def __init__(self, message: str = "服務暫時無法使用，請稍後再試"):
        super().__init__(
            code="SERVICE_UNAVAILABLE",
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
