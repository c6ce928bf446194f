from fastapi import HTTPException, status

class BaseAppException(HTTPException):
    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)

class ValidationError(BaseAppException):
    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)

class NotFoundError(BaseAppException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class UnauthorizedError(BaseAppException):
    def __init__(self, detail: str = "Not authorised to perform this action"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

class InvalidTransitionError(BaseAppException):
    def __init__(self, detail: str = "Invalid status transition"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class InsufficientBalanceError(BaseAppException):
    def __init__(self, detail: str = "Insufficient leave balance"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class ConcurrencyConflictError(BaseAppException):
    def __init__(self, detail: str = "Record was modified by another request, please retry"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class InternalServiceError(BaseAppException):
    def __init__(self, detail: str = "Internal server error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
