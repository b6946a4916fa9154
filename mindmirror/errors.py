# error taxonomy shared by services and routers
# services raise the plain exceptions, routers translate them to http errors

from typing import Optional

from fastapi import HTTPException


class ResponseParseError(ValueError):
    """model output could not be parsed as a json object"""

    def __init__(self, message: str, raw: str):
        super().__init__(message)
        self.raw = raw


class SchemaViolation(ValueError):
    """parsed model output is missing required fields or has invalid values"""

    def __init__(self, message: str, fields: Optional[list[str]] = None):
        super().__init__(message)
        self.fields = fields or []


class ReflectionNotFound(LookupError):
    pass


class ReflectionForbidden(PermissionError):
    pass


class ApiError(HTTPException):
    """http error whose body carries the rate-limit flag for the frontend"""

    def __init__(self, status_code: int, detail: str, is_rate_limited: bool = False):
        super().__init__(status_code=status_code, detail=detail)
        self.is_rate_limited = is_rate_limited
