"""HTTP error taxonomy and the JSON envelope every response uses."""

from fastapi.responses import JSONResponse

UNAUTHORIZED_MESSAGE = "Unauthorized: Invalid or missing auth key"


class ApiError(Exception):
    """An error that maps to one HTTP status; code in the envelope mirrors it."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    """Malformed path or query."""

    status_code = 400


class AuthError(ApiError):
    status_code = 401

    def __init__(self, message: str = UNAUTHORIZED_MESSAGE) -> None:
        super().__init__(message)


class NotFoundError(ApiError):
    """Unknown route, or a known route with the wrong method."""

    status_code = 404


class InternalError(ApiError):
    status_code = 500


def envelope(code: int, message: str, data: object = None, *, status_code: int = 200) -> JSONResponse:
    """{code, message, data}; code is 0 on success, else the HTTP status."""
    return JSONResponse(
        content={"code": code, "message": message, "data": data},
        status_code=status_code,
    )


def success(data: object, message: str = "success") -> JSONResponse:
    return envelope(0, message, data)


def error_response(error: ApiError) -> JSONResponse:
    return envelope(error.status_code, error.message, status_code=error.status_code)
