"""Standard responses the guards render instead of a protected page."""

from fastapi import status
from fastapi.responses import JSONResponse

DEFAULT_BACK_URL = "/dashboard"
LOADING_RETRY_AFTER_SECONDS = 1


def forbidden_view(back: str | None = None) -> JSONResponse:
    """403 page with a way back to where the user came from."""
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={
            "detail": "403 - Access Denied",
            "message": "You do not have the required permissions to view this page.",
            "back": back or DEFAULT_BACK_URL,
        },
    )


def loading_view() -> JSONResponse:
    """Spinner stand-in while the session's permissions resolve."""
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={"status": "loading", "detail": "Permissions are still loading"},
        headers={"Retry-After": str(LOADING_RETRY_AFTER_SECONDS)},
    )
