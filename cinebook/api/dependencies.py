import hmac

from fastapi import Header, HTTPException, Request, status

from cinebook.application.facade import BookingFacade
from cinebook.config import Settings


def get_facade(request: Request) -> BookingFacade:
    return request.app.state.facade


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    # Authentication happens upstream; the gateway forwards the caller's id.
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header is required",
        )
    return x_user_id.strip()


def require_admin(
    request: Request,
    x_admin_key: str | None = Header(default=None),
) -> None:
    expected = get_settings(request).admin_api_key
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access is not configured",
        )
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as an admin",
        )
