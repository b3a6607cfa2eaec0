"""Authentication dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import HTTPException, Request, WebSocket

from app.services.jwt import get_jwt_service


@dataclass
class CurrentUser:
    """Authenticated participant context."""

    user_id: int
    email: str
    display_name: str


def user_from_token(token: str | None) -> CurrentUser | None:
    """Build the participant from a bearer token, None if missing or invalid."""
    if not token:
        return None
    payload = get_jwt_service().decode_token(token)
    if not payload:
        return None
    return CurrentUser(
        user_id=int(payload["sub"]),
        email=payload["email"],
        display_name=payload["displayName"],
    )


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]
    return None


def get_current_user(request: Request) -> CurrentUser:
    """Extract and validate the participant from the Bearer token. Raises 401 if invalid."""
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = user_from_token(token)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user


def get_websocket_user(websocket: WebSocket) -> CurrentUser | None:
    """Participant for a WebSocket handshake; browsers cannot set headers, so ``?token=`` is accepted too."""
    auth_header = websocket.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return user_from_token(auth_header[7:])
    return user_from_token(websocket.query_params.get("token"))
