"""
Auth Routes - Cookie session login and logout.

- POST /auth/login  : verify email/password, issue a session cookie
- POST /auth/logout : revoke the session and clear the cookie
- GET  /auth/me     : the current user
"""
from typing import Dict

from fastapi import APIRouter, Depends, Request, Response

from busy_assistant.api.deps import get_current_user, get_session_token
from busy_assistant.core.config import get_settings
from busy_assistant.core.exceptions import AuthenticationError
from busy_assistant.core.logging_config import get_logger
from busy_assistant.core.security import authenticate_user, create_session, revoke_session
from busy_assistant.database.connection import get_database
from busy_assistant.models.auth import LoginRequest, LoginResponse
from busy_assistant.models.chat import ErrorResponse

logger = get_logger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Auth"],
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid session"},
    }
)


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in with email and password",
)
def login(body: LoginRequest, response: Response) -> LoginResponse:
    settings = get_settings()

    with get_database().get_session() as session:
        user = authenticate_user(session, body.email, body.password)
        if user is not None:
            auth_session = create_session(session, user.id)
            token = auth_session.token
            user_data = user.to_dict()

    if user is None:
        logger.warning(f"Failed login for {body.email.strip().lower()}")
        raise AuthenticationError("Invalid email or password")

    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.is_production(),
    )

    logger.info(f"User logged in: {user_data['id'][:8]}...")
    return LoginResponse(user=user_data, token=token)


@router.post("/logout", summary="Log out and clear the session cookie")
def logout(request: Request, response: Response) -> Dict:
    token = get_session_token(request)

    with get_database().get_session() as session:
        revoked = revoke_session(session, token)

    response.delete_cookie(get_settings().session_cookie_name)
    logger.info(f"Logout (session revoked={revoked})")
    return {"success": True}


@router.get("/me", summary="Current user")
def me(user: Dict = Depends(get_current_user)) -> Dict:
    return {"success": True, "user": user}
