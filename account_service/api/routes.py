"""HTTP route definitions for the account service."""

from __future__ import annotations

import logging
from typing import Literal

import jwt
import redis
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, EmailStr, Field

from ..config import get_settings
from ..domain.account import Account
from ..domain.contracts import AccountFilter, Ordering
from ..domain.errors import AccountError, AuthenticationError
from ..domain.service import AccountService
from ..domain.sessions import IdentityContext, SessionManager
from ..security.rate_limiter import AttemptLimiter
from ..security.redis_rate_limiter import RedisAttemptLimiter
from ..security.tokens import decode_session_token, issue_session_token
from ..timezones import list_timezones

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")

ADMIN_ROLE = "ROLE_ADMIN"


class AccountResponse(BaseModel):
    """Public representation of an `Account`; secrets are never serialised."""

    account_id: str
    username: str
    email: EmailStr
    first_name: str
    last_name: str
    timezone: str
    roles: list[str]
    locked: bool
    enabled: bool
    created_at: str

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        return cls(
            account_id=account.account_id or "",
            username=account.username,
            email=account.email,
            first_name=account.first_name,
            last_name=account.last_name,
            timezone=account.timezone,
            roles=sorted(account.roles),
            locked=account.locked,
            enabled=account.enabled,
            created_at=account.created_at.isoformat(),
        )


class RegisterRequest(BaseModel):
    """Payload accepted when registering a new account."""

    first_name: str = Field(..., min_length=1, max_length=64)
    last_name: str = Field(..., min_length=1, max_length=64)
    email: EmailStr
    password: str = Field(..., min_length=8)
    timezone: str = "UTC"


class LoginRequest(BaseModel):
    login: str = Field(..., min_length=1)
    password: str


class SessionResponse(BaseModel):
    """Session token returned after a successful login."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    account: AccountResponse


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


settings = get_settings()


def _build_attempt_limiter() -> AttemptLimiter | RedisAttemptLimiter:
    """Instantiate the configured attempt limiter, preferring Redis when configured."""
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        try:
            client = redis.from_url(settings.redis_url)
            client.ping()
            logger.info("attempt limiter configured for redis backend at %s", settings.redis_url)
            return RedisAttemptLimiter(
                client,
                max_attempts=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        except redis.RedisError as exc:
            logger.warning("redis attempt limiter unavailable, falling back to in-memory: %s", exc)

    logger.info("attempt limiter using in-memory backend")
    return AttemptLimiter(
        max_attempts=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


attempt_limiter = _build_attempt_limiter()


def get_service(
    request: Request,
    authorization: str | None = Header(default=None),
    api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> AccountService:
    """Build a request-scoped `AccountService` with the caller's identity established."""
    sessions = SessionManager(IdentityContext())
    service: AccountService = request.app.state.account_service_factory(sessions=sessions)

    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid authorization header")
        try:
            claims = decode_session_token(token)
        except jwt.PyJWTError as exc:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid session token") from exc
        account = service.find_account(claims["sub"])
        if account is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="account no longer exists")
        _establish(service, account)
    elif api_key:
        try:
            service.authenticate_api_key(api_key)
        except AuthenticationError as exc:
            raise _http_error(exc) from exc
    return service


def require_user(service: AccountService = Depends(get_service)) -> Account:
    account = service.active_user()
    if account is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="authentication required")
    return account


@router.post("/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Register an account under a generated unique username."""
    try:
        account = service.register(
            payload.first_name,
            payload.last_name,
            payload.email,
            payload.password,
            timezone=payload.timezone,
        )
    except AccountError as exc:
        raise _http_error(exc) from exc
    return AccountResponse.from_domain(account)


@router.get("/accounts", response_model=list[AccountResponse])
def list_accounts(
    username: str | None = Query(default=None),
    email: str | None = Query(default=None),
    enabled: bool | None = Query(default=None),
    locked: bool | None = Query(default=None),
    role: str | None = Query(default=None),
    order_by: Literal["username", "email", "created_at", "last_name"] = Query(default="username"),
    descending: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: Account = Depends(require_user),
    service: AccountService = Depends(get_service),
) -> list[AccountResponse]:
    """List accounts matching the given attributes; administrators only."""
    _require_admin(user)
    accounts = service.find_accounts_by(
        AccountFilter(username=username, email=email, enabled=enabled, locked=locked, role=role),
        [Ordering(field=order_by, descending=descending)],
        limit,
        offset,
    )
    return [AccountResponse.from_domain(account) for account in accounts]


@router.get("/accounts/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: str,
    user: Account = Depends(require_user),
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    if user.account_id != account_id:
        _require_admin(user)
    account = service.find_account(account_id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="account not found")
    return AccountResponse.from_domain(account)


@router.delete("/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: str,
    user: Account = Depends(require_user),
    service: AccountService = Depends(get_service),
) -> Response:
    """Delete an account; holders may delete themselves, administrators anyone."""
    if user.account_id != account_id:
        _require_admin(user)
    try:
        service.remove_account(service.find_account(account_id))
    except AccountError as exc:
        raise _http_error(exc) from exc
    if user.account_id == account_id:
        service.logout()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/session", response_model=SessionResponse)
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
) -> SessionResponse:
    """Check credentials and return a signed session token."""
    rate_key = f"login:{payload.login.lower()}"
    if not attempt_limiter.allow(rate_key):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="rate limited")
    try:
        session = service.authenticate(payload.login, payload.password)
    except AuthenticationError as exc:
        raise _http_error(exc) from exc
    attempt_limiter.reset(rate_key)
    token, expires_in = issue_session_token(session)
    return SessionResponse(
        access_token=token,
        expires_in=expires_in,
        account=AccountResponse.from_domain(session.account),
    )


@router.get("/session", response_model=AccountResponse)
def active_user(user: Account = Depends(require_user)) -> AccountResponse:
    return AccountResponse.from_domain(user)


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
def logout(service: AccountService = Depends(get_service)) -> Response:
    """End the request identity; clients discard their session token."""
    service.logout()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/password/forgot", status_code=status.HTTP_202_ACCEPTED)
def forgot_password(
    payload: ForgotPasswordRequest,
    service: AccountService = Depends(get_service),
) -> dict[str, str]:
    """Send a recovery email when the address is known.

    The response is identical whether or not the address matches an account,
    and whether or not the mail was delivered.
    """
    rate_key = f"reset:{payload.email.lower()}"
    if not attempt_limiter.allow(rate_key):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="rate limited")
    try:
        service.request_password_reset(payload.email)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return {"status": "accepted"}


@router.get("/timezones")
def timezones() -> dict[str, str]:
    return list_timezones()


def _establish(service: AccountService, account: Account) -> None:
    try:
        service.sessions.establish(account)
    except AuthenticationError as exc:
        raise _http_error(exc) from exc


def _require_admin(user: Account) -> None:
    if ADMIN_ROLE not in user.roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="administrator role required")


def _http_error(exc: AccountError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))
