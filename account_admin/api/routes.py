"""HTTP route definitions for the account admin service."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field

from ..config import get_settings
from ..domain.account import Account, AccountStatus
from ..domain.contracts import RegisterAccountInput, SessionContext
from ..domain.errors import (
    AccountBlockedError,
    AccountError,
    CorruptHashError,
    DuplicateEmailError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidInputError,
    StorageError,
    UnauthenticatedError,
)
from ..domain.service import AccountService
from ..security.guard import AccessGuard
from ..security.rate_limiter import SlidingWindowRateLimiter
from ..security.redis_rate_limiter import RedisSlidingWindowRateLimiter

logger = logging.getLogger(__name__)

router = APIRouter()

bearer_scheme = HTTPBearer(auto_error=False)


class AccountSummary(BaseModel):
    """Public projection of an account returned on login."""

    id: int
    name: str
    email: str
    status: AccountStatus

    @classmethod
    def from_domain(cls, account: Account) -> "AccountSummary":
        return cls(
            id=account.account_id,
            name=account.name,
            email=account.email,
            status=account.status,
        )


class AccountListItem(AccountSummary):
    """Row of the administrative account list."""

    last_login: datetime | None = None

    @classmethod
    def from_domain(cls, account: Account) -> "AccountListItem":
        return cls(
            id=account.account_id,
            name=account.name,
            email=account.email,
            status=account.status,
            last_login=account.last_login,
        )


class RegisterRequest(BaseModel):
    """Registration payload; emptiness is checked by the service."""

    name: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class LoginResponse(BaseModel):
    """Bearer token plus the public projection of the authenticated account."""

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: AccountSummary


class BulkActionRequest(BaseModel):
    """Target set for a bulk block, unblock or delete."""

    model_config = ConfigDict(populate_by_name=True)

    user_ids: list[int] = Field(..., alias="userIds")


class MessageResponse(BaseModel):
    message: str


settings = get_settings()


def _build_rate_limiter() -> SlidingWindowRateLimiter | RedisSlidingWindowRateLimiter:
    """Instantiate the configured rate limiter backend, preferring Redis when available."""
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        try:
            import redis

            client = redis.from_url(settings.redis_url)
            # fail fast here so an unreachable Redis degrades to the in-memory limiter
            client.ping()
            logger.info("rate limiter configured for redis backend")
            return RedisSlidingWindowRateLimiter(
                client,
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        except Exception as exc:  # pragma: no cover - depends on live redis
            logger.warning("redis rate limiter unavailable, falling back to in-memory: %s", exc)

    logger.info("rate limiter using in-memory backend")
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


rate_limiter = _build_rate_limiter()


_STATUS_BY_ERROR: tuple[tuple[type[AccountError], int], ...] = (
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (DuplicateEmailError, status.HTTP_400_BAD_REQUEST),
    (InvalidCredentialsError, status.HTTP_400_BAD_REQUEST),
    (UnauthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (AccountBlockedError, status.HTTP_403_FORBIDDEN),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
)


def _http_error(exc: AccountError) -> HTTPException:
    """Translate a domain error into the HTTP response the client sees."""
    if isinstance(exc, (StorageError, CorruptHashError)):
        logger.error("request failed with server error: %s", exc)
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="server error",
        )
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            headers = None
            if status_code == status.HTTP_401_UNAUTHORIZED:
                headers = {"WWW-Authenticate": "Bearer"}
            return HTTPException(status_code=status_code, detail=str(exc), headers=headers)
    logger.error("unmapped account error: %r", exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="server error")


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400, like any other invalid input."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        detail = f"invalid request: {location} {first.get('msg', '')}".strip()
    else:
        detail = "invalid request"
    logger.info("rejected malformed request to %s: %s", request.url.path, detail)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def get_guard(request: Request) -> AccessGuard:
    guard: AccessGuard = request.app.state.access_guard
    return guard


def require_session(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    guard: AccessGuard = Depends(get_guard),
) -> SessionContext:
    """Gate a route behind a valid token for a live, non-blocked account."""
    token = credentials.credentials if credentials else None
    try:
        session = guard.resolve(token)
    except AccountError as exc:
        raise _http_error(exc) from exc
    request.state.session = session
    return session


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def login_rate_key(client_host: str, email: str | None) -> str:
    """Throttle key for login attempts from one client host against one email."""
    return f"login:{client_host}:{(email or '').strip().lower()}"


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: Request,
    payload: RegisterRequest,
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    """Register a new account. No token is issued."""
    if not rate_limiter.allow(f"register:{_client_key(request)}"):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="rate limited")
    try:
        service.register(
            RegisterAccountInput(
                name=payload.name,
                email=payload.email,
                password=payload.password,
            )
        )
    except AccountError as exc:
        raise _http_error(exc) from exc
    return MessageResponse(message="User registered successfully")


@router.post("/login", response_model=LoginResponse)
def login(
    request: Request,
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
) -> LoginResponse:
    """Exchange email and password for a bearer token."""
    rate_key = login_rate_key(_client_key(request), payload.email)
    if not rate_limiter.allow(rate_key):
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="rate limited")
    try:
        session = service.authenticate(payload.email, payload.password)
    except AccountError as exc:
        raise _http_error(exc) from exc
    rate_limiter.reset(rate_key)
    return LoginResponse(
        token=session.token,
        expires_in=session.expires_in,
        user=AccountSummary.from_domain(session.account),
    )


@router.get("/users", response_model=list[AccountListItem])
def list_users(
    session: SessionContext = Depends(require_session),
    service: AccountService = Depends(get_service),
) -> list[AccountListItem]:
    """List every account, most recent login first."""
    try:
        accounts = service.list_accounts()
    except AccountError as exc:
        raise _http_error(exc) from exc
    return [AccountListItem.from_domain(account) for account in accounts]


@router.post("/block", response_model=MessageResponse)
def block_users(
    payload: BulkActionRequest,
    session: SessionContext = Depends(require_session),
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    """Block the selected accounts. Including yourself rejects the whole batch."""
    try:
        service.block_accounts(session.account, payload.user_ids)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return MessageResponse(message="Users blocked successfully!")


@router.post("/unblock", response_model=MessageResponse)
def unblock_users(
    payload: BulkActionRequest,
    session: SessionContext = Depends(require_session),
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    try:
        service.unblock_accounts(session.account, payload.user_ids)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return MessageResponse(message="Users unblocked successfully!")


@router.post("/delete", response_model=MessageResponse)
def delete_users(
    payload: BulkActionRequest,
    session: SessionContext = Depends(require_session),
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    """Permanently delete the selected accounts. Including yourself rejects the whole batch."""
    try:
        service.delete_accounts(session.account, payload.user_ids)
    except AccountError as exc:
        raise _http_error(exc) from exc
    return MessageResponse(message="Users deleted successfully!")
