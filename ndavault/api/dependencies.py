"""
API Dependencies

FastAPI dependency injection for authentication and the billing services.

Security: JWT tokens are verified cryptographically using Supabase JWKS (ES256)
with HS256 fallback via the JWT secret. Never decode without verification.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated, Optional

import jwt
from jwt import PyJWKClient
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ndavault.config.settings import get_settings
from ndavault.infrastructure.exceptions import ConfigurationError
from ndavault.infrastructure.auth.user_directory import SupabaseUserDirectory
from ndavault.infrastructure.db.dependencies import (
    AgreementRepoDep,
    SessionDep,
    SubscriptionRepoDep,
)
from ndavault.infrastructure.payments.provider import PaymentProvider
from ndavault.infrastructure.payments.stripe_provider import StripePaymentProvider
from ndavault.infrastructure.services.alert_job import AlertBatchJob
from ndavault.infrastructure.services.subscription_service import SubscriptionService
from ndavault.infrastructure.services.webhook_dispatcher import WebhookDispatcher


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# Cached JWKS client; PyJWKClient caches keys internally and refreshes them.
_jwks_client: Optional[PyJWKClient] = None


def _get_jwks_client() -> PyJWKClient:
    """Return a singleton PyJWKClient for the Supabase JWKS endpoint."""
    global _jwks_client
    if _jwks_client is None:
        settings = get_settings()
        jwks_url = f"{settings.supabase_url}/auth/v1/.well-known/jwks.json"
        _jwks_client = PyJWKClient(jwks_url, cache_keys=True)
    return _jwks_client


def _decode_with_jwks(token: str, issuer: str) -> dict:
    """Verify JWT using Supabase JWKS endpoint (ES256 asymmetric keys)."""
    client = _get_jwks_client()
    signing_key = client.get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=["ES256"],
        issuer=issuer,
        audience="authenticated",
        options={"require": ["exp", "sub", "iss"]},
    )


def _decode_with_secret(token: str, secret: str, issuer: str) -> dict:
    """Verify JWT using HS256 symmetric secret (legacy Supabase signing)."""
    return jwt.decode(
        token,
        secret,
        algorithms=["HS256"],
        issuer=issuer,
        audience="authenticated",
        options={"require": ["exp", "sub", "iss"]},
    )


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity taken from a verified access token."""
    id: str
    email: Optional[str] = None


def _verify_token(credentials: Optional[HTTPAuthorizationCredentials]) -> dict:
    """
    Verify a bearer token and return its claims.

    Verification strategy (in order):
      1. JWKS (ES256), preferred, supports key rotation automatically.
      2. HS256 with ``SUPABASE_JWT_SECRET``, fallback for legacy signing.

    Raises:
        HTTPException 401: token missing, expired, or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = credentials.credentials
    settings = get_settings()
    issuer = f"{settings.supabase_url}/auth/v1"

    payload: Optional[dict] = None

    # --- Strategy 1: JWKS (ES256) ---
    try:
        payload = _decode_with_jwks(token, issuer)
    except (jwt.exceptions.PyJWKClientError, jwt.InvalidTokenError) as jwks_err:
        logger.debug("JWKS verification failed, trying HS256 fallback: %s", jwks_err)

    # --- Strategy 2: HS256 fallback ---
    if payload is None and settings.supabase_jwt_secret:
        try:
            payload = _decode_with_secret(
                token, settings.supabase_jwt_secret, issuer
            )
        except jwt.ExpiredSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
            )
        except jwt.InvalidTokenError as e:
            logger.warning("HS256 JWT verification also failed: %s", e)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or unverifiable token",
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
        )

    return payload


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedUser:
    """Authenticated user (id and email claim) for protected routes."""
    payload = _verify_token(credentials)
    return AuthenticatedUser(id=payload["sub"], email=payload.get("email"))


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Extract and verify user ID from a Supabase JWT.

    Returns:
        Authenticated user ID (``sub`` claim).
    """
    return _verify_token(credentials)["sub"]


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]


# =============================================================================
# Billing services
# =============================================================================

@lru_cache
def get_payment_provider() -> Optional[PaymentProvider]:
    """
    One Stripe client for the process, built on first use.

    Returns ``None`` when Stripe is not configured; reads then serve the
    local record and billing writes fail with PaymentProviderError.
    """
    try:
        return StripePaymentProvider(get_settings())
    except ConfigurationError as e:
        logger.warning(f"Payment provider disabled: {e.message}")
        return None


@lru_cache
def get_user_directory() -> SupabaseUserDirectory:
    return SupabaseUserDirectory(get_settings())


async def get_subscription_service(
    repo: SubscriptionRepoDep,
    provider: Optional[PaymentProvider] = Depends(get_payment_provider),
) -> SubscriptionService:
    return SubscriptionService(repo, provider)


async def get_webhook_dispatcher(
    repo: SubscriptionRepoDep,
    provider: Optional[PaymentProvider] = Depends(get_payment_provider),
) -> WebhookDispatcher:
    return WebhookDispatcher(repo, provider)


async def get_alert_job(
    agreement_repo: AgreementRepoDep,
    subscription_repo: SubscriptionRepoDep,
    directory: SupabaseUserDirectory = Depends(get_user_directory),
) -> AlertBatchJob:
    return AlertBatchJob(
        agreement_repo,
        subscription_repo,
        user_directory=directory,
        settings=get_settings(),
    )


SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]
WebhookDispatcherDep = Annotated[WebhookDispatcher, Depends(get_webhook_dispatcher)]
AlertJobDep = Annotated[AlertBatchJob, Depends(get_alert_job)]


# =============================================================================
# Re-export DB dependencies for a single import source
# Routers should import from api.dependencies, not db.dependencies directly.
# =============================================================================
__all__ = [
    "AgreementRepoDep",
    "AlertJobDep",
    "AuthenticatedUser",
    "CurrentUser",
    "SessionDep",
    "SubscriptionRepoDep",
    "SubscriptionServiceDep",
    "WebhookDispatcherDep",
    "get_alert_job",
    "get_current_user",
    "get_current_user_id",
    "get_payment_provider",
    "get_subscription_service",
    "get_user_directory",
    "get_webhook_dispatcher",
]
