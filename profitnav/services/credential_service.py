"""
Credential Service - marketplace token lifecycle

States of a user's credential:

    no_credential --OAuth exchange--> active
    active --(within 5 min of expiry, derived)--> expiring
    expiring --refresh ok--> active
    expiring --refresh failed / no refresh token--> invalid (is_active = False)
    invalid --new OAuth exchange--> active

`refreshing` only exists while the refresh call is in flight.
"""
import enum
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple
import logging

from sqlalchemy import update, or_
from sqlalchemy.orm import Session

from profitnav.core import settings, commit_or_raise
from profitnav.core.exceptions import (
    MarketplaceAPIError, ReconnectRequiredError, IntegrationNotFoundError, OAuthStateError,
)
from profitnav.core.timeutil import utcnow, ensure_utc
from profitnav.integrations import BaseMarketplaceClient, MercadoLivreClient, TokenGrant
from profitnav.models.integration import MarketplaceCredential, OAuthState

logger = logging.getLogger(__name__)

EXPIRY_BUFFER = timedelta(minutes=5)
OAUTH_STATE_TTL = timedelta(minutes=10)
SYNC_LEASE_TTL = timedelta(minutes=15)


class CredentialState(str, enum.Enum):
    NO_CREDENTIAL = "no_credential"
    ACTIVE = "active"
    EXPIRING = "expiring"
    REFRESHING = "refreshing"
    INVALID = "invalid"


def get_client() -> MercadoLivreClient:
    """Create the marketplace client from settings"""
    return MercadoLivreClient(
        client_id=settings.ML_CLIENT_ID,
        client_secret=settings.ML_CLIENT_SECRET,
        redirect_uri=settings.ML_REDIRECT_URI,
        base_url=settings.ML_API_BASE_URL,
        auth_url=settings.ML_AUTH_URL,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )


def get_credential(db: Session, user_id: str) -> Optional[MarketplaceCredential]:
    """Get the user's marketplace credential"""
    return db.query(MarketplaceCredential).filter(MarketplaceCredential.user_id == user_id).first()


def credential_state(
    credential: Optional[MarketplaceCredential],
    now: Optional[datetime] = None,
) -> CredentialState:
    """Derive the lifecycle state; expiring is never stored"""
    if credential is None:
        return CredentialState.NO_CREDENTIAL
    if not credential.is_active:
        return CredentialState.INVALID

    now = now or utcnow()
    if ensure_utc(credential.expires_at) - EXPIRY_BUFFER > now:
        return CredentialState.ACTIVE
    return CredentialState.EXPIRING


def apply_token_grant(
    credential: MarketplaceCredential,
    grant: TokenGrant,
    now: Optional[datetime] = None,
) -> None:
    """Copy a token grant onto the credential; an absent refresh token keeps the stored one"""
    now = now or utcnow()
    credential.access_token = grant.access_token
    if grant.refresh_token:
        credential.refresh_token = grant.refresh_token
    credential.expires_at = now + timedelta(seconds=grant.expires_in)
    credential.is_active = True


def invalidate_credential(db: Session, credential: MarketplaceCredential, reason: str) -> None:
    """Flip to invalid; the row stays for diagnostics"""
    credential.is_active = False
    commit_or_raise(db, "credential invalidation")
    logger.warning(f"[ML Auth] Credential for user {credential.user_id} invalidated: {reason}")


async def ensure_valid_token(
    db: Session,
    credential: Optional[MarketplaceCredential],
    client: BaseMarketplaceClient,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """
    Return a usable access token, refreshing it when it is about to expire.

    None means the credential is (now) invalid: callers abort and ask the
    user to reconnect instead of retrying.
    """
    now = now or utcnow()
    state = credential_state(credential, now)

    if state in (CredentialState.NO_CREDENTIAL, CredentialState.INVALID):
        return None
    if state == CredentialState.ACTIVE:
        return credential.access_token

    logger.info(f"[ML Auth] Token for user {credential.user_id} expired or expiring soon, refreshing")

    if not credential.refresh_token:
        invalidate_credential(db, credential, "no refresh token stored")
        return None

    logger.debug(f"[ML Auth] user={credential.user_id} state={CredentialState.REFRESHING.value}")
    try:
        grant = await client.refresh_access_token(credential.refresh_token)
    except MarketplaceAPIError as e:
        invalidate_credential(db, credential, f"refresh failed: {e.message}")
        return None

    apply_token_grant(credential, grant, now)
    commit_or_raise(db, "token refresh")
    logger.info(f"[ML Auth] Token refreshed for user {credential.user_id}")
    return credential.access_token


async def require_valid_token(
    db: Session,
    credential: Optional[MarketplaceCredential],
    client: BaseMarketplaceClient,
    now: Optional[datetime] = None,
) -> str:
    """ensure_valid_token, raising ReconnectRequiredError instead of returning None"""
    token = await ensure_valid_token(db, credential, client, now=now)
    if token is None:
        raise ReconnectRequiredError("Marketplace token expired and could not be refreshed. Please reconnect.")
    return token


# ========== OAuth ==========

def create_authorization_url(
    db: Session,
    user_id: str,
    client: BaseMarketplaceClient,
    redirect_uri: Optional[str] = None,
) -> Tuple[str, str]:
    """Persist a one-time state nonce and build the marketplace authorization URL"""
    redirect_uri = redirect_uri or settings.ML_REDIRECT_URI
    state = secrets.token_urlsafe(32)

    db.add(OAuthState(user_id=user_id, state=state, redirect_uri=redirect_uri))
    commit_or_raise(db, "oauth state")

    logger.info(f"[ML Auth] Authorization started for user {user_id}")
    return client.get_auth_url(state, redirect_uri), state


def _consume_state(db: Session, state: str, now: datetime) -> OAuthState:
    pending = db.query(OAuthState).filter(OAuthState.state == state).first()
    if not pending or pending.consumed_at is not None:
        raise OAuthStateError("Unknown or already used authorization state")
    if ensure_utc(pending.created_at) + OAUTH_STATE_TTL < now:
        raise OAuthStateError("Authorization state expired, please start again")

    pending.consumed_at = now
    return pending


async def complete_authorization(
    db: Session,
    state: str,
    code: str,
    client: BaseMarketplaceClient,
) -> MarketplaceCredential:
    """
    OAuth callback: validate the state, exchange the code and upsert the
    user's credential. This is the only transition out of `invalid`.
    """
    now = utcnow()
    pending = _consume_state(db, state, now)
    commit_or_raise(db, "oauth state")

    grant = await client.exchange_code_for_token(code, pending.redirect_uri)
    profile = await client.get_me(grant.access_token)

    external_account_id = str(profile.get("id") or grant.external_account_id or "")
    if not external_account_id:
        raise OAuthStateError("Marketplace did not identify the seller account")

    credential = get_credential(db, pending.user_id)
    if credential is None:
        credential = MarketplaceCredential(user_id=pending.user_id, refresh_token=None)
        db.add(credential)

    credential.external_account_id = external_account_id
    credential.nickname = profile.get("nickname")
    credential.email = profile.get("email")
    credential.site_id = profile.get("site_id") or "MLB"
    apply_token_grant(credential, grant, now)

    commit_or_raise(db, "credential upsert")
    db.refresh(credential)

    logger.info(f"[ML Auth] User {pending.user_id} connected seller {external_account_id}")
    return credential


async def refresh_credential(
    db: Session,
    user_id: str,
    client: BaseMarketplaceClient,
) -> MarketplaceCredential:
    """Manual refresh regardless of expiry"""
    credential = get_credential(db, user_id)
    if credential is None:
        raise IntegrationNotFoundError("No marketplace integration for this user")
    if not credential.refresh_token:
        invalidate_credential(db, credential, "no refresh token stored")
        raise ReconnectRequiredError("No refresh token available. Please reconnect.")

    try:
        grant = await client.refresh_access_token(credential.refresh_token)
    except MarketplaceAPIError as e:
        invalidate_credential(db, credential, f"refresh failed: {e.message}")
        raise ReconnectRequiredError("Failed to refresh token. Please reconnect.") from e

    apply_token_grant(credential, grant)
    commit_or_raise(db, "token refresh")
    db.refresh(credential)
    return credential


def disconnect(db: Session, user_id: str) -> bool:
    """Explicit user disconnect, the only path that deletes the credential"""
    credential = get_credential(db, user_id)
    if not credential:
        return False

    db.delete(credential)
    commit_or_raise(db, "disconnect")

    logger.info(f"[ML Auth] User {user_id} disconnected")
    return True


# ========== Sync lease ==========

def acquire_sync_lease(
    db: Session,
    credential: MarketplaceCredential,
    now: Optional[datetime] = None,
    ttl: timedelta = SYNC_LEASE_TTL,
) -> Optional[str]:
    """
    Atomically claim the per-user sync lease. Fails while another sync holds
    an unexpired lease; a crashed holder's lease lapses after ttl.

    Returns the owner nonce to renew and release the lease with, or None.
    """
    now = now or utcnow()
    owner = secrets.token_hex(16)
    result = db.execute(
        update(MarketplaceCredential)
        .where(
            MarketplaceCredential.id == credential.id,
            or_(
                MarketplaceCredential.sync_lease_until.is_(None),
                MarketplaceCredential.sync_lease_until < now,
            ),
        )
        .values(sync_lease_until=now + ttl, sync_lease_owner=owner)
        .execution_options(synchronize_session=False)
    )
    commit_or_raise(db, "sync lease")
    db.refresh(credential)
    return owner if result.rowcount == 1 else None


def renew_sync_lease(
    db: Session,
    credential: MarketplaceCredential,
    owner: str,
    now: Optional[datetime] = None,
    ttl: timedelta = SYNC_LEASE_TTL,
) -> bool:
    """Push the lease forward; False once another run has taken it over"""
    now = now or utcnow()
    result = db.execute(
        update(MarketplaceCredential)
        .where(
            MarketplaceCredential.id == credential.id,
            MarketplaceCredential.sync_lease_owner == owner,
        )
        .values(sync_lease_until=now + ttl)
        .execution_options(synchronize_session=False)
    )
    commit_or_raise(db, "sync lease renewal")
    return result.rowcount == 1


def release_sync_lease(db: Session, credential: MarketplaceCredential, owner: str) -> bool:
    """Drop the lease if it is still ours; a lease taken over by another run is left alone"""
    result = db.execute(
        update(MarketplaceCredential)
        .where(
            MarketplaceCredential.id == credential.id,
            MarketplaceCredential.sync_lease_owner == owner,
        )
        .values(sync_lease_until=None, sync_lease_owner=None)
        .execution_options(synchronize_session=False)
    )
    commit_or_raise(db, "sync lease release")
    if result.rowcount != 1:
        logger.warning(f"[ML Sync] Lease for user {credential.user_id} was taken over before release")
        return False
    return True
