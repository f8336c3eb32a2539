"""
Integrations API - Mercado Livre connection lifecycle
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from profitnav.core.database import get_db
from profitnav.integrations import BaseMarketplaceClient
from profitnav.schemas.integration import (
    CredentialStatusResponse, AuthorizeResponse, OAuthCallbackRequest,
)
from profitnav.services import credential_service
from .deps import get_current_user_id, get_marketplace_client

logger = logging.getLogger(__name__)

integrations_router = APIRouter(prefix="/integrations/mercadolivre", tags=["integrations"])


def _status_response(credential) -> CredentialStatusResponse:
    state = credential_service.credential_state(credential)
    if credential is None:
        return CredentialStatusResponse(connected=False, state=state.value)

    return CredentialStatusResponse(
        connected=credential.is_active,
        state=state.value,
        external_account_id=credential.external_account_id,
        nickname=credential.nickname,
        site_id=credential.site_id,
        expires_at=credential.expires_at,
        last_sync_at=credential.last_sync_at,
    )


@integrations_router.get("/status", response_model=CredentialStatusResponse)
async def integration_status(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Connection state of the user's seller account"""
    return _status_response(credential_service.get_credential(db, user_id))


@integrations_router.post("/authorize", response_model=AuthorizeResponse)
async def authorize(
    redirect_uri: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    client: BaseMarketplaceClient = Depends(get_marketplace_client),
):
    """Start the OAuth flow"""
    url, state = credential_service.create_authorization_url(db, user_id, client, redirect_uri)
    return AuthorizeResponse(authorization_url=url, state=state)


@integrations_router.post("/callback", response_model=CredentialStatusResponse)
async def oauth_callback(
    payload: OAuthCallbackRequest,
    db: Session = Depends(get_db),
    client: BaseMarketplaceClient = Depends(get_marketplace_client),
):
    """Finish the OAuth flow; the state identifies the user"""
    credential = await credential_service.complete_authorization(db, payload.state, payload.code, client)
    return _status_response(credential)


@integrations_router.post("/refresh", response_model=CredentialStatusResponse)
async def refresh_token(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    client: BaseMarketplaceClient = Depends(get_marketplace_client),
):
    credential = await credential_service.refresh_credential(db, user_id, client)
    return _status_response(credential)


@integrations_router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Remove the stored credential"""
    if not credential_service.disconnect(db, user_id):
        raise HTTPException(status_code=404, detail="Integration not found")
