"""
Marketplace integration schemas
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class CredentialStatusResponse(BaseModel):
    connected: bool
    state: str  # no_credential, active, expiring, invalid
    external_account_id: Optional[str] = None
    nickname: Optional[str] = None
    site_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    last_sync_at: Optional[datetime] = None


class AuthorizeResponse(BaseModel):
    authorization_url: str
    state: str


class OAuthCallbackRequest(BaseModel):
    code: str
    state: str
