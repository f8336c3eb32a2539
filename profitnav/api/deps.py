"""
Shared API dependencies
"""
from typing import Optional
from fastapi import Header, HTTPException, status

from profitnav.integrations import BaseMarketplaceClient
from profitnav.services import credential_service


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Principal id supplied by the identity provider in front of the API"""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return x_user_id.strip()


def get_marketplace_client() -> BaseMarketplaceClient:
    return credential_service.get_client()
