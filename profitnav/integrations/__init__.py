# Marketplace Integrations Package
from .base import (
    BaseMarketplaceClient, TokenGrant, RemotePage, RemoteOrder, RemoteOrderItem,
    RemoteListing, RemoteVariation,
)
from .mercadolivre import MercadoLivreClient

__all__ = [
    "BaseMarketplaceClient",
    "MercadoLivreClient",
    "TokenGrant",
    "RemotePage",
    "RemoteOrder",
    "RemoteOrderItem",
    "RemoteListing",
    "RemoteVariation",
]
