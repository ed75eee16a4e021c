# ==============================================================================
# CLIENTE - Acceso a la API desde las vistas (admin / courier)
# ==============================================================================

from order_desk.client.api_client import (
    ApiClient,
    ApiClientError,
    ApiError,
    ApiNetworkError,
    ApiTimeoutError,
)
from order_desk.client.order_cache import CachedOrder, OrderCache
from order_desk.client.sync import OrderPoller, StatusSync

__all__ = [
    'ApiClient',
    'ApiClientError',
    'ApiError',
    'ApiNetworkError',
    'ApiTimeoutError',
    'CachedOrder',
    'OrderCache',
    'OrderPoller',
    'StatusSync',
]
