# ==============================================================================
# CLIENTE HTTP DE LA API
# ==============================================================================
# Cliente síncrono (httpx) usado por el panel admin, el portal courier y
# herramientas de línea de comandos.
#   - Timeout de 30 s por request: nunca queda colgado
#   - Desempaqueta el sobre {success, data}
#   - Traduce fallas de transporte a excepciones tipadas
# ==============================================================================

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class ApiClientError(Exception):
    """Base de todos los errores del cliente."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ApiTimeoutError(ApiClientError):
    """La request superó el timeout."""

    def __init__(self, message: str = 'Request timeout'):
        super().__init__(message)


class ApiNetworkError(ApiClientError):
    """No se pudo contactar al servidor."""

    def __init__(self, message: str = 'Network error'):
        super().__init__(message)


class ApiError(ApiClientError):
    """El servidor respondió con error ({success: false, message})."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(message)


class ApiClient:
    """
    Cliente de la API de pedidos.

    Uso:
        with ApiClient('http://localhost:5000') as client:
            client.login('admin@orderdesk.local', 'admin123')
            orders, pagination = client.list_orders(status='received')
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Args:
            base_url: URL del servidor (sin /api)
            token: Token de sesión (opcional, login() lo obtiene)
            timeout: Timeout por request en segundos
            transport: Transporte httpx alternativo (tests)
        """
        self.token = token
        self._client = httpx.Client(
            base_url=base_url.rstrip('/') + '/api',
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> 'ApiClient':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # =========================================================================
    # TRANSPORTE
    # =========================================================================

    def _headers(self) -> Dict[str, str]:
        if self.token:
            return {'Authorization': f'Bearer {self.token}'}
        return {}

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """
        Ejecuta una request y retorna el cuerpo JSON completo.

        Raises:
            ApiTimeoutError: Si se superó el timeout
            ApiNetworkError: Si no hubo conexión
            ApiError: Si el servidor respondió con error
        """
        try:
            response = self._client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("Timeout en %s %s: %s", method, path, e)
            raise ApiTimeoutError() from e
        except httpx.RequestError as e:
            logger.warning("Error de red en %s %s: %s", method, path, e)
            raise ApiNetworkError() from e

        try:
            body = response.json()
        except ValueError:
            if response.is_success:
                return {'success': True, 'raw': response.text}
            raise ApiError(response.status_code, response.reason_phrase or 'Error')

        if not response.is_success or (isinstance(body, dict) and body.get('success') is False):
            message = body.get('message', 'Error') if isinstance(body, dict) else 'Error'
            raise ApiError(response.status_code, message)
        return body if isinstance(body, dict) else {'success': True, 'data': body}

    def _data(self, method: str, path: str, **kwargs) -> Any:
        return self._request(method, path, **kwargs).get('data')

    # =========================================================================
    # AUTENTICACIÓN
    # =========================================================================

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """Inicia sesión y guarda el token. Retorna el usuario."""
        body = self._request('POST', '/auth/login', json={'email': email, 'password': password})
        self.token = body.get('token')
        return body.get('user', {})

    # =========================================================================
    # PEDIDOS
    # =========================================================================

    def create_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Retorna {success, order_id, data, pricing}."""
        return self._request('POST', '/orders', json=payload)

    def quote(self, products: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self._data('POST', '/orders/quote', json={'products': products})

    @staticmethod
    def _list_params(page, limit, status, search) -> Dict[str, Any]:
        params = {'page': page, 'limit': limit}
        if status:
            params['status'] = status
        if search:
            params['search'] = search
        return params

    def list_orders(self, page: int = 1, limit: int = 10, status: Optional[str] = None,
                    search: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        """Retorna (pedidos, paginación)."""
        body = self._request('GET', '/orders', params=self._list_params(page, limit, status, search))
        return body.get('data') or [], body.get('pagination') or {}

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return self._data('GET', f'/orders/{order_id}')

    def update_order_status(self, order_id: str, status: str) -> Dict[str, Any]:
        return self._request('PUT', f'/orders/{order_id}/status', json={'status': status})

    def delete_order(self, order_id: str) -> None:
        self._request('DELETE', f'/orders/{order_id}')

    # =========================================================================
    # COURIER
    # =========================================================================

    def list_courier_orders(self, page: int = 1, limit: int = 10, status: Optional[str] = None,
                            search: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        body = self._request('GET', '/courier/orders', params=self._list_params(page, limit, status, search))
        return body.get('data') or [], body.get('pagination') or {}

    def update_courier_status(self, order_id: str, status: str) -> Dict[str, Any]:
        return self._request('PUT', f'/courier/{order_id}/status', json={'status': status})

    # =========================================================================
    # PRODUCTOS / CONSULTAS / AJUSTES
    # =========================================================================

    def list_products(self) -> List[Dict[str, Any]]:
        return self._data('GET', '/products') or []

    def create_product(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._data('POST', '/products', json=payload)

    def update_product(self, product_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._data('PUT', f'/products/{product_id}', json=payload)

    def delete_product(self, product_id: str) -> None:
        self._request('DELETE', f'/products/{product_id}')

    def create_inquiry(self, message: str) -> Dict[str, Any]:
        return self._data('POST', '/inquiries', json={'message': message})

    def list_inquiries(self) -> List[Dict[str, Any]]:
        return self._data('GET', '/inquiries') or []

    def get_delivery_settings(self) -> Dict[str, Any]:
        return self._data('GET', '/settings/delivery')
