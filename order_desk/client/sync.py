# ==============================================================================
# SINCRONIZACIÓN DE ESTADOS
# ==============================================================================
# StatusSync: cambio de estado optimista contra la API.
#   1. Si el estado no cambia, no hay llamada de red
#   2. begin_update en caché → request → confirm / rollback
#   3. Tras un cambio exitoso, recarga la lista autoritativa
#
# OrderPoller: refresca la caché cada 10 s en un hilo daemon.
# ==============================================================================

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from order_desk.client.api_client import ApiClient, ApiClientError
from order_desk.client.order_cache import OrderCache

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0


class StatusSync:
    """
    Coordina caché local y API para una vista.

    Args:
        client: Cliente de la API (con token)
        cache: Caché local de la vista
        courier: True para usar los endpoints del courier
        list_params: Filtros de la vista (page, limit, status, search)
    """

    def __init__(self, client: ApiClient, cache: OrderCache, courier: bool = False,
                 list_params: Optional[Dict[str, Any]] = None):
        self.client = client
        self.cache = cache
        self.courier = courier
        self.list_params = dict(list_params or {})

    def refresh(self) -> List[Dict[str, Any]]:
        """Recarga la lista desde el servidor y reconcilia la caché."""
        if self.courier:
            orders, _ = self.client.list_courier_orders(**self.list_params)
        else:
            orders, _ = self.client.list_orders(**self.list_params)
        self.cache.reconcile(orders)
        return orders

    def change_status(self, order_key: Any, new_status: str) -> bool:
        """
        Cambia el estado de un pedido.

        Returns:
            True si hubo cambio, False si ya tenía ese estado

        Raises:
            KeyError: Si el pedido no está en caché
            ApiClientError: Si la request falló (la caché ya volvió atrás)
        """
        current = self.cache.get(order_key)
        if current is None:
            raise KeyError(order_key)
        if current.get('status') == new_status:
            return False

        order_id = current.get('id', order_key)
        self.cache.begin_update(order_id, new_status)
        try:
            if self.courier:
                self.client.update_courier_status(order_id, new_status)
            else:
                self.client.update_order_status(order_id, new_status)
        except ApiClientError:
            self.cache.rollback(order_id)
            raise

        self.cache.confirm(order_id)
        try:
            self.refresh()
        except ApiClientError as e:
            # La caché queda con el estado confirmado hasta el próximo poll
            logger.warning("No se pudo recargar pedidos tras el cambio: %s", e)
        return True


class OrderPoller:
    """Refresca la caché de una vista cada `interval` segundos."""

    def __init__(self, sync: StatusSync, interval: float = DEFAULT_POLL_INTERVAL,
                 on_error: Optional[Callable[[ApiClientError], None]] = None):
        self.sync = sync
        self.interval = interval
        self.on_error = on_error
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def poll_once(self) -> bool:
        """Un ciclo de refresco. Retorna False si falló."""
        try:
            self.sync.refresh()
        except ApiClientError as e:
            logger.warning("Fallo al refrescar pedidos: %s", e)
            if self.on_error:
                self.on_error(e)
            return False
        return True

    def _run(self) -> None:
        self.poll_once()
        while not self._stop.wait(self.interval):
            self.poll_once()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name='order-poller', daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
