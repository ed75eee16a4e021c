# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contratos (protocolos) que implementan los repositorios JSON.
# Los servicios dependen de estos contratos, no de las clases concretas,
# así los tests pueden sustituirlos por dobles en memoria.
#
# ==============================================================================

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class IRepository(Protocol):
    """Operaciones mínimas de cualquier repositorio."""

    def reload(self) -> None:
        ...


@runtime_checkable
class IOrderRepository(IRepository, Protocol):
    """Acceso a pedidos."""

    def load(self) -> List[Dict[str, Any]]:
        ...

    def get_order(self, order_key: str) -> Optional[Dict[str, Any]]:
        ...

    def add_order(self, order_data: Dict[str, Any]) -> None:
        ...

    def update_order(self, order_key: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        ...

    def delete_order(self, order_key: str) -> Optional[Dict[str, Any]]:
        ...

    def next_internal_id(self) -> str:
        ...

    def next_order_code(self, when=None) -> str:
        ...


@runtime_checkable
class IProductRepository(IRepository, Protocol):
    """Acceso al catálogo."""

    def list_products(self) -> List[Dict[str, Any]]:
        ...

    def get_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        ...

    def save_product(self, product_data: Dict[str, Any]) -> None:
        ...

    def delete_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        ...

    def next_id(self) -> str:
        ...


@runtime_checkable
class IUserRepository(IRepository, Protocol):
    """Acceso a usuarios del panel."""

    def get_user(self, email: str) -> Optional[Dict[str, Any]]:
        ...

    def get_user_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        ...

    def create_user(self, email: str, full_name: str, password_hash: str,
                    role: str = 'courier') -> Optional[int]:
        ...


@runtime_checkable
class IAuditRepository(IRepository, Protocol):
    """Log de auditoría."""

    def log(self, log_type: str, user: str, message: str,
            related_id: str = '', details: Optional[Dict[str, Any]] = None) -> None:
        ...

    def load(self) -> List[Dict[str, Any]]:
        ...


@runtime_checkable
class ISettingsRepository(IRepository, Protocol):
    """Configuración global."""

    def get_delivery(self) -> Dict[str, Any]:
        ...

    def set_delivery(self, values: Dict[str, Any]) -> None:
        ...

    def get_time_range(self) -> Dict[str, Any]:
        ...

    def set_time_range(self, values: Dict[str, Any]) -> None:
        ...
