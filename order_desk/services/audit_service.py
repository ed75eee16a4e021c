# ==============================================================================
# SERVICIO DE AUDITORÍA
# ==============================================================================
# Centraliza el registro de eventos del negocio con mensajes humanizados.
# ==============================================================================

from typing import Any, Dict, List, Optional

from order_desk.models import AuditType
from order_desk.repositories.interfaces import IAuditRepository


class AuditService:
    """
    Servicio para registro y consulta de auditoría.

    Categorías: PEDIDO, ESTADO, PRODUCTO, SISTEMA.
    Todo cambio de estado de un pedido deja un log de ESTADO.
    """

    TYPE_PEDIDO = AuditType.PEDIDO.value
    TYPE_ESTADO = AuditType.ESTADO.value
    TYPE_PRODUCTO = AuditType.PRODUCTO.value
    TYPE_SISTEMA = AuditType.SISTEMA.value

    def __init__(self, audit_repo: IAuditRepository):
        self.audit_repo = audit_repo

    # =========================================================================
    # REGISTRO DE EVENTOS
    # =========================================================================

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        self.audit_repo.log(log_type, user, message, related_id, details)

    def log_order_created(self, user: str, order_id: str, total: float, items_count: int) -> None:
        """
        Registra la creación de un pedido.

        Args:
            user: Quien creó el pedido ('cliente' desde el formulario público)
            order_id: Código del pedido
            total: Total cobrado
            items_count: Cantidad de productos distintos
        """
        message = f"Pedido {order_id} creado por {user} - Total: Rs {total:.2f} - {items_count} productos"
        self.log(self.TYPE_PEDIDO, user, message, order_id,
                 {'total': total, 'items_count': items_count})

    def log_status_change(self, user: str, order_id: str, old_status: str,
                          new_status: str, action: str) -> None:
        message = f"Pedido {order_id}: {old_status} → {new_status} por {user}"
        self.log(self.TYPE_ESTADO, user, message, order_id,
                 {'from': old_status, 'to': new_status, 'action': action})

    def log_order_deleted(self, user: str, order_id: str) -> None:
        self.log(self.TYPE_PEDIDO, user, f"Pedido {order_id} eliminado por {user}", order_id)

    def log_product_change(self, user: str, product_id: str, name: str, action: str) -> None:
        """action: 'creado' | 'actualizado' | 'eliminado'"""
        message = f"Producto {name} ({product_id}) {action} por {user}"
        self.log(self.TYPE_PRODUCTO, user, message, product_id, {'action': action})

    def log_settings_change(self, user: str, section: str, values: Dict[str, Any]) -> None:
        self.log(self.TYPE_SISTEMA, user, f"Configuración '{section}' actualizada por {user}",
                 section, values)

    def log_login(self, user: str, success: bool) -> None:
        if success:
            self.log(self.TYPE_SISTEMA, user, f"Inicio de sesión de {user}")
        else:
            self.log(self.TYPE_SISTEMA, user, f"Intento de inicio de sesión fallido para {user}")

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_logs(self, log_type: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        """
        Logs más recientes primero.

        Args:
            log_type: Filtrar por tipo (opcional)
            limit: Máximo de registros
        """
        logs = self.audit_repo.get_logs_by_type(log_type) if log_type else self.audit_repo.load()
        return logs[:max(0, limit)]

    def get_order_history(self, order_id: str) -> List[Dict[str, Any]]:
        return self.audit_repo.get_logs_for(order_id)
