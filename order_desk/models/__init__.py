# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Entidades del dominio de pedidos definidas con dataclasses.
# Independientes del mecanismo de persistencia (JSON).
# ==============================================================================

from .entities import (
    # Usuarios
    User,
    UserRole,

    # Productos
    Product,
    ProductStatus,

    # Carrito
    CartSelection,
    SingleCart,
    MultiCart,
    Cart,
    make_cart,

    # Pedidos
    Order,
    OrderStatus,
    COURIER_STATUSES,

    # Configuración
    DeliverySettings,
    TimeRange,

    # Consultas
    Inquiry,
    InquiryStatus,

    # Auditoría
    AuditLog,
    AuditType,

    # Utilidades
    MAX_AMOUNT,
    to_decimal,
    money_to_json,
    utc_now_iso,
)

__all__ = [
    'User',
    'UserRole',
    'Product',
    'ProductStatus',
    'CartSelection',
    'SingleCart',
    'MultiCart',
    'Cart',
    'make_cart',
    'Order',
    'OrderStatus',
    'COURIER_STATUSES',
    'DeliverySettings',
    'TimeRange',
    'Inquiry',
    'InquiryStatus',
    'AuditLog',
    'AuditType',
    'MAX_AMOUNT',
    'to_decimal',
    'money_to_json',
    'utc_now_iso',
]
