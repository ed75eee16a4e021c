# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones entre repositorios
# 2. Aplican reglas de negocio y validaciones
# 3. Las rutas solo llaman a servicios
#
# ESTRUCTURA:
# ├── pricing_service.py   → Subtotal, envío, recargos (funciones puras)
# ├── status_workflow.py   → Tabla de transiciones de estado y permisos
# ├── cart_codec.py        → Carrito lógico ↔ campos planos del pedido
# ├── order_service.py     → Pedidos, listados, estados, estadísticas
# ├── product_service.py   → Catálogo
# ├── inquiry_service.py   → Consultas
# ├── settings_service.py  → Configuración de entrega y rango horario
# ├── user_service.py      → Autenticación y tokens
# ├── audit_service.py     → Logs de actividad
# └── export_service.py    → Exportación CSV
# ==============================================================================

from order_desk.services.audit_service import AuditService
from order_desk.services.settings_service import SettingsService
from order_desk.services.product_service import ProductService
from order_desk.services.inquiry_service import InquiryService
from order_desk.services.order_service import OrderService
from order_desk.services.user_service import UserService
from order_desk.services.export_service import ExportService

__all__ = [
    'AuditService',
    'SettingsService',
    'ProductService',
    'InquiryService',
    'OrderService',
    'UserService',
    'ExportService',
]
