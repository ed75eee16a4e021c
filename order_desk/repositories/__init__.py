# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (archivos JSON).
#
# ESTRUCTURA:
# ├── interfaces.py            → Protocolos (contratos)
# ├── base.py                  → Clases base JSON (DictRepository, ListRepository)
# ├── order_repository.py      → orders.json
# ├── product_repository.py    → products.json
# ├── inquiry_repository.py    → inquiries.json
# ├── user_repository.py       → users.json
# ├── audit_repository.py      → audit.json
# └── settings_repository.py   → settings.json
# ==============================================================================

from .interfaces import (
    IRepository,
    IOrderRepository,
    IProductRepository,
    IUserRepository,
    IAuditRepository,
    ISettingsRepository,
)

from .base import BaseRepository, DictRepository, ListRepository
from .order_repository import OrderRepository
from .product_repository import ProductRepository
from .inquiry_repository import InquiryRepository
from .user_repository import UserRepository
from .audit_repository import AuditRepository
from .settings_repository import SettingsRepository

__all__ = [
    'IRepository',
    'IOrderRepository',
    'IProductRepository',
    'IUserRepository',
    'IAuditRepository',
    'ISettingsRepository',
    'BaseRepository',
    'DictRepository',
    'ListRepository',
    'OrderRepository',
    'ProductRepository',
    'InquiryRepository',
    'UserRepository',
    'AuditRepository',
    'SettingsRepository',
]
