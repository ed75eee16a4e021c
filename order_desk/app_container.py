# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Punto único para obtener repositorios y servicios.
#   - Instancias creadas de forma perezosa (lazy) y reutilizadas
#   - Los tests crean un contenedor nuevo con reset_instance()
# ==============================================================================

import os
from typing import Any, Callable, Dict, Optional

from order_desk.repositories import (
    AuditRepository,
    InquiryRepository,
    OrderRepository,
    ProductRepository,
    SettingsRepository,
    UserRepository,
)
from order_desk.services import (
    AuditService,
    ExportService,
    InquiryService,
    OrderService,
    ProductService,
    SettingsService,
    UserService,
)

DEFAULT_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')


class AppContainer:
    """
    Contenedor de dependencias de la aplicación (singleton).

    Uso:
        container = AppContainer(base_path='/path/to/data', secret_key='...')
        order_service = container.order_service
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, base_path: str = None, secret_key: str = None, token_max_age: int = None):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, base_path: str = None, secret_key: str = None, token_max_age: int = None):
        """
        Args:
            base_path: Carpeta donde viven los JSON de datos
            secret_key: Clave para firmar tokens de sesión
            token_max_age: Validez de tokens en segundos
        """
        if self._initialized:
            return

        self._base_path = base_path or DEFAULT_DATA_DIR
        self._secret_key = secret_key or 'order-desk-dev-secret'
        self._token_max_age = token_max_age or UserService.DEFAULT_TOKEN_MAX_AGE
        self.reset()
        self._initialized = True

    @property
    def base_path(self) -> str:
        return self._base_path

    def _lazy(self, name: str, factory: Callable[[], Any]) -> Any:
        """Crea la dependencia `name` la primera vez que se pide."""
        if name not in self._instances:
            self._instances[name] = factory()
        return self._instances[name]

    # =========================================================================
    # REPOSITORIOS (un archivo JSON cada uno, en base_path)
    # =========================================================================

    @property
    def order_repo(self) -> OrderRepository:
        return self._lazy('order_repo', lambda: OrderRepository(self._base_path))

    @property
    def product_repo(self) -> ProductRepository:
        return self._lazy('product_repo', lambda: ProductRepository(self._base_path))

    @property
    def inquiry_repo(self) -> InquiryRepository:
        return self._lazy('inquiry_repo', lambda: InquiryRepository(self._base_path))

    @property
    def user_repo(self) -> UserRepository:
        return self._lazy('user_repo', lambda: UserRepository(self._base_path))

    @property
    def audit_repo(self) -> AuditRepository:
        return self._lazy('audit_repo', lambda: AuditRepository(self._base_path))

    @property
    def settings_repo(self) -> SettingsRepository:
        return self._lazy('settings_repo', lambda: SettingsRepository(self._base_path))

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def audit_service(self) -> AuditService:
        return self._lazy('audit_service', lambda: AuditService(self.audit_repo))

    @property
    def settings_service(self) -> SettingsService:
        return self._lazy('settings_service',
                          lambda: SettingsService(self.settings_repo, self.audit_service))

    @property
    def product_service(self) -> ProductService:
        return self._lazy('product_service',
                          lambda: ProductService(self.product_repo, self.audit_service))

    @property
    def inquiry_service(self) -> InquiryService:
        return self._lazy('inquiry_service', lambda: InquiryService(self.inquiry_repo))

    @property
    def order_service(self) -> OrderService:
        """Pedidos: usa el catálogo, la configuración de entrega y la auditoría."""
        return self._lazy('order_service', lambda: OrderService(
            self.order_repo,
            self.product_service,
            self.settings_service,
            self.audit_service,
        ))

    @property
    def user_service(self) -> UserService:
        return self._lazy('user_service', lambda: UserService(
            self.user_repo,
            self._secret_key,
            self._token_max_age,
            self.audit_service,
        ))

    @property
    def export_service(self) -> ExportService:
        return self._lazy('export_service', lambda: ExportService(self.product_service))

    # =========================================================================
    # CICLO DE VIDA
    # =========================================================================

    def reset(self) -> None:
        """Olvida las instancias creadas; la próxima lectura las vuelve a construir."""
        self._instances: Dict[str, Any] = {}

    @classmethod
    def get_instance(cls, base_path: str = None, **kwargs) -> 'AppContainer':
        """El contenedor global. base_path y kwargs cuentan solo la primera vez."""
        return cls._instance or cls(base_path, **kwargs)

    @classmethod
    def reset_instance(cls) -> None:
        if cls._instance is None:
            return
        cls._instance.reset()
        cls._instance = None


def get_container(base_path: str = None, **kwargs) -> AppContainer:
    return AppContainer.get_instance(base_path, **kwargs)
