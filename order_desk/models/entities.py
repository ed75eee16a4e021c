# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio de pedidos.
# Diseñadas para ser independientes del mecanismo de persistencia.
# Los montos se manejan como Decimal; en JSON se guardan como número.
# ==============================================================================

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Dict, Any, Union
from enum import Enum
from datetime import datetime, timezone


# Tope para montos ingresados por el admin (precios y cargos)
MAX_AMOUNT = Decimal('1000000000')


def to_decimal(value: Any, default: Decimal = Decimal('0')) -> Decimal:
    """Convierte un valor numérico/texto a Decimal finito (default si falla, NaN o infinito)."""
    if value is None or value == '':
        return default
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default
    return result if result.is_finite() else default


def money_to_json(value: Decimal) -> float:
    """Serializa un monto Decimal a float con 2 decimales."""
    return float(round(value, 2))


def utc_now_iso() -> str:
    """Timestamp UTC en formato ISO (con sufijo Z)."""
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class UserRole(str, Enum):
    """Roles de usuario disponibles en el sistema."""
    ADMIN = "admin"
    COURIER = "courier"


class ProductStatus(str, Enum):
    """Disponibilidad de un producto."""
    AVAILABLE = "available"
    OUT_OF_STOCK = "out-of-stock"
    DISCONTINUED = "discontinued"


class OrderStatus(str, Enum):
    """Estados posibles de un pedido."""
    RECEIVED = "received"        # Pedido recibido desde el formulario público
    SENDED = "sended"            # Entregado al courier (aún no en camino)
    IN_TRANSIT = "in-transit"    # En camino
    DELIVERED = "delivered"      # Entregado al cliente
    RETURNED = "returned"        # Devuelto al remitente
    # Legacy: solo aparecen en registros antiguos y en estadísticas
    ISSUED = "issued"
    PENDING = "pending"
    CONFORM = "conform"


class InquiryStatus(str, Enum):
    """Estados de una consulta."""
    PENDING = "pending"


# Estados visibles en el portal del courier
COURIER_STATUSES = frozenset([
    OrderStatus.SENDED.value,
    OrderStatus.IN_TRANSIT.value,
    OrderStatus.DELIVERED.value,
    OrderStatus.RETURNED.value,
])


# ==============================================================================
# ENTIDADES DE USUARIO
# ==============================================================================

@dataclass
class User:
    """
    Usuario del panel (admin o courier).

    Attributes:
        id: Identificador numérico
        email: Email usado para iniciar sesión (único)
        full_name: Nombre para mostrar
        password_hash: Hash werkzeug de la contraseña
        role: Rol que define qué vistas son accesibles
    """
    id: int
    email: str
    full_name: str
    password_hash: str
    role: UserRole = UserRole.COURIER

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def public_dict(self) -> Dict[str, Any]:
        """Datos seguros para enviar al cliente (sin hash)."""
        return {
            'id': self.id,
            'fullName': self.full_name,
            'email': self.email,
            'role': self.role.value,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'fullName': self.full_name,
            'password': self.password_hash,
            'role': self.role.value,
        }

    @classmethod
    def from_dict(cls, email: str, data: Dict[str, Any]) -> 'User':
        """Crea instancia desde diccionario."""
        try:
            role = UserRole(data.get('role', 'courier'))
        except ValueError:
            role = UserRole.COURIER
        return cls(
            id=int(data.get('id', 0) or 0),
            email=email,
            full_name=data.get('fullName', ''),
            password_hash=data.get('password', ''),
            role=role,
        )


# ==============================================================================
# ENTIDADES DE PRODUCTO
# ==============================================================================

@dataclass
class Product:
    """
    Producto del catálogo.

    Attributes:
        id: Identificador (texto, los pedidos lo referencian)
        name: Nombre mostrado en formulario y facturas
        price: Precio unitario (>= 0)
        delivery_charge: Costo de envío sugerido del producto (>= 0)
        status: Disponibilidad
    """
    id: str
    name: str
    price: Decimal = Decimal('0')
    delivery_charge: Decimal = Decimal('0')
    status: ProductStatus = ProductStatus.AVAILABLE

    @property
    def is_available(self) -> bool:
        return self.status == ProductStatus.AVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia JSON."""
        return {
            'id': self.id,
            'name': self.name,
            'price': money_to_json(self.price),
            'delivery_charge': money_to_json(self.delivery_charge),
            'status': self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        """Crea instancia desde diccionario."""
        try:
            status = ProductStatus(data.get('status', 'available'))
        except ValueError:
            status = ProductStatus.AVAILABLE
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            price=to_decimal(data.get('price')),
            delivery_charge=to_decimal(data.get('delivery_charge')),
            status=status,
        )


# ==============================================================================
# CARRITO - Variante etiquetada (un producto | varios productos)
# ==============================================================================

@dataclass(frozen=True)
class CartSelection:
    """Selección transitoria: producto + cantidad (>= 1)."""
    product_id: str
    quantity: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.product_id, 'quantity': self.quantity}


@dataclass(frozen=True)
class SingleCart:
    """Pedido de un solo producto."""
    product_id: str
    quantity: int = 1

    @property
    def selections(self) -> List[CartSelection]:
        return [CartSelection(self.product_id, self.quantity)]


@dataclass(frozen=True)
class MultiCart:
    """Pedido de varios productos."""
    items: tuple = ()

    @property
    def selections(self) -> List[CartSelection]:
        return list(self.items)


Cart = Union[SingleCart, MultiCart]


def make_cart(selections: List[CartSelection]) -> Cart:
    """Construye la variante adecuada según la cantidad de selecciones."""
    if len(selections) == 1:
        only = selections[0]
        return SingleCart(only.product_id, only.quantity)
    return MultiCart(tuple(selections))


# ==============================================================================
# ENTIDADES DE PEDIDO
# ==============================================================================

@dataclass
class Order:
    """
    Pedido tal como se almacena (formato plano del backend).

    Los campos product_id / product_name / quantity / notes pueden llevar
    la codificación multi-producto; solo cart_codec los interpreta.

    Attributes:
        id: Identificador interno
        order_id: Código legible (ORDYYYYMMDDNNN)
        full_name: Nombre del cliente
        address: Dirección de entrega
        mobile: Teléfono principal
        mobile2: Teléfono adicional (opcional)
        product_id: Id simple o ids separados por coma
        product_name: Nombre simple o nombres separados por coma
        quantity: Entero o JSON [{id, quantity}] para multi-producto
        status: Estado actual del pedido
        total_amount: Total calculado al crear el pedido
        notes: Blob JSON con el desglose multi-producto (opcional)
        created_at: Timestamp ISO de creación
        updated_at: Timestamp ISO del último cambio
    """
    id: str
    order_id: str
    full_name: str
    address: str
    mobile: str
    product_id: str
    product_name: str
    quantity: Union[int, str] = 1
    status: str = OrderStatus.RECEIVED.value
    total_amount: Decimal = Decimal('0')
    mobile2: str = ''
    notes: Optional[str] = None
    created_at: str = ''
    updated_at: Optional[str] = None

    def __post_init__(self):
        if not self.created_at:
            self.created_at = utc_now_iso()

    @property
    def is_multi_product(self) -> bool:
        return ',' in (self.product_id or '') or ',' in (self.product_name or '')

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario (mismo formato que la API)."""
        d = {
            'id': self.id,
            'order_id': self.order_id,
            'fullName': self.full_name,
            'address': self.address,
            'mobile': self.mobile,
            'mobile2': self.mobile2,
            'product_id': self.product_id,
            'product_name': self.product_name,
            'quantity': self.quantity,
            'status': self.status,
            'total_amount': money_to_json(self.total_amount),
            'createdAt': self.created_at,
        }
        if self.notes:
            d['notes'] = self.notes
        if self.updated_at:
            d['updatedAt'] = self.updated_at
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Order':
        """Crea instancia desde diccionario (tolera registros legacy)."""
        return cls(
            id=str(data.get('id', '')),
            order_id=data.get('order_id', ''),
            full_name=data.get('fullName', ''),
            address=data.get('address', ''),
            mobile=str(data.get('mobile', '')),
            mobile2=str(data.get('mobile2') or ''),
            product_id=str(data.get('product_id') or ''),
            product_name=str(data.get('product_name') or data.get('product') or ''),
            quantity=data.get('quantity', 1),
            status=data.get('status') or OrderStatus.RECEIVED.value,
            total_amount=to_decimal(data.get('total_amount')),
            notes=data.get('notes'),
            created_at=data.get('createdAt', ''),
            updated_at=data.get('updatedAt'),
        )


# ==============================================================================
# CONFIGURACIÓN DE ENTREGA / RANGO HORARIO
# ==============================================================================

DEFAULT_DELIVERY_CHARGE = Decimal('350')
DEFAULT_EXTRA_ADDON_PRICE = Decimal('1000')


@dataclass(frozen=True)
class DeliverySettings:
    """
    Configuración de cobros de envío (una por proceso).

    Attributes:
        common_delivery_charge: Cargo de envío por pedido (< 15 unidades)
        extra_addon_price: Recargo por cada bloque de 15 unidades extra
        edit_mode: Si el panel permite editar los cargos
    """
    common_delivery_charge: Decimal = DEFAULT_DELIVERY_CHARGE
    extra_addon_price: Decimal = DEFAULT_EXTRA_ADDON_PRICE
    edit_mode: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'commonDeliveryCharge': money_to_json(self.common_delivery_charge),
            'extraAddOnPrice': money_to_json(self.extra_addon_price),
            'editMode': self.edit_mode,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeliverySettings':
        """Valores inválidos o negativos vuelven al default."""
        charge = to_decimal(data.get('commonDeliveryCharge'), DEFAULT_DELIVERY_CHARGE)
        extra = to_decimal(data.get('extraAddOnPrice'), DEFAULT_EXTRA_ADDON_PRICE)
        edit_mode = data.get('editMode', False)
        if isinstance(edit_mode, str):
            edit_mode = edit_mode.strip().lower() == 'true'
        return cls(
            common_delivery_charge=charge if charge >= 0 else DEFAULT_DELIVERY_CHARGE,
            extra_addon_price=extra if extra >= 0 else DEFAULT_EXTRA_ADDON_PRICE,
            edit_mode=bool(edit_mode),
        )


@dataclass(frozen=True)
class TimeRange:
    """Rango horario en que se aceptan pedidos del día (formato 12h)."""
    start_time: str = '09:00'
    end_time: str = '06:00'
    start_period: str = 'AM'
    end_period: str = 'PM'

    @staticmethod
    def to_minutes(time_str: str, period: str) -> int:
        """Convierte 'HH:MM' + AM/PM a minutos desde medianoche."""
        hours, minutes = (int(part) for part in time_str.split(':', 1))
        if period == 'PM' and hours != 12:
            hours += 12
        elif period == 'AM' and hours == 12:
            hours = 0
        return hours * 60 + minutes

    @property
    def start_minutes(self) -> int:
        return self.to_minutes(self.start_time, self.start_period)

    @property
    def end_minutes(self) -> int:
        return self.to_minutes(self.end_time, self.end_period)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'startTime': self.start_time,
            'endTime': self.end_time,
            'startPeriod': self.start_period,
            'endPeriod': self.end_period,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TimeRange':
        return cls(
            start_time=data.get('startTime', '09:00'),
            end_time=data.get('endTime', '06:00'),
            start_period=data.get('startPeriod', 'AM'),
            end_period=data.get('endPeriod', 'PM'),
        )


# ==============================================================================
# CONSULTAS Y AUDITORÍA
# ==============================================================================

@dataclass
class Inquiry:
    """Consulta enviada desde el formulario público."""
    id: str
    message: str
    status: str = InquiryStatus.PENDING.value
    created_at: str = ''

    def __post_init__(self):
        if not self.created_at:
            self.created_at = utc_now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'message': self.message,
            'status': self.status,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Inquiry':
        return cls(
            id=str(data.get('id', '')),
            message=data.get('message', ''),
            status=data.get('status', InquiryStatus.PENDING.value),
            created_at=data.get('createdAt', ''),
        )


class AuditType(str, Enum):
    """Tipos de eventos de auditoría."""
    PEDIDO = "PEDIDO"
    ESTADO = "ESTADO"
    PRODUCTO = "PRODUCTO"
    SISTEMA = "SISTEMA"


@dataclass
class AuditLog:
    """
    Registro de auditoría.

    Attributes:
        type: Tipo de evento (PEDIDO, ESTADO, PRODUCTO, SISTEMA)
        user: Usuario que realizó la acción
        message: Mensaje descriptivo humanizado
        timestamp: Fecha y hora del evento
        related_id: ID relacionado (order_id, id de producto, etc.)
        details: Detalles adicionales
    """
    type: str
    user: str
    message: str
    timestamp: str = ''
    related_id: str = ''
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'user': self.user,
            'message': self.message,
            'timestamp': self.timestamp,
            'related_id': self.related_id,
            'details': self.details,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditLog':
        return cls(
            type=data.get('type', ''),
            user=data.get('user', ''),
            message=data.get('message', ''),
            timestamp=data.get('timestamp', ''),
            related_id=data.get('related_id', ''),
            details=data.get('details', {}),
        )
