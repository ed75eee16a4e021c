# ==============================================================================
# FLUJO DE ESTADOS DE PEDIDOS
# ==============================================================================
# Tabla de transiciones válidas y qué roles pueden ejecutarlas:
#
#   received   → sended      send        (admin)
#   sended     → received    unsend      (admin)
#   sended     → in-transit  in_transit  (courier, admin)
#   in-transit → delivered   deliver     (courier, admin)
#   in-transit → returned    return      (courier, admin)
#   sended     → returned    return      (courier, admin)
#   returned   → delivered   restore     (admin)
#
# "conform" solo existe en estadísticas: ninguna transición lo produce.
# Registros legacy "issued" se tratan como "sended" y "pending" como
# "received" al buscar transiciones.
# ==============================================================================

from typing import Any, Dict, List, Optional, Tuple

from order_desk.models import OrderStatus, UserRole


ADMIN = UserRole.ADMIN.value
COURIER = UserRole.COURIER.value

RECEIVED = OrderStatus.RECEIVED.value
SENDED = OrderStatus.SENDED.value
IN_TRANSIT = OrderStatus.IN_TRANSIT.value
DELIVERED = OrderStatus.DELIVERED.value
RETURNED = OrderStatus.RETURNED.value

# Acción especial: reaplicar el estado actual (sin escritura)
NOOP = 'noop'

# (desde, hacia) → (acción, roles permitidos)
TRANSITIONS: Dict[Tuple[str, str], Tuple[str, frozenset]] = {
    (RECEIVED, SENDED): ('send', frozenset([ADMIN])),
    (SENDED, RECEIVED): ('unsend', frozenset([ADMIN])),
    (SENDED, IN_TRANSIT): ('in_transit', frozenset([COURIER, ADMIN])),
    (IN_TRANSIT, DELIVERED): ('deliver', frozenset([COURIER, ADMIN])),
    (IN_TRANSIT, RETURNED): ('return', frozenset([COURIER, ADMIN])),
    (SENDED, RETURNED): ('return', frozenset([COURIER, ADMIN])),
    (RETURNED, DELIVERED): ('restore', frozenset([ADMIN])),
}

# Etiquetas para botones de la UI
ACTION_LABELS = {
    'send': 'Enviar a courier',
    'unsend': 'Cancelar envío',
    'in_transit': 'En camino',
    'deliver': 'Entregado',
    'return': 'Devuelto',
    'restore': 'Restaurar como entregado',
}

LEGACY_ALIASES = {
    OrderStatus.ISSUED.value: SENDED,
    OrderStatus.PENDING.value: RECEIVED,
}

# Estados que una transición puede producir
TARGET_STATUSES = frozenset(target for (_, target) in TRANSITIONS)


def normalize_status(status: Optional[str]) -> str:
    """Estado canónico para buscar transiciones (aplica alias legacy)."""
    value = (status or '').strip().lower()
    return LEGACY_ALIASES.get(value, value)


def is_known_status(status: str) -> bool:
    try:
        OrderStatus(status)
    except ValueError:
        return False
    return True


def validate_transition(current: str, new: str, role: str) -> Dict[str, Any]:
    """
    Valida si un rol puede mover un pedido de `current` a `new`.

    Args:
        current: Estado actual del pedido
        new: Estado solicitado
        role: Rol del usuario (admin / courier)

    Returns:
        Dict {'allowed': bool, 'error': str | None, 'action': str | None}
        Reaplicar el estado actual retorna allowed=True y action='noop'.
    """
    requested = (new or '').strip().lower()
    if not is_known_status(requested):
        return {'allowed': False, 'error': f'Estado desconocido: {new}', 'action': None}

    if requested not in TARGET_STATUSES:
        return {
            'allowed': False,
            'error': f'El estado "{requested}" no puede asignarse manualmente',
            'action': None,
        }

    source = normalize_status(current)
    if source == requested:
        return {'allowed': True, 'error': None, 'action': NOOP}

    transition = TRANSITIONS.get((source, requested))
    if transition is None:
        return {
            'allowed': False,
            'error': f'Transición no permitida: {current} → {requested}',
            'action': None,
        }

    action, roles = transition
    if role not in roles:
        return {
            'allowed': False,
            'error': f'El rol "{role}" no puede ejecutar "{action}"',
            'action': action,
        }
    return {'allowed': True, 'error': None, 'action': action}


def available_actions(status: str, role: str) -> List[Dict[str, str]]:
    """
    Acciones que una vista puede habilitar para un pedido.

    Returns:
        Lista de {'action', 'status', 'label'} en orden de la tabla
    """
    source = normalize_status(status)
    actions = []
    for (from_status, to_status), (action, roles) in TRANSITIONS.items():
        if from_status == source and role in roles:
            actions.append({
                'action': action,
                'status': to_status,
                'label': ACTION_LABELS[action],
            })
    return actions


def status_for_action(current: str, action: str) -> Optional[str]:
    """Estado destino de una acción nombrada desde `current` (o None)."""
    source = normalize_status(current)
    for (from_status, to_status), (name, _) in TRANSITIONS.items():
        if from_status == source and name == action:
            return to_status
    return None
