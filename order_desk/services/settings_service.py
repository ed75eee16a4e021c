# ==============================================================================
# SERVICIO DE CONFIGURACIÓN
# ==============================================================================
# Único punto de carga/guardado de DeliverySettings y TimeRange.
# Los cálculos de precio reciben el objeto DeliverySettings por argumento;
# nadie más lee settings.json.
# ==============================================================================

import re
from typing import Any, Dict, Optional

from order_desk.models import MAX_AMOUNT, DeliverySettings, TimeRange, to_decimal
from order_desk.repositories.interfaces import ISettingsRepository

_TIME_RE = re.compile(r'^(0?[1-9]|1[0-2]):[0-5][0-9]$')
_PERIODS = ('AM', 'PM')


class SettingsService:
    """Carga y guarda la configuración de entrega y el rango horario."""

    def __init__(self, settings_repo: ISettingsRepository, audit_service=None):
        self.settings_repo = settings_repo
        self.audit_service = audit_service

    # =========================================================================
    # CONFIGURACIÓN DE ENTREGA
    # =========================================================================

    def load_delivery(self) -> DeliverySettings:
        """Configuración vigente; defaults (350, 1000, False) si no hay nada guardado."""
        return DeliverySettings.from_dict(self.settings_repo.get_delivery())

    def save_delivery(self, payload: Dict[str, Any], user: str = '') -> Dict[str, Any]:
        """
        Valida y guarda la configuración de entrega.

        Args:
            payload: {commonDeliveryCharge, extraAddOnPrice, editMode} (parcial)
            user: Usuario que realiza el cambio

        Returns:
            {'ok': True, 'settings': {...}} o {'ok': False, 'error': str}
        """
        current = self.load_delivery().to_dict()
        merged = dict(current)
        for key in ('commonDeliveryCharge', 'extraAddOnPrice'):
            if key in payload:
                value = to_decimal(payload.get(key), None)
                if value is None or not 0 <= value <= MAX_AMOUNT:
                    return {'ok': False, 'error': f'{key} debe ser un número entre 0 y {MAX_AMOUNT}'}
                merged[key] = float(value)
        if 'editMode' in payload:
            merged['editMode'] = bool(payload.get('editMode'))

        settings = DeliverySettings.from_dict(merged)
        self.settings_repo.set_delivery(settings.to_dict())
        if self.audit_service:
            self.audit_service.log_settings_change(user, 'delivery', settings.to_dict())
        return {'ok': True, 'settings': settings.to_dict()}

    # =========================================================================
    # RANGO HORARIO DE PEDIDOS DEL DÍA
    # =========================================================================

    def load_time_range(self) -> TimeRange:
        stored = self.settings_repo.get_time_range()
        if self._validate_time_range(stored) is not None:
            return TimeRange()
        return TimeRange.from_dict(stored)

    def save_time_range(self, payload: Dict[str, Any], user: str = '') -> Dict[str, Any]:
        """Guarda el rango horario; retorna {'ok', 'time_range'|'error'}."""
        merged = self.load_time_range().to_dict()
        merged.update({k: v for k, v in payload.items() if k in merged})
        error = self._validate_time_range(merged)
        if error:
            return {'ok': False, 'error': error}
        time_range = TimeRange.from_dict(merged)
        self.settings_repo.set_time_range(time_range.to_dict())
        if self.audit_service:
            self.audit_service.log_settings_change(user, 'timeRange', time_range.to_dict())
        return {'ok': True, 'time_range': time_range.to_dict()}

    @staticmethod
    def _validate_time_range(data: Dict[str, Any]) -> Optional[str]:
        """Retorna un mensaje de error o None si el rango es válido."""
        if not data:
            return 'Rango horario vacío'
        for key in ('startTime', 'endTime'):
            if not _TIME_RE.match(str(data.get(key, ''))):
                return f'{key} debe tener formato HH:MM (12h)'
        for key in ('startPeriod', 'endPeriod'):
            if data.get(key) not in _PERIODS:
                return f'{key} debe ser AM o PM'
        return None
