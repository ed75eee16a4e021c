# ==============================================================================
# REPOSITORIO DE CONFIGURACIÓN
# ==============================================================================
# Encapsula el acceso a settings.json
# Guarda la configuración de entrega y el rango horario del día.
# ==============================================================================

import os
from typing import Any, Dict

from order_desk.repositories.base import DictRepository


class SettingsRepository(DictRepository):
    """
    Repositorio de configuración global.

    Formato de datos en settings.json:
    {
        "delivery": {"commonDeliveryCharge": 350, "extraAddOnPrice": 1000,
                     "editMode": false},
        "timeRange": {"startTime": "09:00", "endTime": "06:00",
                      "startPeriod": "AM", "endPeriod": "PM"}
    }
    """

    DELIVERY_KEY = 'delivery'
    TIME_RANGE_KEY = 'timeRange'

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'settings.json')
        super().__init__(file_path)

    def get_section(self, key: str) -> Dict[str, Any]:
        """Sección de configuración (vacía si no existe)."""
        section = self.get_all().get(key)
        return section if isinstance(section, dict) else {}

    def set_section(self, key: str, values: Dict[str, Any]) -> None:
        self.update(key, values)

    def get_delivery(self) -> Dict[str, Any]:
        return self.get_section(self.DELIVERY_KEY)

    def set_delivery(self, values: Dict[str, Any]) -> None:
        self.set_section(self.DELIVERY_KEY, values)

    def get_time_range(self) -> Dict[str, Any]:
        return self.get_section(self.TIME_RANGE_KEY)

    def set_time_range(self, values: Dict[str, Any]) -> None:
        self.set_section(self.TIME_RANGE_KEY, values)
