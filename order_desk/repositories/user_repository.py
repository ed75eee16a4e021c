# ==============================================================================
# REPOSITORIO DE USUARIOS
# ==============================================================================
# Encapsula todo el acceso a users.json
# Los usuarios se almacenan como diccionario: {email: {id, fullName, password, role}}
# ==============================================================================

import os
from typing import Any, Dict, Optional

from order_desk.repositories.base import DictRepository


class UserRepository(DictRepository):
    """
    Repositorio para gestión de usuarios del panel.

    Formato de datos en users.json:
    {
        "admin@orderdesk.local": {"id": 1, "fullName": "Admin",
                                  "password": "hashed_pwd", "role": "admin"}
    }
    """

    def __init__(self, base_path: str):
        file_path = os.path.join(base_path, 'users.json')
        super().__init__(file_path)

    def load(self) -> Dict[str, Dict[str, Any]]:
        return self.get_all()

    def get_user(self, email: str) -> Optional[Dict[str, Any]]:
        """
        Obtiene un usuario por su email (sin distinguir mayúsculas).

        Args:
            email: Email de inicio de sesión

        Returns:
            Datos del usuario o None
        """
        return self.load().get((email or '').strip().lower())

    def get_user_by_id(self, user_id: int) -> Optional[Dict[str, Any]]:
        """Retorna (email, datos) del usuario con ese id, o None."""
        for email, data in self.load().items():
            if int(data.get('id', 0) or 0) == int(user_id):
                return {'email': email, **data}
        return None

    def create_user(self, email: str, full_name: str, password_hash: str,
                    role: str = 'courier') -> Optional[int]:
        """
        Crea un nuevo usuario.

        Returns:
            Id asignado, o None si el email ya existía
        """
        key = (email or '').strip().lower()
        with self._file_lock:
            users = self.load()
            if key in users:
                return None
            new_id = max([int(u.get('id', 0) or 0) for u in users.values()] or [0]) + 1
            users[key] = {
                'id': new_id,
                'fullName': full_name,
                'password': password_hash,
                'role': role,
            }
            self.save_all(users)
            return new_id

