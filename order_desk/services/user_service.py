# ==============================================================================
# SERVICIO DE USUARIOS - Autenticación y tokens
# ==============================================================================
# Las contraseñas se guardan con generate_password_hash (werkzeug).
# El login emite un token firmado con itsdangerous que lleva id, email y rol;
# la API lo recibe en el header Authorization: Bearer <token>.
#
# Roles:
#   admin   → panel completo (pedidos, productos, courier, analítica, ajustes)
#   courier → solo el portal de entregas
# ==============================================================================

import logging
from typing import Any, Dict, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from werkzeug.security import check_password_hash, generate_password_hash

from order_desk.models import User, UserRole
from order_desk.repositories.interfaces import IUserRepository

logger = logging.getLogger(__name__)


class UserService:
    """
    Autenticación de usuarios del panel.

    La verificación de contraseñas se hace SOLO aquí con check_password_hash;
    el repositorio solo persiste.
    """

    ROLE_ADMIN = UserRole.ADMIN.value
    ROLE_COURIER = UserRole.COURIER.value
    VALID_ROLES = frozenset([ROLE_ADMIN, ROLE_COURIER])

    TOKEN_SALT = 'order-desk-auth'
    DEFAULT_TOKEN_MAX_AGE = 24 * 60 * 60  # 24 horas

    # Cuentas de desarrollo
    DEV_USERS = (
        ('admin@orderdesk.local', 'Administrador', 'admin123', ROLE_ADMIN),
        ('courier@orderdesk.local', 'Courier', 'courier123', ROLE_COURIER),
    )
    # Producción: una sola cuenta admin cuya clave debe cambiarse
    PRODUCTION_ADMIN = ('admin@orderdesk.local', 'Administrador', 'CAMBIAR_ESTA_CLAVE_INMEDIATAMENTE', ROLE_ADMIN)

    def __init__(
        self,
        user_repo: IUserRepository,
        secret_key: str,
        token_max_age: int = DEFAULT_TOKEN_MAX_AGE,
        audit_service=None
    ):
        """
        Args:
            user_repo: Repositorio de usuarios
            secret_key: Clave para firmar tokens (la misma de Flask)
            token_max_age: Validez del token en segundos
            audit_service: Servicio de auditoría (opcional)
        """
        self.user_repo = user_repo
        self.token_max_age = token_max_age
        self.audit_service = audit_service
        self._serializer = URLSafeTimedSerializer(secret_key, salt=self.TOKEN_SALT)

    # =========================================================================
    # USUARIOS
    # =========================================================================

    def get_user(self, email: str) -> Optional[User]:
        data = self.user_repo.get_user(email)
        if not data:
            return None
        return User.from_dict((email or '').strip().lower(), data)

    def create_user(self, email: str, full_name: str, password: str, role: str = ROLE_COURIER) -> Dict[str, Any]:
        """
        Crea un usuario.

        Returns:
            {'ok': True, 'id': int} o {'ok': False, 'error': str}
        """
        email = (email or '').strip().lower()
        if not email or '@' not in email:
            return {'ok': False, 'error': 'Email inválido'}
        if not password or len(password) < 6:
            return {'ok': False, 'error': 'La contraseña debe tener al menos 6 caracteres'}
        if role not in self.VALID_ROLES:
            return {'ok': False, 'error': f'Rol inválido: {role}'}
        new_id = self.user_repo.create_user(email, full_name or email, generate_password_hash(password), role)
        if new_id is None:
            return {'ok': False, 'error': 'El usuario ya existe'}
        return {'ok': True, 'id': new_id}

    def ensure_default_users(self, production: bool) -> int:
        """
        Crea las cuentas iniciales si no existe ningún usuario.

        Returns:
            Cantidad de usuarios creados
        """
        if self.user_repo.load():
            return 0
        accounts = (self.PRODUCTION_ADMIN,) if production else self.DEV_USERS
        for email, name, password, role in accounts:
            self.user_repo.create_user(email, name, generate_password_hash(password), role)
        if production:
            logger.warning("Creada cuenta %s. Cambia la contraseña inmediatamente", self.PRODUCTION_ADMIN[0])
        return len(accounts)

    # =========================================================================
    # AUTENTICACIÓN
    # =========================================================================

    def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        """
        Verifica credenciales y emite un token.

        Returns:
            {'success': True, 'token': str, 'user': {id, fullName, email, role}}
            o {'success': False, 'message': str}
        """
        user = self.get_user(email)
        if user is None or not password or not check_password_hash(user.password_hash, password):
            if self.audit_service:
                self.audit_service.log_login((email or '').strip().lower(), success=False)
            return {'success': False, 'message': 'Email o contraseña incorrectos'}

        if self.audit_service:
            self.audit_service.log_login(user.email, success=True)
        return {
            'success': True,
            'token': self.issue_token(user),
            'user': user.public_dict(),
        }

    def issue_token(self, user: User) -> str:
        return self._serializer.dumps({'id': user.id, 'email': user.email, 'role': user.role.value})

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Valida un token firmado.

        Returns:
            Payload {id, email, role} o None si es inválido o expiró
        """
        if not token:
            return None
        try:
            payload = self._serializer.loads(token, max_age=self.token_max_age)
        except SignatureExpired:
            logger.info("Token expirado")
            return None
        except BadSignature:
            return None
        if not isinstance(payload, dict) or payload.get('role') not in self.VALID_ROLES:
            return None
        # El usuario debe seguir existiendo
        if not self.user_repo.get_user(payload.get('email', '')):
            return None
        return payload
