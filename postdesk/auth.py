"""Login credential checks"""

import re

from loguru import logger

from .config import AppConfig
from .errors import ValidationError
from .memory.models import UserRole, UserSession

CITIZEN_ID_PATTERN = re.compile(r'^[0-9]{10}$')
CITIZEN_PASSWORD_LENGTH = 8


def authenticate(role: UserRole, identity: str, password: str, config: AppConfig) -> UserSession:
    """
    Validate credentials and build a session

    Officials must match the configured id and password. Citizens need a
    10-digit id and an 8-character password.

    Raises:
        ValidationError: credentials have the wrong shape or do not match
    """
    identity = (identity or '').strip()
    password = password or ''

    if role == UserRole.OFFICIAL:
        if identity == config.official_id and password == config.official_password:
            return UserSession(identity=identity, role=UserRole.OFFICIAL, name='Post Master')
        logger.warning(f"Rejected official login for {identity!r}")
        raise ValidationError('Invalid official credentials.')

    if not CITIZEN_ID_PATTERN.match(identity):
        raise ValidationError('Citizen ID must be exactly 10 digits.')
    if len(password) != CITIZEN_PASSWORD_LENGTH:
        raise ValidationError(f'Citizen password must be exactly {CITIZEN_PASSWORD_LENGTH} characters.')
    return UserSession(identity=identity, role=UserRole.CITIZEN, name='Citizen User')
