"""Session and preference storage"""

from typing import Optional

from loguru import logger
from pydantic import ValidationError as ModelValidationError

from .models import UserRole, UserSession
from .storage import LocalStorage
from ..errors import AuthorizationError

SESSION_KEY = 'postdesk_session_v1'
LANGUAGE_KEY = 'postdesk_lang'
SCALE_KEY = 'postdesk_font_scale'

LANGUAGE_NAMES = {'en': 'English', 'hi': 'Hindi', 'te': 'Telugu'}
DEFAULT_LANGUAGE = 'en'
DEFAULT_SCALE = 100
MIN_SCALE = 50
MAX_SCALE = 200


class SessionStore:
    """Holds the single active session; cached so it survives a restart"""

    def __init__(self, storage: LocalStorage):
        self.storage = storage
        self.current: Optional[UserSession] = self._load()

    def _load(self) -> Optional[UserSession]:
        raw = self.storage.get_item(SESSION_KEY)
        if raw is None:
            return None
        try:
            return UserSession.model_validate(raw)
        except ModelValidationError as e:
            logger.error(f"Discarding unreadable session: {e}")
            self.storage.remove_item(SESSION_KEY)
            return None

    def login(self, session: UserSession) -> UserSession:
        """Replace any active session"""
        if self.current is not None:
            logger.info(f"Replacing session for {self.current.identity}")
        self.current = session
        self.storage.set_item(SESSION_KEY, session.model_dump(mode='json'))
        logger.info(f"Logged in {session.identity} as {session.role.value}")
        return session

    def logout(self):
        if self.current is not None:
            logger.info(f"Logged out {self.current.identity}")
        self.current = None
        self.storage.remove_item(SESSION_KEY)

    def require(self, role: Optional[UserRole] = None) -> UserSession:
        """Return the active session, optionally requiring a role"""
        if self.current is None:
            raise AuthorizationError("Please log in first.")
        if role is not None and self.current.role != role:
            raise AuthorizationError(f"This action requires a {role.value} login.")
        return self.current


class PreferenceStore:
    """Display language and scale preferences"""

    def __init__(self, storage: LocalStorage):
        self.storage = storage

    @property
    def language(self) -> str:
        code = self.storage.get_item(LANGUAGE_KEY, DEFAULT_LANGUAGE)
        return code if code in LANGUAGE_NAMES else DEFAULT_LANGUAGE

    @language.setter
    def language(self, code: str):
        if code not in LANGUAGE_NAMES:
            logger.warning(f"Unknown language {code!r}, using {DEFAULT_LANGUAGE}")
            code = DEFAULT_LANGUAGE
        self.storage.set_item(LANGUAGE_KEY, code)

    @property
    def language_name(self) -> str:
        return LANGUAGE_NAMES[self.language]

    @property
    def scale(self) -> int:
        try:
            return int(self.storage.get_item(SCALE_KEY, DEFAULT_SCALE))
        except (TypeError, ValueError):
            return DEFAULT_SCALE

    @scale.setter
    def scale(self, percent: int):
        self.storage.set_item(SCALE_KEY, min(max(int(percent), MIN_SCALE), MAX_SCALE))
