# hms_console/session.py
import json
import logging
import os
import tempfile
from typing import Callable, Dict, List, Optional

from .schemas import Session, UserRole

logger = logging.getLogger(__name__)

# Keys kept in the persisted store
TOKEN_KEY = "token"
EMAIL_KEY = "userEmail"
ROLE_KEY = "userRole"
AUTHENTICATED_KEY = "isAuthenticated"
SESSION_KEYS = (TOKEN_KEY, EMAIL_KEY, ROLE_KEY, AUTHENTICATED_KEY)


class LocalStorage:
    """String key/value store backed by a JSON file.

    Every mutation rewrites the whole file through a temporary file and an
    atomic rename, so readers never observe a half-cleared session.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._data: Dict[str, str] = {}
        if path and os.path.exists(path):
            try:
                with open(path, "r", encoding="utf-8") as fh:
                    loaded = json.load(fh)
                if isinstance(loaded, dict):
                    self._data = {str(k): str(v) for k, v in loaded.items()}
                else:
                    logger.warning(f"Ignoring session file {path}: not a JSON object")
            except (OSError, ValueError) as e:
                logger.warning(f"Could not read session file {path}: {e}")

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def update(self, values: Dict[str, str]):
        self._data.update(values)
        self._flush()

    def remove(self, *keys: str):
        for key in keys:
            self._data.pop(key, None)
        self._flush()

    def _flush(self):
        if not self.path:
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".session-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


class SessionStore:
    """Holds the logged-in user's token, email and role.

    The store is the only place that knows whether someone is logged in.
    Screens subscribe to it so that a logout (explicit, or forced by a 401)
    wipes every cached list before the next user signs in.
    """

    def __init__(self, storage: LocalStorage):
        self.storage = storage
        self.generation = 0
        self._listeners: List[Callable[[], None]] = []

    @property
    def token(self) -> Optional[str]:
        # Read through on every call; a concurrent logout must be seen immediately
        return self.storage.get(TOKEN_KEY) or None

    @property
    def is_authenticated(self) -> bool:
        return self.storage.get(AUTHENTICATED_KEY) == "true" and self.token is not None

    def current(self) -> Session:
        role = self.storage.get(ROLE_KEY)
        return Session(
            is_authenticated=self.is_authenticated,
            token=self.token,
            email=self.storage.get(EMAIL_KEY) or "",
            role=UserRole(role) if role in UserRole._value2member_map_ else None,
        )

    def subscribe(self, listener: Callable[[], None]):
        """Register a callback run on every logout, and when another user's session replaces this one."""
        self._listeners.append(listener)

    def establish(self, token: str, email: str, role: UserRole) -> Session:
        """Persist a freshly authenticated session."""
        if not token:
            raise ValueError("An authenticated session needs a token")
        replaced = self.token is not None and (self.token != token or self.storage.get(EMAIL_KEY) != email)
        self.generation += 1
        self.storage.update({
            TOKEN_KEY: token,
            EMAIL_KEY: email,
            ROLE_KEY: role.value,
            AUTHENTICATED_KEY: "true",
        })
        if replaced:
            # a different user took over without logging out; drop what the last one loaded
            self._notify()
        logger.info(f"Session established for {email} ({role.value})")
        return self.current()

    def logout(self, reason: str = "user logout"):
        """Clear the persisted session and tell every screen to drop its data."""
        had_session = self.storage.get(AUTHENTICATED_KEY) is not None or self.token is not None
        self.generation += 1
        self.storage.remove(*SESSION_KEYS)
        if had_session:
            logger.info(f"Session cleared: {reason}")
        self._notify()

    def _notify(self):
        for listener in list(self._listeners):
            listener()
