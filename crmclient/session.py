from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any

from .http_client import API_PREFIX, ApiClient, ApiError
from .models import User
from .session_file import SessionFile

logger = logging.getLogger(__name__)

LOGIN_ROUTE = "/login"

LOGIN_FAILED_MESSAGE = "An error occurred during login"
REGISTER_FAILED_MESSAGE = "An error occurred during registration"


class SessionStore:
    """Authentication state for one running client.

    ``user`` and ``token`` are either both set or both ``None``. Every change
    to them also updates the client's Authorization header and the persisted
    session file while holding ``_lock``.
    """

    def __init__(
        self,
        client: ApiClient,
        storage: SessionFile,
        *,
        navigate: Callable[[str], None] | None = None,
    ) -> None:
        self.client = client
        self.storage = storage
        self.navigate = navigate
        self.error: str | None = None
        self.loading = True
        self._state: tuple[str, User] | None = None
        self._lock = threading.RLock()

    @property
    def user(self) -> User | None:
        state = self._state
        return state[1] if state is not None else None

    @property
    def token(self) -> str | None:
        state = self._state
        return state[0] if state is not None else None

    @property
    def is_authenticated(self) -> bool:
        return self._state is not None

    def bootstrap(self) -> bool:
        """Rehydrate a persisted session. Returns whether one was restored."""
        try:
            token, user_data = self.storage.load()
            with self._lock:
                if token and user_data is not None:
                    self._set(token, User.from_dict(user_data))
                    return True
                if token or user_data is not None:
                    logger.warning("discarding incomplete persisted session")
                    self.storage.clear()
                return False
        finally:
            self.loading = False

    def login(self, email: str, password: str) -> User:
        return self._authenticate(
            "login", {"email": email, "password": password}, LOGIN_FAILED_MESSAGE
        )

    def register(self, profile: Mapping[str, Any]) -> User:
        return self._authenticate("register", dict(profile), REGISTER_FAILED_MESSAGE)

    def logout(self) -> None:
        with self._lock:
            self.storage.clear()
            self._state = None
            self.client.clear_auth_token()
            self.error = None

    def expire(self, error: ApiError | None = None) -> None:
        """Tear the session down after a 401 and go back to the login entry point.

        Only the call that ends an authenticated session navigates, so a burst
        of concurrent 401s redirects once.
        """
        with self._lock:
            was_authenticated = self._state is not None
            self.logout()
        if not was_authenticated:
            return
        if error is not None:
            logger.info("session expired on %s %s", error.method, error.path)
        if self.navigate is not None:
            self.navigate(LOGIN_ROUTE)

    def assignable_users(self) -> list[User]:
        user = self.user
        return [user] if user is not None else []

    def _authenticate(self, action: str, payload: dict[str, Any], fallback: str) -> User:
        try:
            data = self.client.post(f"{API_PREFIX}/auth/{action}", payload)
            token, user = _parse_auth_response(data)
        except ApiError as exc:
            self.error = _error_message(exc, fallback)
            raise
        with self._lock:
            self.storage.save(token, user.to_dict())
            self._set(token, user)
            self.error = None
        return user

    def _set(self, token: str, user: User) -> None:
        self.client.set_auth_token(token)
        self._state = (token, user)


def _parse_auth_response(data: Any) -> tuple[str, User]:
    if not isinstance(data, dict):
        raise ApiError(200, data, reason="unexpected auth response")
    token = data.get("token")
    user_data = data.get("user")
    if not isinstance(token, str) or not token or not isinstance(user_data, dict):
        raise ApiError(200, {"error": "auth response missing token or user"})
    return token, User.from_dict(user_data)


def _error_message(error: ApiError, fallback: str) -> str:
    if isinstance(error.payload, dict):
        message = error.payload.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return fallback
