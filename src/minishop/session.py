"""Who is acting in the current interactive session."""

import logging

from .errors import NotLoggedInError
from .models import User

logger = logging.getLogger(__name__)


class Session:
    """
    Holds the logged-in user for one interactive session.

    Created by whoever drives the session and passed to the code that needs
    to know who is acting. Services never read it; they take a user ID.
    """

    def __init__(self):
        self._user: User | None = None

    @property
    def current_user(self) -> User | None:
        return self._user

    @property
    def is_logged_in(self) -> bool:
        return self._user is not None

    @property
    def current_user_id(self) -> str | None:
        return self._user.id if self._user else None

    @property
    def current_user_name(self) -> str:
        return self._user.name if self._user else "Guest"

    def login(self, user: User) -> None:
        self._user = user
        logger.info("Session started for %s", user.id)

    def logout(self) -> User | None:
        """End the session. Returns the user who was logged in, if any."""
        user, self._user = self._user, None
        if user is not None:
            logger.info("Session ended for %s", user.id)
        return user

    def refresh(self, user: User) -> None:
        """Replace the cached user with a freshly loaded copy."""
        if self._user is not None and self._user.id == user.id:
            self._user = user

    def require_user_id(self) -> str:
        if self._user is None:
            raise NotLoggedInError()
        return self._user.id
