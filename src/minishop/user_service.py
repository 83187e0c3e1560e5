"""User registration, credentials and balance."""

import logging

from .config import MIN_NAME_LENGTH, MIN_PASSWORD_LENGTH
from .errors import (
    AuthenticationError,
    InvalidArgumentError,
    UserExistsError,
    UserNotFoundError,
)
from .models import User
from .repositories import UserRepository
from .utils import require_min_length, require_non_empty, require_positive

logger = logging.getLogger(__name__)


class UserService:
    """Business rules for user accounts."""

    def __init__(self, user_repository: UserRepository):
        self.users = user_repository

    def register(self, user_id: str, password: str, name: str) -> User:
        """
        Register a new user with the starting balance.

        Raises:
            InvalidArgumentError: If any field fails validation.
            UserExistsError: If the ID is already taken.
        """
        require_non_empty(user_id, "User ID is required")
        require_min_length(
            password,
            MIN_PASSWORD_LENGTH,
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )
        require_non_empty(name, "Name is required")
        require_min_length(
            name.strip(), MIN_NAME_LENGTH, f"Name must be at least {MIN_NAME_LENGTH} characters"
        )

        with self.users.store.lock(self.users.slot):
            if self.users.exists_by_id(user_id):
                raise UserExistsError(user_id)
            user = self.users.save(User.create(user_id, password, name))

        logger.info("Registered user %s", user.id)
        return user

    def login(self, user_id: str, password: str) -> User:
        """
        Check credentials and return the user.

        Raises:
            InvalidArgumentError: If ID or password is empty.
            UserNotFoundError: If the user doesn't exist.
            AuthenticationError: If the password doesn't match.
        """
        require_non_empty(user_id, "User ID is required")
        require_non_empty(password, "Password is required")

        user = self.get_user(user_id)
        if not user.match_password(password):
            raise AuthenticationError()

        logger.info("User %s logged in", user.id)
        return user

    def get_user(self, user_id: str) -> User:
        """
        Get a user by ID.

        Raises:
            UserNotFoundError: If the user doesn't exist.
        """
        if user_id is None:
            raise InvalidArgumentError("User ID is required")
        user = self.users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def get_all_users(self) -> list[User]:
        return self.users.find_all()

    def get_balance(self, user_id: str) -> float:
        return self.get_user(user_id).balance

    def update_balance(self, user_id: str, new_balance: float) -> User:
        """
        Set a user's balance.

        Raises:
            InvalidArgumentError: If the new balance is negative.
            UserNotFoundError: If the user doesn't exist.
        """
        if new_balance < 0:
            raise InvalidArgumentError(f"Balance cannot be negative: {new_balance}", new_balance)

        with self.users.store.lock(self.users.slot):
            user = self.get_user(user_id)
            old_balance = user.balance
            user.balance = float(new_balance)
            self.users.update(user)

        logger.info("Balance of %s changed (%.0f -> %.0f)", user_id, old_balance, new_balance)
        return user

    def deduct_balance(self, user_id: str, amount: float) -> bool:
        """
        Subtract ``amount`` from a user's balance.

        Returns False instead of raising when the user is unknown or the
        balance is insufficient.

        Raises:
            InvalidArgumentError: If amount is not positive.
        """
        require_positive(amount, f"Amount to deduct must be positive: {amount}")

        with self.users.store.lock(self.users.slot):
            user = self.users.find_by_id(user_id)
            if user is None or not user.has_enough_balance(amount):
                return False
            user.balance -= amount
            self.users.update(user)

        logger.info("Deducted %.0f from %s", amount, user_id)
        return True

    def add_balance(self, user_id: str, amount: float) -> User:
        """
        Add ``amount`` to a user's balance.

        Raises:
            InvalidArgumentError: If amount is not positive.
            UserNotFoundError: If the user doesn't exist.
        """
        require_positive(amount, f"Amount to add must be positive: {amount}")

        with self.users.store.lock(self.users.slot):
            user = self.get_user(user_id)
            user.balance += amount
            self.users.update(user)

        logger.info("Added %.0f to %s", amount, user_id)
        return user

    def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        """
        Change a user's password after checking the current one.

        Raises:
            InvalidArgumentError: If the inputs fail validation.
            UserNotFoundError: If the user doesn't exist.
            AuthenticationError: If the current password doesn't match.
        """
        require_non_empty(old_password, "Current password is required")
        require_min_length(
            new_password,
            MIN_PASSWORD_LENGTH,
            f"New password must be at least {MIN_PASSWORD_LENGTH} characters",
        )

        with self.users.store.lock(self.users.slot):
            user = self.get_user(user_id)
            if not user.match_password(old_password):
                raise AuthenticationError("Current password does not match")
            user.password = new_password
            self.users.update(user)

        logger.info("Password changed for %s", user_id)

    def update_name(self, user_id: str, name: str) -> User:
        require_non_empty(name, "Name is required")
        require_min_length(
            name.strip(), MIN_NAME_LENGTH, f"Name must be at least {MIN_NAME_LENGTH} characters"
        )
        with self.users.store.lock(self.users.slot):
            user = self.get_user(user_id)
            user.name = name.strip()
            self.users.update(user)
        return user
