"""Custom exceptions for minishop."""


class ShopError(Exception):
    """Base exception for all minishop errors."""

    pass


class InvalidArgumentError(ShopError):
    """Raised when a caller-supplied value violates a precondition."""

    def __init__(self, message: str, value: object = None):
        self.value = value
        super().__init__(message)


class NotFoundError(ShopError):
    """Raised when a referenced entity does not exist."""

    entity = "Entity"

    def __init__(self, key: object):
        self.key = key
        super().__init__(f"{self.entity} not found: {key}")


class UserNotFoundError(NotFoundError):
    entity = "User"


class ProductNotFoundError(NotFoundError):
    entity = "Product"


class OrderNotFoundError(NotFoundError):
    entity = "Order"


class ConflictError(ShopError):
    """Raised on a uniqueness violation."""

    pass


class UserExistsError(ConflictError):
    """Raised when registering an ID that is already taken."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User ID already exists: {user_id}")


class AuthenticationError(ShopError):
    """Raised when a password does not match."""

    def __init__(self, message: str = "Password does not match"):
        super().__init__(message)


class NotLoggedInError(AuthenticationError):
    """Raised when an operation needs a logged-in user and there is none."""

    def __init__(self):
        super().__init__("Login required")


class InsufficientStockError(ShopError):
    """Raised when a product does not have enough stock for a request."""

    def __init__(self, product_id: int, stock: int, requested: int):
        self.product_id = product_id
        self.stock = stock
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id}. "
            f"Current stock: {stock}, requested: {requested}"
        )


class InsufficientFundsError(ShopError):
    """Raised when a user's balance cannot cover an order."""

    def __init__(self, user_id: str, required: float, available: float):
        self.user_id = user_id
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient balance. Required: {required:,.0f}, "
            f"current balance: {available:,.0f}"
        )


class StorageError(ShopError):
    """Raised when a collection could not be written."""

    def __init__(self, path: str, reason: str, message: str | None = None):
        self.path = path
        self.reason = reason
        super().__init__(message or f"Storage failure at {path}: {reason}")


class PartialCommitError(StorageError):
    """Raised when an order commit failed after its first write.

    The commit journal still holds the entry, so ``OrderService.recover_pending``
    can finish it.
    """

    def __init__(self, order_id: int, step: str, cause: Exception):
        self.order_id = order_id
        self.step = step
        self.cause = cause
        super().__init__(
            getattr(cause, "path", ""),
            str(cause),
            f"Order {order_id} partially committed (failed at {step}): {cause}. "
            "Run recovery to complete it.",
        )
