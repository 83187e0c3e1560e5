"""FastAPI REST API for minishop."""

from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .config import DEFAULT_LOW_STOCK_THRESHOLD
from .errors import (
    AuthenticationError,
    ConflictError,
    InsufficientFundsError,
    InsufficientStockError,
    InvalidArgumentError,
    NotFoundError,
    ShopError,
    StorageError,
)
from .models import Order, Product, User
from .shop import Shop


# --- Pydantic Schemas ---


class UserSchema(BaseModel):
    id: str
    name: str
    balance: float
    created_at: str


class RegisterRequest(BaseModel):
    id: str = Field(..., description="User ID")
    password: str = Field(..., description="Password (at least 4 characters)")
    name: str = Field(..., description="Display name (at least 2 characters)")


class LoginRequest(BaseModel):
    id: str
    password: str


class BalanceRequest(BaseModel):
    password: str
    amount: float = Field(..., description="Amount to add")


class ProductSchema(BaseModel):
    id: int
    name: str
    price: float
    stock: int


class ProductListResponse(BaseModel):
    products: list[ProductSchema]
    count: int


class OrderSchema(BaseModel):
    order_id: int
    user_id: str
    product_id: int
    quantity: int
    total_price: float
    order_date: str


class OrderCreateRequest(BaseModel):
    user_id: str
    password: str
    product_id: int
    quantity: int


class OrderListResponse(BaseModel):
    orders: list[OrderSchema]
    count: int
    total_spent: float


# --- Helper Functions ---


def get_shop() -> Shop:
    """Open the shop over the configured data directory."""
    return Shop.open()


def user_to_schema(user: User) -> UserSchema:
    """Convert dataclass User to Pydantic schema (without the password)."""
    return UserSchema(
        id=user.id,
        name=user.name,
        balance=user.balance,
        created_at=user.created_at,
    )


def product_to_schema(product: Product) -> ProductSchema:
    return ProductSchema(**product.to_dict())


def order_to_schema(order: Order) -> OrderSchema:
    return OrderSchema(**order.to_dict())


app = FastAPI(
    title="minishop API",
    description="Users, products and orders stored in flat files",
    version=__version__,
)


# --- Global Exception Handler ---


# Checked in order; the first matching base class wins
ERROR_STATUS_CODES: list[tuple[type, int]] = [
    (InvalidArgumentError, 400),
    (AuthenticationError, 401),
    (NotFoundError, 404),
    (ConflictError, 409),
    (InsufficientStockError, 409),
    (InsufficientFundsError, 409),
    (StorageError, 500),
]


def status_for(exc: ShopError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError) -> JSONResponse:
    """Map ShopError subclasses to appropriate HTTP responses."""
    return JSONResponse(
        status_code=status_for(exc),
        content={"detail": str(exc), "error_type": type(exc).__name__},
    )


# --- Endpoints ---


@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    shop = get_shop()
    try:
        return {
            "status": "ok",
            "version": __version__,
            "user_count": len(shop.users.get_all_users()),
            "order_count": len(shop.orders.get_all_orders()),
        }
    except Exception as e:
        return {
            "status": "error",
            "detail": str(e),
        }


# --- User Endpoints ---


@app.post("/api/users", response_model=UserSchema, status_code=201)
def register_user(request: RegisterRequest):
    """Register a new user with the starting balance."""
    shop = get_shop()
    user = shop.users.register(request.id, request.password, request.name)
    return user_to_schema(user)


@app.post("/api/login", response_model=UserSchema)
def login(request: LoginRequest):
    """Check credentials and return the user."""
    shop = get_shop()
    user = shop.users.login(request.id, request.password)
    return user_to_schema(user)


@app.get("/api/users/{user_id}", response_model=UserSchema)
def get_user(user_id: str):
    shop = get_shop()
    return user_to_schema(shop.users.get_user(user_id))


@app.post("/api/users/{user_id}/balance", response_model=UserSchema)
def add_balance(user_id: str, request: BalanceRequest):
    """Add funds to a user's balance."""
    shop = get_shop()
    shop.users.login(user_id, request.password)
    user = shop.users.add_balance(user_id, request.amount)
    return user_to_schema(user)


@app.get("/api/users/{user_id}/orders", response_model=OrderListResponse)
def list_user_orders(user_id: str):
    """List a user's orders."""
    shop = get_shop()
    shop.users.get_user(user_id)
    orders = shop.orders.get_user_orders(user_id)
    return OrderListResponse(
        orders=[order_to_schema(o) for o in orders],
        count=len(orders),
        total_spent=sum(o.total_price for o in orders),
    )


# --- Product Endpoints ---


@app.get("/api/products", response_model=ProductListResponse)
def list_products(
    search: Optional[str] = Query(default=None),
    min_price: Optional[float] = Query(default=None),
    max_price: Optional[float] = Query(default=None),
    available: bool = Query(default=False),
):
    """List products, optionally filtered by name or price range."""
    shop = get_shop()
    if search is not None:
        products = shop.products.search_products_by_name(search)
    elif min_price is not None or max_price is not None:
        products = shop.products.get_products_by_price_range(
            min_price if min_price is not None else 0.0,
            max_price if max_price is not None else float("inf"),
        )
    elif available:
        products = shop.products.get_available_products()
    else:
        products = shop.products.get_all_products()
    return ProductListResponse(
        products=[product_to_schema(p) for p in products],
        count=len(products),
    )


@app.get("/api/products/low-stock", response_model=ProductListResponse)
def list_low_stock_products(threshold: int = Query(default=DEFAULT_LOW_STOCK_THRESHOLD)):
    shop = get_shop()
    products = shop.products.get_low_stock_products(threshold)
    return ProductListResponse(
        products=[product_to_schema(p) for p in products],
        count=len(products),
    )


@app.get("/api/products/{product_id}", response_model=ProductSchema)
def get_product(product_id: int):
    shop = get_shop()
    return product_to_schema(shop.products.get_product(product_id))


# --- Order Endpoints ---


@app.post("/api/orders", response_model=OrderSchema, status_code=201)
def create_order(request: OrderCreateRequest):
    """Place an order."""
    shop = get_shop()
    user = shop.users.login(request.user_id, request.password)
    order = shop.orders.create_order(user.id, request.product_id, request.quantity)
    return order_to_schema(order)


@app.get("/api/orders/{order_id}", response_model=OrderSchema)
def get_order(order_id: int):
    shop = get_shop()
    return order_to_schema(shop.orders.get_order(order_id))
