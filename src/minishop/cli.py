"""Command-line interface for minishop."""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Callable

from . import __version__, config
from .errors import ShopError
from .session import Session
from .shop import Shop
from .utils import (
    format_money,
    format_order,
    format_product,
    format_user,
    is_positive_number,
    is_valid_id,
    is_valid_name,
    is_valid_number,
    is_valid_password,
)


def get_shop(args: argparse.Namespace) -> Shop:
    """Open the shop over the data directory selected on the command line."""
    data_dir = Path(args.data_dir) if getattr(args, "data_dir", None) else None
    return Shop.open(data_dir)


def cmd_register(args: argparse.Namespace) -> int:
    """Register a new user."""
    try:
        shop = get_shop(args)
        user = shop.users.register(args.user_id, args.password, args.name)

        print(f"Registered user: {user.id}")
        print(f"  Name: {user.name}")
        print(f"  Balance: {format_money(user.balance)}")
        return 0

    except ShopError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_login(args: argparse.Namespace) -> int:
    """Check credentials and show the profile."""
    try:
        shop = get_shop(args)
        user = shop.users.login(args.user_id, args.password)

        if args.json:
            data = user.to_dict()
            data.pop("password")
            print(json.dumps(data, indent=2))
        else:
            print(format_user(user))
        return 0

    except ShopError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products(args: argparse.Namespace) -> int:
    """List products, optionally filtered."""
    try:
        shop = get_shop(args)

        if args.search:
            products = shop.products.search_products_by_name(args.search)
        elif args.min_price is not None or args.max_price is not None:
            min_price = args.min_price if args.min_price is not None else 0.0
            max_price = args.max_price if args.max_price is not None else float("inf")
            products = shop.products.get_products_by_price_range(min_price, max_price)
        elif args.low_stock is not None:
            products = shop.products.get_low_stock_products(args.low_stock)
        elif args.available:
            products = shop.products.get_available_products()
        else:
            products = shop.products.get_all_products()

        if args.json:
            print(json.dumps([p.to_dict() for p in products], indent=2))
            return 0

        if not products:
            print("No products found.")
            return 0

        print(f"Products ({len(products)}):")
        for product in products:
            print(f"  {format_product(product)}")
        return 0

    except ShopError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_product(args: argparse.Namespace) -> int:
    """Show a single product."""
    try:
        shop = get_shop(args)
        product = shop.products.get_product(args.product_id)

        if args.json:
            print(json.dumps(product.to_dict(), indent=2))
        else:
            print(f"Product {product.id}: {product.name}")
            print(f"  Price: {format_money(product.price)}")
            print(f"  Stock: {product.stock}")
        return 0

    except ShopError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_order(args: argparse.Namespace) -> int:
    """Place an order as the given user."""
    try:
        shop = get_shop(args)
        user = shop.users.login(args.user, args.password)
        order = shop.orders.create_order(user.id, args.product_id, args.quantity)

        if args.json:
            print(json.dumps(order.to_dict(), indent=2))
        else:
            print(f"Order placed: #{order.order_id}")
            print(f"  Total: {format_money(order.total_price)}")
            print(f"  Balance: {format_money(shop.users.get_balance(user.id))}")
        return 0

    except ShopError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders(args: argparse.Namespace) -> int:
    """List a user's orders."""
    try:
        shop = get_shop(args)
        user = shop.users.login(args.user, args.password)
        orders = shop.orders.get_user_orders(user.id)

        if args.json:
            print(json.dumps([o.to_dict() for o in orders], indent=2))
            return 0

        if not orders:
            print("No orders found.")
            return 0

        names = {p.id: p.name for p in shop.products.get_all_products()}
        print(f"Orders ({len(orders)}):")
        for order in orders:
            print(f"  {format_order(order, names.get(order.product_id))}")
        print(f"Total spent: {format_money(sum(o.total_price for o in orders))}")
        return 0

    except ShopError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_recover(args: argparse.Namespace) -> int:
    """Complete order commits that were interrupted."""
    try:
        data_dir = Path(args.data_dir) if args.data_dir else None
        shop = Shop.open(data_dir, recover=False)
        recovered = shop.orders.recover_pending()

        if not recovered:
            print("No interrupted commits.")
        else:
            print(f"Recovered {len(recovered)} order(s):")
            for order in recovered:
                print(f"  {format_order(order)}")
        return 0

    except ShopError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_shell(args: argparse.Namespace) -> int:
    """Run the interactive menu."""
    try:
        shop = get_shop(args)
    except ShopError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    MenuShell(shop).run()
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        if args.data_dir:
            config.DATA_DIR = Path(args.data_dir)
            # Reloader subprocesses re-import config from the environment
            os.environ["MINISHOP_DATA_DIR"] = str(config.DATA_DIR)

        print("Starting minishop API server...")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "minishop.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=1,  # Single worker; the stores are whole-file read-modify-write
        )
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


class MenuShell:
    """Numbered text menus over the shop. "0" always returns to the parent menu."""

    def __init__(
        self,
        shop: Shop,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ):
        self.shop = shop
        self.session = Session()
        self._input = input_func
        self._out = output

    def _ask(self, prompt: str) -> str:
        return self._input(prompt).strip()

    def _menu(self, title: str, options: list[tuple[str, str, Callable[[], None]]]) -> None:
        """Show a menu until "0" is chosen."""
        actions = {key: action for key, _, action in options}
        while True:
            self._out(f"\n=== {title} ===")
            for key, label, _ in options:
                self._out(f"{key}. {label}")
            self._out("0. Back")
            choice = self._ask("Select: ")
            if choice == "0":
                return
            action = actions.get(choice)
            if action is None:
                self._out("Error: invalid selection, please try again.")
                continue
            try:
                action()
            except ShopError as e:
                self._out(f"Error: {e}")

    def run(self) -> None:
        self._out(f"Welcome to {config.APP_NAME} {__version__}")
        try:
            self._menu(
                "Main menu",
                [
                    ("1", "Account", self.account_menu),
                    ("2", "Products", self.product_menu),
                    ("3", "Orders", self.order_menu),
                ],
            )
        except EOFError:
            pass
        self._out("Goodbye!")

    # --- Account ---

    def account_menu(self) -> None:
        self._menu(
            "Account",
            [
                ("1", "Register", self.register),
                ("2", "Login", self.login),
                ("3", "Logout", self.logout),
                ("4", "View profile", self.view_profile),
                ("5", "Add funds", self.add_funds),
                ("6", "Change password", self.change_password),
            ],
        )

    def register(self) -> None:
        user_id = self._ask("ID: ")
        if not is_valid_id(user_id):
            self._out("Error: ID must be at least 3 letters or digits.")
            return
        password = self._ask("Password: ")
        if not is_valid_password(password):
            self._out(f"Error: password must be at least {config.MIN_PASSWORD_LENGTH} characters.")
            return
        name = self._ask("Name: ")
        if not is_valid_name(name):
            self._out(f"Error: name must be at least {config.MIN_NAME_LENGTH} characters.")
            return
        user = self.shop.users.register(user_id, password, name)
        self._out(f"Registered {user.id} with balance {format_money(user.balance)}.")

    def login(self) -> None:
        if self.session.is_logged_in:
            self._out(f"Already logged in as {self.session.current_user_name}.")
            return
        user_id = self._ask("ID: ")
        password = self._ask("Password: ")
        user = self.shop.users.login(user_id, password)
        self.session.login(user)
        self._out(f"Welcome, {user.name}!")

    def logout(self) -> None:
        user = self.session.logout()
        if user is None:
            self._out("Not logged in.")
        else:
            self._out(f"Goodbye, {user.name}.")

    def view_profile(self) -> None:
        user = self.shop.users.get_user(self.session.require_user_id())
        self.session.refresh(user)
        self._out(format_user(user))

    def add_funds(self) -> None:
        user_id = self.session.require_user_id()
        amount = self._ask("Amount: ")
        if not is_positive_number(amount):
            self._out("Error: enter a positive whole number.")
            return
        user = self.shop.users.add_balance(user_id, float(amount))
        self.session.refresh(user)
        self._out(f"Balance: {format_money(user.balance)}")

    def change_password(self) -> None:
        user_id = self.session.require_user_id()
        old = self._ask("Current password: ")
        new = self._ask("New password: ")
        self.shop.users.change_password(user_id, old, new)
        self._out("Password changed.")

    # --- Products ---

    def product_menu(self) -> None:
        self._menu(
            "Products",
            [
                ("1", "List products", self.list_products),
                ("2", "Product details", self.product_details),
                ("3", "Search by name", self.search_products),
            ],
        )

    def list_products(self) -> None:
        for product in self.shop.products.get_all_products():
            self._out(format_product(product))

    def product_details(self) -> None:
        text = self._ask("Product ID: ")
        if not is_valid_number(text):
            self._out("Error: enter a valid product ID.")
            return
        product = self.shop.products.get_product(int(text))
        self._out(format_product(product))

    def search_products(self) -> None:
        keyword = self._ask("Keyword: ")
        results = self.shop.products.search_products_by_name(keyword)
        if not results:
            self._out("No products found.")
        for product in results:
            self._out(format_product(product))

    # --- Orders ---

    def order_menu(self) -> None:
        if not self.session.is_logged_in:
            self._out("Error: Login required")
            return
        self._menu(
            "Orders",
            [
                ("1", "Place order", self.place_order),
                ("2", "My orders", self.my_orders),
            ],
        )

    def place_order(self) -> None:
        user_id = self.session.require_user_id()
        for product in self.shop.products.get_available_products():
            self._out(format_product(product))

        product_text = self._ask("Product ID: ")
        if not is_valid_number(product_text):
            self._out("Error: enter a valid product ID.")
            return
        quantity_text = self._ask("Quantity: ")
        if not is_valid_number(quantity_text):
            self._out("Error: enter a valid quantity.")
            return

        product = self.shop.products.get_product(int(product_text))
        quantity = int(quantity_text)
        total = product.price * quantity
        self._out(f"Order {product.name} x{quantity}, total {format_money(total)}")
        if self._ask("Confirm? (y/n): ").lower() != "y":
            self._out("Order cancelled.")
            return

        order = self.shop.orders.create_order(user_id, product.id, quantity)
        self._out(f"Order placed: #{order.order_id}, paid {format_money(order.total_price)}")

    def my_orders(self) -> None:
        user_id = self.session.require_user_id()
        orders = self.shop.orders.get_user_orders(user_id)
        if not orders:
            self._out("No orders found.")
            return
        names = {p.id: p.name for p in self.shop.products.get_all_products()}
        for order in orders:
            self._out(format_order(order, names.get(order.product_id)))
        self._out(f"{len(orders)} order(s), total {format_money(sum(o.total_price for o in orders))}")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="minishop",
        description="A small shop of users, products and orders stored in flat files.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--data-dir", help="Data directory (default: $MINISHOP_DATA_DIR or data/ in the project root)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # register
    register_parser = subparsers.add_parser("register", help="Register a new user")
    register_parser.add_argument("user_id", help="User ID")
    register_parser.add_argument("password", help="Password (at least 4 characters)")
    register_parser.add_argument("name", help="Display name")

    # login
    login_parser = subparsers.add_parser("login", help="Check credentials and show profile")
    login_parser.add_argument("user_id", help="User ID")
    login_parser.add_argument("password", help="Password")
    login_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # products
    products_parser = subparsers.add_parser("products", help="List products")
    products_parser.add_argument("--search", "-s", help="Filter by name substring")
    products_parser.add_argument("--min-price", type=float, help="Minimum price")
    products_parser.add_argument("--max-price", type=float, help="Maximum price")
    products_parser.add_argument(
        "--low-stock", type=int, metavar="N", help="Only products with stock <= N"
    )
    products_parser.add_argument(
        "--available", "-a", action="store_true", help="Only products in stock"
    )
    products_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # product
    product_parser = subparsers.add_parser("product", help="Show a product")
    product_parser.add_argument("product_id", type=int, help="Product ID")
    product_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # order
    order_parser = subparsers.add_parser("order", help="Place an order")
    order_parser.add_argument("product_id", type=int, help="Product ID")
    order_parser.add_argument("quantity", type=int, help="Quantity")
    order_parser.add_argument("--user", "-u", required=True, help="User ID")
    order_parser.add_argument("--password", "-p", required=True, help="Password")
    order_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # orders
    orders_parser = subparsers.add_parser("orders", help="List a user's orders")
    orders_parser.add_argument("--user", "-u", required=True, help="User ID")
    orders_parser.add_argument("--password", "-p", required=True, help="Password")
    orders_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # recover
    subparsers.add_parser("recover", help="Complete interrupted order commits")

    # shell
    subparsers.add_parser("shell", help="Interactive menu")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    commands = {
        "register": cmd_register,
        "login": cmd_login,
        "products": cmd_products,
        "product": cmd_product,
        "order": cmd_order,
        "orders": cmd_orders,
        "recover": cmd_recover,
        "shell": cmd_shell,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
