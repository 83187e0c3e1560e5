"""Demo catalog seeded into an empty product collection."""

from .models import Product

# (id, name, price, stock)
DEMO_CATALOG: list[tuple[int, str, float, int]] = [
    (1, "Laptop", 1500000.0, 10),
    (2, "Mouse", 30000.0, 50),
    (3, "Keyboard", 80000.0, 30),
    (4, "Monitor", 400000.0, 20),
    (5, "Earphones", 50000.0, 100),
    (6, "Webcam", 120000.0, 15),
    (7, "USB Memory", 25000.0, 80),
    (8, "External HDD", 150000.0, 25),
]


def demo_products() -> list[Product]:
    """Fresh Product objects for the demo catalog."""
    return [
        Product(id=pid, name=name, price=price, stock=stock)
        for pid, name, price, stock in DEMO_CATALOG
    ]
