"""Storage locations and business constants for minishop."""

import os
from pathlib import Path

# Can be overridden via MINISHOP_DATA_DIR environment variable
_default_data_dir = Path(__file__).parent.parent.parent / "data"
DATA_DIR = Path(os.environ.get("MINISHOP_DATA_DIR", _default_data_dir))

SCHEMA_VERSION = 1

# Slot names (one JSON file per collection)
USER_SLOT = "users"
PRODUCT_SLOT = "products"
ORDER_SLOT = "orders"
JOURNAL_SLOT = "commit_journal"

INITIAL_BALANCE = 10000.0
MIN_PASSWORD_LENGTH = 4
MIN_NAME_LENGTH = 2
MIN_ID_LENGTH = 3
MIN_ORDER_QUANTITY = 1
DEFAULT_LOW_STOCK_THRESHOLD = 10

APP_NAME = "minishop"
