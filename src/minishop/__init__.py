"""minishop - a file-backed teaching shop for users, products and orders."""

__version__ = "0.1.0"
