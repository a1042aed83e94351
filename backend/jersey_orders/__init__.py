"""Order intake portal and admin API for custom jersey production."""

__version__ = "1.0.0"
