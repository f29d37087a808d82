"""Terminal explorer for saved PostgreSQL connections."""

__version__ = "0.1.0"
