from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .snapshot import DrawStateSnapshot  # noqa: F401

__all__ = [
    "Base",
    "DrawStateSnapshot",
]
