"""Connection-layer drivers."""

from .driver import Driver, StatementHandle
from .sqlalchemy_driver import SQLAlchemyDriver

__all__ = ["Driver", "StatementHandle", "SQLAlchemyDriver"]
