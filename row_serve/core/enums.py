"""Database backend enumeration."""

from __future__ import annotations

from enum import Enum


class DatabaseBackend(Enum):
    """Supported database backends."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    ORACLE = "oracle"

    @property
    def is_file_based(self) -> bool:
        """File-based backends take an opaque path instead of a host."""
        return self is DatabaseBackend.SQLITE


# URL scheme -> backend
SCHEME_ALIASES: dict[str, DatabaseBackend] = {
    "sqlite": DatabaseBackend.SQLITE,
    "sqlite3": DatabaseBackend.SQLITE,
    "sq": DatabaseBackend.SQLITE,
    "file": DatabaseBackend.SQLITE,
    "postgres": DatabaseBackend.POSTGRESQL,
    "postgresql": DatabaseBackend.POSTGRESQL,
    "pg": DatabaseBackend.POSTGRESQL,
    "pgsql": DatabaseBackend.POSTGRESQL,
    "psql": DatabaseBackend.POSTGRESQL,
    "mysql": DatabaseBackend.MYSQL,
    "my": DatabaseBackend.MYSQL,
    "mariadb": DatabaseBackend.MYSQL,
    "maria": DatabaseBackend.MYSQL,
    "oracle": DatabaseBackend.ORACLE,
    "or": DatabaseBackend.ORACLE,
    "ora": DatabaseBackend.ORACLE,
    "oci": DatabaseBackend.ORACLE,
}
