"""
PostgreSQL repository adapter - Implements AccountRepository protocol.

This module provides the PostgreSQL implementation of the domain's
account store port using psycopg3 with raw SQL.

Consistency Design:
-------------------
1. **Unique index on LOWER(username)**: The only mechanism that guarantees
   at most one account per case-folded username. Violations surface as
   psycopg's UniqueViolation and are re-raised as the port-level
   DuplicateUsername so the domain never sees driver exceptions.

2. **Single-statement writes**: create, update, and delete are each one
   statement committed by the connection context manager. A request
   cancelled mid-flight rolls the transaction back, so no partially
   written account can exist.

3. **Role normalization**: Legacy rows may carry an empty role. The
   fallback to the configured default role happens here, in one place,
   for every read path.
"""

import logging
from pathlib import Path

from psycopg import errors, sql
from psycopg_pool import ConnectionPool

from adminvault.domain.ports import Account, DuplicateUsername, Role

logger = logging.getLogger(__name__)

_COLUMNS = "id, username, password_hash, role, created_at, updated_at"


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool, default_role: Role = Role.USER) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            default_role: Role reported for rows stored without one
        """
        self._pool = pool
        self._default_role = default_role

    def create(self, username: str, password_hash: str, role: Role) -> Account:
        query = f"""
            INSERT INTO admins (username, password_hash, role)
            VALUES (%s, %s, %s)
            RETURNING {_COLUMNS}
        """

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(query, (username, password_hash, role.value))
                row = cursor.fetchone()
                conn.commit()
        except errors.UniqueViolation as e:
            raise DuplicateUsername(username) from e
        return self._to_account(row)

    def find_by_id(self, account_id: int) -> Account | None:
        query = f"SELECT {_COLUMNS} FROM admins WHERE id = %s"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(query, (account_id,))
            row = cursor.fetchone()
        return self._to_account(row) if row is not None else None

    def find_by_username(self, username: str) -> Account | None:
        # Matches the unique index expression so the lookup uses it
        query = f"SELECT {_COLUMNS} FROM admins WHERE LOWER(username) = LOWER(%s)"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(query, (username,))
            row = cursor.fetchone()
        return self._to_account(row) if row is not None else None

    def list_all(self) -> list[Account]:
        query = f"SELECT {_COLUMNS} FROM admins ORDER BY id ASC"

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(query)
            rows = cursor.fetchall()
        return [self._to_account(row) for row in rows]

    def update(
        self,
        account_id: int,
        *,
        username: str | None = None,
        password_hash: str | None = None,
        role: Role | None = None,
    ) -> Account | None:
        """
        Update supplied columns and set updated_at = NOW() in one statement.

        Returns:
            Updated account, or None if no row has ``account_id``
        """
        assignments = [sql.SQL("updated_at = NOW()")]
        params: list[object] = []
        for column, value in (
            ("username", username),
            ("password_hash", password_hash),
            ("role", role.value if role is not None else None),
        ):
            if value is not None:
                assignments.append(sql.SQL("{} = %s").format(sql.Identifier(column)))
                params.append(value)
        params.append(account_id)

        query = sql.SQL("UPDATE admins SET {} WHERE id = %s RETURNING {}").format(
            sql.SQL(", ").join(assignments),
            sql.SQL(_COLUMNS),
        )

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
                conn.commit()
        except errors.UniqueViolation as e:
            raise DuplicateUsername(username or "") from e
        return self._to_account(row) if row is not None else None

    def delete(self, account_id: int) -> bool:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM admins WHERE id = %s", (account_id,))
            conn.commit()
            return cursor.rowcount == 1

    def _to_account(self, row: tuple) -> Account:
        account_id, username, password_hash, role, created_at, updated_at = row
        return Account(
            id=account_id,
            username=username,
            password_hash=password_hash,
            role=Role(role) if role else self._default_role,
            created_at=created_at,
            updated_at=updated_at,
        )


# adminvault/adapters/repository/postgres.py -> <project root>/migrations
MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"


def run_migrations(pool: ConnectionPool, migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
    """
    Apply every ``*.sql`` file in ``migrations_dir``, in filename order.

    All files run in one transaction: if any fails, none is applied and
    the error is re-raised as RuntimeError naming the file. Files must be
    idempotent (IF NOT EXISTS), since every startup replays them.

    Returns:
        Names of the applied files
    """
    sql_files = sorted(migrations_dir.glob("*.sql")) if migrations_dir.is_dir() else []
    if not sql_files:
        logger.warning("No migrations found in %s", migrations_dir)
        return []

    applied: list[str] = []
    with pool.connection() as conn, conn.transaction():
        for sql_file in sql_files:
            try:
                conn.execute(sql_file.read_text())
            except Exception as e:
                logger.error("Migration %s failed, rolling back: %s", sql_file.name, e)
                raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
            applied.append(sql_file.name)

    logger.info("Applied %d migration(s): %s", len(applied), ", ".join(applied))
    return applied
