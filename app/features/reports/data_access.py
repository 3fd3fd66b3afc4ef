"""Data access for report queries.

Report SQL uses PostgreSQL's native ``$N`` placeholders and array
parameters, so it runs on the asyncpg connection underneath the SQLAlchemy
session instead of going through ``text()`` bind params.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

import asyncpg
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ExecutionError
from app.core.logging import get_logger

logger = get_logger(__name__)


@runtime_checkable
class ReportDataAccess(Protocol):
    """Runs positional SQL and returns rows as mappings."""

    async def execute(self, sql: str, parameters: Sequence[Any]) -> list[Mapping[str, Any]]:
        """Run ``sql`` with ``$N`` bound to ``parameters[N-1]``."""
        ...


class SessionDataAccess:
    """Executes report SQL on the driver connection of an ``AsyncSession``.

    Pooling and connection lifetime stay with the session; this class only
    borrows the connection for the duration of one statement.
    """

    def __init__(self, session: AsyncSession, timeout: float | None = None) -> None:
        self.session = session
        self.timeout = timeout

    async def execute(self, sql: str, parameters: Sequence[Any]) -> list[Mapping[str, Any]]:
        """Run a report query.

        Args:
            sql: SQL with ``$1..$N`` placeholders.
            parameters: Values bound positionally.

        Returns:
            Result rows as plain dicts.

        Raises:
            ExecutionError: If the store rejects the query, times out or
                the connection fails.
        """
        try:
            connection = await self.session.connection()
            raw_connection = await connection.get_raw_connection()
            driver_connection = raw_connection.driver_connection
            records = await driver_connection.fetch(sql, *parameters, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.error(
                "reports.execution_timeout",
                timeout_seconds=self.timeout,
                parameter_count=len(parameters),
            )
            raise ExecutionError(
                "Report query timed out",
                details={"timeout_seconds": self.timeout},
            ) from exc
        except (asyncpg.PostgresError, asyncpg.InterfaceError, SQLAlchemyError, OSError) as exc:
            logger.error(
                "reports.execution_failed",
                error=str(exc),
                error_type=type(exc).__name__,
                parameter_count=len(parameters),
            )
            raise ExecutionError(
                details={"error_type": type(exc).__name__},
            ) from exc

        return [dict(record) for record in records]
