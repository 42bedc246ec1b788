import asyncio
import logging
from datetime import datetime, timezone

import asyncpg


class PostgresHandler(logging.Handler):
    """Asynchronously insert log records into Postgres."""

    def __init__(self, dsn: str, table: str = "bot_logs") -> None:
        super().__init__()
        self.dsn = dsn
        self.table = table
        self.pool: asyncpg.Pool | None = None
        self.loop: asyncio.AbstractEventLoop | None = None
        # Ignore DEBUG records so they are not written to the database
        self.setLevel(logging.INFO)

    async def connect(self) -> None:
        url = self.dsn.replace("postgresql+asyncpg://", "postgresql://")
        self.pool = await asyncpg.create_pool(url)
        self.loop = asyncio.get_running_loop()
        await self.pool.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                id SERIAL PRIMARY KEY,
                logger_name TEXT NOT NULL,
                log_level TEXT NOT NULL,
                message TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
            """
        )

    async def aclose(self) -> None:
        if self.pool:
            await self.pool.close()
            self.pool = None

    def close(self) -> None:
        if self.pool:
            pool = self.pool
            self.pool = None
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                asyncio.run(pool.close())
            else:
                loop.create_task(pool.close())
        super().close()

    def emit(self, record: logging.LogRecord) -> None:
        if not self.pool or not self.loop:
            return
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        message = record.getMessage()
        pool = self.pool

        def _schedule() -> None:
            self.loop.create_task(
                pool.execute(
                    f"INSERT INTO {self.table} (logger_name, log_level, message, created_at) VALUES ($1, $2, $3, $4)",
                    record.name,
                    record.levelname,
                    message,
                    ts,
                )
            )

        # Records may come from executor threads
        self.loop.call_soon_threadsafe(_schedule)
