import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import psycopg
from langgraph.checkpoint.memory import InMemorySaver
from psycopg.rows import dict_row

from config.postgres import PostgresConfig
from config.settings import AppSettings
from persistence.encrypted_postgres_saver import EncryptedAsyncPostgresSaver

logger = logging.getLogger("udyam")


@asynccontextmanager
async def open_checkpointer(
    settings: AppSettings, pg: Optional[PostgresConfig] = None
) -> AsyncIterator[Any]:
    """Yield the checkpointer that keeps in-progress registration forms."""
    if settings.checkpoint_backend == "memory":
        yield InMemorySaver()
        return

    pg = pg or PostgresConfig.from_env()
    async with await psycopg.AsyncConnection.connect(
        autocommit=True,
        prepare_threshold=0,
        row_factory=dict_row,
        **pg.connect_kwargs(),
    ) as conn:
        checkpointer = EncryptedAsyncPostgresSaver(conn)
        await checkpointer.setup()
        logger.info("checkpointer.ready", extra={"backend": "postgres", "db": pg.dbname})
        yield checkpointer
