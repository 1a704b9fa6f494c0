import os

import psycopg
import pytest

from config.postgres import PostgresConfig
from config.settings import AppSettings
from conftest import FakeOtpProvider, FakeSubmitter, build_registry, fill_step1
from persistence.checkpoints import open_checkpointer

pytestmark = pytest.mark.skipif("PG_HOST" not in os.environ, reason="needs a Postgres server")


@pytest.mark.asyncio
async def test_form_values_encrypted_in_db_and_plaintext_on_read():
    pg = PostgresConfig.from_env()
    settings = AppSettings(checkpoint_backend="postgres")

    async with open_checkpointer(settings, pg) as checkpointer:
        registry = build_registry(FakeOtpProvider(), FakeSubmitter(), checkpointer)
        session = registry.create()
        await fill_step1(session)

        with psycopg.connect(**pg.connect_kwargs()) as conn:
            for channel in ("values", "field_value"):
                row = conn.execute(
                    """
                    SELECT encode(blob, 'escape')
                    FROM checkpoint_blobs
                    WHERE thread_id = %s AND channel = %s
                    ORDER BY version DESC
                    LIMIT 1
                    """,
                    (session.session_id, channel),
                ).fetchone()
                assert row is not None
                assert "__enc__" in row[0]
                assert "Khushi" not in row[0]

        latest = await registry.graph.aget_state(session.config)
        assert latest.values["values"]["aadhaar"] == "123456789012"
        assert latest.values["values"]["consent"] is True

        await registry.close(session.session_id)
        assert await checkpointer.aget_tuple(session.config) is None
