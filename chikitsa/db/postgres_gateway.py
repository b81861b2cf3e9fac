"""
PostgreSQL-backed persistence gateway

Every document lives in one JSONB table keyed by (user_id, entity_type,
doc_key). Saves are upserts, so the last write wins.
"""

import logging
from typing import Optional

import psycopg
from psycopg.types.json import Jsonb

from chikitsa.db.connection import Database
from chikitsa.db.gateway import EntityType, document_key
from chikitsa.exceptions import wrap_external_exception
from chikitsa.monitoring.metrics import track_database_query

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS user_documents (
    user_id TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    doc_key TEXT NOT NULL,
    payload JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (user_id, entity_type, doc_key)
)
"""


class PostgresGateway:
    """Document store over a psycopg connection pool"""

    def __init__(self, database: Database):
        self.db = database

    async def ensure_schema(self) -> None:
        """Create the documents table if it does not exist"""
        try:
            async with self.db.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(SCHEMA_SQL)
                await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="ensure_schema")
        logger.info("user_documents table ready")

    async def load_entity(
        self,
        user_id: str,
        entity_type: EntityType,
        key: Optional[str] = None
    ) -> Optional[dict]:
        """Get a stored document"""
        try:
            with track_database_query("select", "user_documents"):
                async with self.db.connection() as conn:
                    async with conn.cursor() as cur:
                        await cur.execute(
                            """
                            SELECT payload
                            FROM user_documents
                            WHERE user_id = %s AND entity_type = %s AND doc_key = %s
                            """,
                            (user_id, entity_type.value, document_key(key))
                        )
                        row = await cur.fetchone()
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="load_entity",
                user_id=user_id,
                context={"entity_type": entity_type.value, "key": key}
            )

        return row["payload"] if row else None

    async def save_entity(
        self,
        user_id: str,
        entity_type: EntityType,
        document: dict,
        key: Optional[str] = None
    ) -> None:
        """Upsert a document"""
        try:
            with track_database_query("upsert", "user_documents"):
                async with self.db.connection() as conn:
                    async with conn.cursor() as cur:
                        await cur.execute(
                            """
                            INSERT INTO user_documents (user_id, entity_type, doc_key, payload)
                            VALUES (%s, %s, %s, %s)
                            ON CONFLICT (user_id, entity_type, doc_key)
                            DO UPDATE SET payload = EXCLUDED.payload,
                                          updated_at = CURRENT_TIMESTAMP
                            """,
                            (user_id, entity_type.value, document_key(key), Jsonb(document))
                        )
                    await conn.commit()
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="save_entity",
                user_id=user_id,
                context={"entity_type": entity_type.value, "key": key}
            )

        logger.debug(f"Saved {entity_type.value}/{document_key(key)} for user {user_id}")

    async def list_entities(self, user_id: str, entity_type: EntityType) -> list[dict]:
        """Get all documents of a collection"""
        try:
            with track_database_query("select", "user_documents"):
                async with self.db.connection() as conn:
                    async with conn.cursor() as cur:
                        await cur.execute(
                            """
                            SELECT payload
                            FROM user_documents
                            WHERE user_id = %s AND entity_type = %s
                            ORDER BY doc_key
                            """,
                            (user_id, entity_type.value)
                        )
                        rows = await cur.fetchall()
        except psycopg.Error as e:
            raise wrap_external_exception(
                e,
                operation="list_entities",
                user_id=user_id,
                context={"entity_type": entity_type.value}
            )

        return [row["payload"] for row in rows]
