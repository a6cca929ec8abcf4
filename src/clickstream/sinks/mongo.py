"""MongoDB sink for enriched events."""

import logging
from collections.abc import Callable
from typing import Any

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from clickstream.config import MongoSettings
from clickstream.schemas.events import EnrichedRecord
from core.errors import ConnectionError, SinkWriteError

logger = logging.getLogger(__name__)

ClientFactory = Callable[[MongoSettings], Any]


def _default_client(settings: MongoSettings) -> AsyncMongoClient:
    return AsyncMongoClient(
        settings.uri,
        connectTimeoutMS=settings.connect_timeout_ms,
        serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
    )


class MongoEventSink:
    """Writes one EnrichedRecord per insert into the configured collection."""

    def __init__(self, settings: MongoSettings, client_factory: ClientFactory | None = None):
        self.settings = settings
        self._client_factory = client_factory or _default_client
        self._client = None
        self._collection = None

    async def connect(self) -> None:
        """
        Open the client and ping the server.

        Raises:
            ConnectionError: the server did not answer the ping within the
                server selection timeout
        """
        if self._client is not None:
            return

        client = self._client_factory(self.settings)
        try:
            await client.admin.command("ping")
        except PyMongoError as e:
            await client.close()
            raise ConnectionError(
                "MongoDB did not answer ping",
                cause=e,
                context={"database": self.settings.database},
            ) from e

        self._client = client
        self._collection = client[self.settings.database][self.settings.collection]
        logger.info(
            "Connected to MongoDB",
            extra={
                "mongo_uri": self.settings.uri,
                "database": self.settings.database,
                "collection": self.settings.collection,
            },
        )

    async def insert(self, record: EnrichedRecord) -> Any:
        """Insert record and return the id assigned by the store.

        Raises:
            SinkWriteError: the write failed
        """
        if self._collection is None:
            raise RuntimeError("Sink not connected. Call connect() first.")

        try:
            result = await self._collection.insert_one(record.to_document())
        except PyMongoError as e:
            raise SinkWriteError(
                f"Failed to insert event into {self.settings.database}.{self.settings.collection}",
                cause=e,
                context={"user_id": record.user_id, "timestamp": record.timestamp},
            ) from e
        return result.inserted_id

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.close()
            logger.info("MongoDB connection closed")
        finally:
            self._client = None
            self._collection = None


__all__ = ["MongoEventSink"]
