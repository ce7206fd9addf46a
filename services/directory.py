"""
MongoDB-backed library directory.
The directory is the authoritative list of libraries; holdings data is filtered against it.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo import ReplaceOne
from pymongo.errors import ConnectionFailure, PyMongoError

from .exceptions import DirectoryFetchError
from .models import LibraryRecord

logger = structlog.get_logger(__name__)


class LibraryDirectory:
    """
    Async reader (and maintenance writer) for the libraries collection.
    """

    def __init__(self, connection_url: str, database_name: str, collection_name: str = "libraries"):
        """
        Initialize the directory.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            collection_name: Name of the libraries collection
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.collection_name = collection_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.collection: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB and ensure the lib_code index exists."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]
            self.collection = self.database[self.collection_name]

            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB",
                        database=self.database_name,
                        collection=self.collection_name)

            await self.collection.create_index("lib_code", unique=True)

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def get_all_libraries(self) -> List[LibraryRecord]:
        """
        Fetch every library ordered by code.

        Raises:
            DirectoryFetchError: if the store is unreachable or returns an error
        """
        if self.collection is None:
            raise DirectoryFetchError("Library directory is not connected")

        try:
            cursor = self.collection.find({}, {"_id": 0}).sort("lib_code", 1)
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.error("Failed to fetch libraries", error=str(e))
            raise DirectoryFetchError(str(e)) from e

        try:
            libraries = [LibraryRecord(**doc) for doc in documents]
        except ValidationError as e:
            logger.error("Malformed library document", error=str(e))
            raise DirectoryFetchError(f"Malformed library document: {e}") from e

        logger.debug("Fetched library directory", count=len(libraries))
        return libraries

    async def upsert_libraries(self, records: Iterable[LibraryRecord]) -> Dict[str, int]:
        """
        Insert or replace libraries by code.

        Args:
            records: Libraries to store

        Returns:
            Dictionary with inserted/updated counts
        """
        now = datetime.now(timezone.utc)
        existing = {
            doc["lib_code"]: doc.get("created_at")
            async for doc in self.collection.find({}, {"_id": 0, "lib_code": 1, "created_at": 1})
        }

        operations = []
        for record in records:
            doc = record.model_dump()
            doc["created_at"] = existing.get(record.lib_code) or record.created_at or now
            doc["updated_at"] = now
            operations.append(ReplaceOne({"lib_code": record.lib_code}, doc, upsert=True))

        if not operations:
            return {"inserted": 0, "updated": 0}

        try:
            result = await self.collection.bulk_write(operations, ordered=False)
        except PyMongoError as e:
            logger.error("Failed to upsert libraries", error=str(e))
            raise

        summary = {"inserted": result.upserted_count, "updated": result.modified_count}
        logger.info("Library directory updated", **summary)
        return summary

    async def get_libraries_count(self) -> int:
        """Get total number of libraries in the directory."""
        return await self.collection.count_documents({})

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform directory health check.

        Returns:
            Dictionary with health status
        """
        if self.database is None:
            return {"status": "unhealthy", "error": "not connected"}

        try:
            await self.database.command("ping")
            return {
                "status": "healthy",
                "libraries_count": await self.get_libraries_count()
            }
        except PyMongoError as e:
            logger.error("Directory health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
