"""
MongoDB Connection Pool - Singleton pattern for connection reuse.
"""
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from typing import Optional

from shared.services.logger import get_logger


logger = get_logger(__name__)


class MongoDBPool:
    """Singleton MongoDB connection pool."""

    _instance: Optional["MongoDBPool"] = None
    _client: Optional[MongoClient] = None

    def __new__(cls) -> "MongoDBPool":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def connect(self, uri: Optional[str] = None) -> MongoClient:
        """
        Initialize or return existing MongoDB client.
        Uses connection pooling by default (maxPoolSize=100).

        Datetimes come back timezone-aware (UTC) so OTP expiry
        comparisons work against ``datetime.now(timezone.utc)``.
        """
        if self._client is None:
            self._client = MongoClient(
                uri,
                tz_aware=True,
                maxPoolSize=100,
                minPoolSize=10,
                maxIdleTimeMS=30000,
                connectTimeoutMS=5000,
                serverSelectionTimeoutMS=5000,
            )
            # Test connection
            self._client.admin.command("ping")
        return self._client

    def get_database(self, db_name: Optional[str] = None) -> Database:
        """Get database instance."""
        if self._client is None:
            self.connect()
        return self._client[db_name]

    def get_collection(self, collection_name: str, db_name: Optional[str] = None):
        """Get collection from database."""
        db = self.get_database(db_name)
        return db[collection_name]

    def close(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None

    @property
    def client(self) -> Optional[MongoClient]:
        """Get raw client (connects if needed)."""
        if self._client is None:
            self.connect()
        return self._client


# Global singleton instance
mongo_pool = MongoDBPool()


def ensure_indexes(
    db: Database,
    users_collection: str = "users",
    notes_collection: str = "notes",
) -> None:
    """
    Create the indexes the services rely on.

    - users.email: unique (one account per email)
    - users.google_id: unique, sparse (only linked accounts carry one)
    - notes (user_id, created_at desc): owner listing, newest first
    """
    users = db[users_collection]
    users.create_index([("email", ASCENDING)], unique=True, name="email_unique")
    users.create_index(
        [("google_id", ASCENDING)],
        unique=True,
        sparse=True,
        name="google_id_unique",
    )

    notes = db[notes_collection]
    notes.create_index(
        [("user_id", ASCENDING), ("created_at", DESCENDING)],
        name="user_created_at",
    )
    logger.info(f"Indexes ensured on {db.name}")

