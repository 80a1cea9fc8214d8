# Copyright 2025 Sushanth (https://github.com/sushanthpy)
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Backing Store Backends

A backend wraps one document-store client connection. ScopedStore never
talks to a driver directly; it only calls the operations defined by
StoreBackend, always with fully-qualified collection names.

Two implementations are provided:
- MongoStoreBackend: MongoDB through the pymongo async driver
- InMemoryStoreBackend: process-local dictionaries, for tests and embedding

Backends are responsible for translating driver-specific failures into the
ScopedStore error kinds (ConnectionFailureError, CollectionExistsError).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional
import copy
import logging
import uuid

from pymongo import AsyncMongoClient
from pymongo.errors import CollectionInvalid, OperationFailure
from pymongo.errors import ConnectionFailure as MongoConnectionFailure

from .errors import CollectionExistsError, ConnectionFailureError

logger = logging.getLogger(__name__)

# Server error code for "collection already exists"
NAMESPACE_EXISTS_CODE = 48
NAMESPACE_EXISTS_CODE_NAME = "NamespaceExists"

MEMORY_URI_SCHEME = "memory://"


# ============================================================================
# Backend Interface
# ============================================================================

class StoreBackend(ABC):
    """
    Abstract interface for a backing document store.

    One backend instance owns at most one open connection.
    """

    @abstractmethod
    async def connect(self, uri: str) -> None:
        """Open the connection. Raises ConnectionFailureError if unreachable."""
        pass

    @abstractmethod
    def database(self, name: str) -> Any:
        """Return a handle for the named database (created lazily)."""
        pass

    @abstractmethod
    async def collection(self, database: Any, name: str) -> Any:
        """Get a collection handle, creating it on first use."""
        pass

    @abstractmethod
    async def create_collection(
        self,
        database: Any,
        name: str,
        spec: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Explicitly create a collection. Raises CollectionExistsError."""
        pass

    @abstractmethod
    async def drop_database(self, database: Any) -> None:
        """Drop the whole database."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection."""
        pass


# ============================================================================
# MongoDB Backend
# ============================================================================

class MongoStoreBackend(StoreBackend):
    """
    Backend using MongoDB via pymongo's AsyncMongoClient.

    Collection handles returned are pymongo AsyncCollection objects.
    """

    def __init__(self, **client_options: Any):
        self._client_options = client_options
        self._client: Optional[AsyncMongoClient] = None
        self._uri: Optional[str] = None

    @property
    def client(self) -> Optional[AsyncMongoClient]:
        return self._client

    async def connect(self, uri: str) -> None:
        client = AsyncMongoClient(uri, **self._client_options)
        try:
            # The client connects lazily; ping forces a server round trip
            await client.admin.command("ping")
        except MongoConnectionFailure as e:
            await client.close()
            raise ConnectionFailureError(uri, str(e)) from e
        except Exception:
            # Auth or configuration errors: still release the client's monitors
            await client.close()
            raise
        self._client = client
        self._uri = uri
        logger.info("Connected to MongoDB at %s", uri)

    def database(self, name: str) -> Any:
        return self._client.get_database(name)

    async def collection(self, database: Any, name: str) -> Any:
        return database.get_collection(name)

    async def create_collection(
        self,
        database: Any,
        name: str,
        spec: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        options = dict(spec or {})
        try:
            # Let the server arbitrate existence so racing creators resolve atomically
            return await database.create_collection(name, check_exists=False, **options)
        except CollectionInvalid as e:
            raise CollectionExistsError(name) from e
        except OperationFailure as e:
            if is_namespace_exists(e):
                raise CollectionExistsError(name) from e
            raise

    async def drop_database(self, database: Any) -> None:
        await self._client.drop_database(database.name)

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.close()
            logger.info("Closed MongoDB connection to %s", self._uri)


def is_namespace_exists(error: OperationFailure) -> bool:
    """Check whether a server error is the "collection already exists" signal."""
    if error.code == NAMESPACE_EXISTS_CODE:
        return True
    details = error.details or {}
    return details.get("codeName") == NAMESPACE_EXISTS_CODE_NAME


# ============================================================================
# In-Memory Backend
# ============================================================================

@dataclass(eq=False)
class InMemoryCollection:
    """
    A process-local collection.

    Supports a small document API (insert, find by equality, count, drop)
    sufficient for tests and embedded use.
    """
    name: str
    database: "InMemoryDatabase" = field(repr=False)
    spec: Dict[str, Any] = field(default_factory=dict)

    @property
    def documents(self) -> List[Dict[str, Any]]:
        return self.database.documents.get(self.name, [])

    @property
    def full_name(self) -> str:
        return f"{self.database.name}.{self.name}"

    def insert_one(self, document: Dict[str, Any]) -> Any:
        doc = copy.deepcopy(document)
        doc.setdefault("_id", uuid.uuid4().hex)
        # A handle used after a drop recreates its collection, as MongoDB does
        self.database.collections.setdefault(self.name, self)
        self.database.documents.setdefault(self.name, []).append(doc)
        return doc["_id"]

    def find(self, filter: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        for doc in self.documents:
            if _matches(doc, filter):
                yield copy.deepcopy(doc)

    def find_one(self, filter: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        return next(self.find(filter), None)

    def count_documents(self, filter: Optional[Dict[str, Any]] = None) -> int:
        return sum(1 for doc in self.documents if _matches(doc, filter))

    def drop(self) -> None:
        self.database.documents.pop(self.name, None)
        self.database.collections.pop(self.name, None)


@dataclass(eq=False)
class InMemoryDatabase:
    """
    A named set of in-memory collections.

    Documents are keyed by collection name, so every handle for a name
    shares them.
    """
    name: str
    collections: Dict[str, InMemoryCollection] = field(default_factory=dict)
    documents: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict, repr=False)

    def list_collection_names(self) -> List[str]:
        return sorted(self.collections)


class InMemoryStoreBackend(StoreBackend):
    """
    In-memory backend for testing.

    Accepts URIs of the form ``memory://<label>``. Databases live as long as
    the backend instance, so a backend reused after close() still sees the
    data it held. Like MongoDB, a database with no collections is not listed.
    """

    def __init__(self):
        self._databases: Dict[str, InMemoryDatabase] = {}
        self._connected = False
        self._uri: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def databases(self) -> Dict[str, InMemoryDatabase]:
        return {name: db for name, db in self._databases.items() if db.collections}

    async def connect(self, uri: str) -> None:
        if not isinstance(uri, str) or not uri.startswith(MEMORY_URI_SCHEME):
            raise ConnectionFailureError(
                str(uri), f"in-memory backend requires a '{MEMORY_URI_SCHEME}' URI"
            )
        self._connected = True
        self._uri = uri
        logger.info("Opened in-memory store %s", uri)

    def database(self, name: str) -> InMemoryDatabase:
        if name not in self._databases:
            self._databases[name] = InMemoryDatabase(name)
        return self._databases[name]

    async def collection(self, database: InMemoryDatabase, name: str) -> InMemoryCollection:
        if name not in database.collections:
            database.collections[name] = InMemoryCollection(name, database)
        return database.collections[name]

    async def create_collection(
        self,
        database: InMemoryDatabase,
        name: str,
        spec: Optional[Mapping[str, Any]] = None,
    ) -> InMemoryCollection:
        # No await between check and insert: concurrent creators cannot both win
        if name in database.collections:
            raise CollectionExistsError(name)
        collection = InMemoryCollection(name, database, spec=dict(spec or {}))
        database.collections[name] = collection
        return collection

    async def drop_database(self, database: InMemoryDatabase) -> None:
        database.collections.clear()
        database.documents.clear()

    async def close(self) -> None:
        self._connected = False
        logger.info("Closed in-memory store %s", self._uri)


def _matches(doc: Dict[str, Any], filter: Optional[Dict[str, Any]]) -> bool:
    if not filter:
        return True
    return all(doc.get(k) == v for k, v in filter.items())


# ============================================================================
# Factory
# ============================================================================

def backend_for_uri(uri: str, **client_options: Any) -> StoreBackend:
    """Pick a backend from the connection string scheme."""
    if isinstance(uri, str) and uri.startswith(MEMORY_URI_SCHEME):
        return InMemoryStoreBackend()
    return MongoStoreBackend(**client_options)


__all__ = [
    "StoreBackend",
    "MongoStoreBackend",
    "InMemoryStoreBackend",
    "InMemoryDatabase",
    "InMemoryCollection",
    "backend_for_uri",
    "is_namespace_exists",
    "NAMESPACE_EXISTS_CODE",
    "MEMORY_URI_SCHEME",
]
