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
Connection lifecycle.

A ConnectionManager holds at most one live backend connection. It moves
between two states only through initialize() and discard():

    Uninitialized --initialize()--> Initialized --discard()--> Uninitialized

Managers are independent of each other. The module-level initialize() uses
a process-wide default manager.
"""

import logging
from typing import Any, Callable, Mapping, Optional

from .backends import StoreBackend, backend_for_uri
from .errors import AlreadyInitializedError, StoreUnavailableError
from .namespace import NamespacePath, RootNode

logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = "DataStore"


class ConnectionManager:
    """
    Owner of one backing-store connection and its database handle.

    No locking is done here: callers serialize initialize() and discard().
    """

    def __init__(
        self,
        backend_factory: Optional[Callable[[str], StoreBackend]] = None,
    ):
        self._backend_factory = backend_factory or backend_for_uri
        self._backend: Optional[StoreBackend] = None
        self._database: Any = None
        self._database_name: Optional[str] = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def database_name(self) -> Optional[str]:
        return self._database_name

    @property
    def backend(self) -> Optional[StoreBackend]:
        return self._backend

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(
        self,
        connection_string: str,
        db_name: Optional[str] = None,
        backend: Optional[StoreBackend] = None,
    ) -> RootNode:
        """
        Connect and return the root node.

        Args:
            connection_string: Backing store URI
            db_name: Database to use; DEFAULT_DB_NAME unless a non-empty string
            backend: Backend to connect with instead of the factory's choice

        Raises:
            AlreadyInitializedError: If this manager is already connected
            ConnectionFailureError: If the backing store cannot be reached
        """
        if self._connected:
            raise AlreadyInitializedError(self._database_name)

        name = DEFAULT_DB_NAME
        if isinstance(db_name, str) and len(db_name) >= 1:
            name = db_name

        if backend is None:
            backend = self._backend_factory(connection_string)
        await backend.connect(connection_string)

        self._backend = backend
        self._database = backend.database(name)
        self._database_name = name
        self._connected = True
        logger.info("Data store initialized with database '%s'", name)

        return RootNode(NamespacePath.root(), self)

    async def discard(self, drop_db: bool = False) -> None:
        """
        Tear down the connection. Never raises.

        State is cleared even if dropping or closing fails, so the manager
        can always be initialized again.
        """
        backend, database = self._backend, self._database
        self._backend = None
        self._database = None
        self._database_name = None
        self._connected = False

        if backend is None:
            logger.debug("discard() called with no live connection")
            return

        if drop_db:
            try:
                await backend.drop_database(database)
            except Exception:
                logger.warning("Failed to drop database during discard", exc_info=True)
        try:
            await backend.close()
        except Exception:
            logger.warning("Failed to close connection during discard", exc_info=True)

    # ========================================================================
    # Collection Access
    # ========================================================================

    def database(self, namespace: Optional[str] = None) -> Any:
        """Return the live database handle."""
        if not self._connected:
            raise StoreUnavailableError(namespace)
        return self._database

    async def get_collection(self, name: str, namespace: Optional[str] = None) -> Any:
        database = self.database(namespace)
        return await self._backend.collection(database, name)

    async def create_collection(
        self,
        name: str,
        spec: Optional[Mapping[str, Any]] = None,
        namespace: Optional[str] = None,
    ) -> Any:
        database = self.database(namespace)
        collection = await self._backend.create_collection(database, name, spec or {})
        logger.debug("Created collection '%s'", name)
        return collection


# ============================================================================
# Default Manager
# ============================================================================

_default_manager = ConnectionManager()


def get_default_manager() -> ConnectionManager:
    """Return the process-wide manager used by initialize()."""
    return _default_manager


async def initialize(
    connection_string: str,
    db_name: Optional[str] = None,
    backend: Optional[StoreBackend] = None,
) -> RootNode:
    """
    Initialize the process-wide data store and return its root node.

    The root node must be kept; it is the only way to delegate access and to
    discard the connection.

    Raises:
        AlreadyInitializedError: If called again before discard()
        ConnectionFailureError: If the backing store cannot be reached
    """
    return await _default_manager.initialize(
        connection_string, db_name=db_name, backend=backend
    )


__all__ = [
    "DEFAULT_DB_NAME",
    "ConnectionManager",
    "get_default_manager",
    "initialize",
]
