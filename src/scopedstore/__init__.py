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
ScopedStore - Namespace-Scoped Access to a Shared Document Store

Lets independent components of one application share a single database:

1. **Namespaces** - every handle is confined to a dotted namespace path
2. **Scopes** - only delegate handles can hand out child handles
3. **One connection** - a manager owns the single live connection

Example:
    root = await scopedstore.initialize("mongodb://localhost:27017")
    store = root.get_data_store("reports")
    runs = await store.get_collection("runs")   # collection "global.reports.runs"
    await root.discard()
"""

import logging

from .errors import (
    ScopedStoreError,
    AlreadyInitializedError,
    ConnectionFailureError,
    StoreUnavailableError,
    InvalidNamespaceSegmentError,
    InvalidScopeError,
    CollectionExistsError,
)

from .namespace import (
    ROOT_SEGMENT,
    VALID_NAMESPACE_FORMAT,
    SCOPE_DELEGATE,
    SCOPE_COLLECTIONS_ONLY,
    Scope,
    NamespacePath,
    CollectionsOnlyNode,
    DelegateNode,
    RootNode,
    NamespaceNode,
)

from .backends import (
    StoreBackend,
    MongoStoreBackend,
    InMemoryStoreBackend,
    InMemoryDatabase,
    InMemoryCollection,
)

from .connection import (
    DEFAULT_DB_NAME,
    ConnectionManager,
    get_default_manager,
    initialize,
)

from .config import (
    StoreConfig,
    BackendKind,
    create_backend,
    connect,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Errors
    "ScopedStoreError",
    "AlreadyInitializedError",
    "ConnectionFailureError",
    "StoreUnavailableError",
    "InvalidNamespaceSegmentError",
    "InvalidScopeError",
    "CollectionExistsError",
    # Namespaces
    "ROOT_SEGMENT",
    "VALID_NAMESPACE_FORMAT",
    "SCOPE_DELEGATE",
    "SCOPE_COLLECTIONS_ONLY",
    "Scope",
    "NamespacePath",
    "CollectionsOnlyNode",
    "DelegateNode",
    "RootNode",
    "NamespaceNode",
    # Backends
    "StoreBackend",
    "MongoStoreBackend",
    "InMemoryStoreBackend",
    "InMemoryDatabase",
    "InMemoryCollection",
    # Connection
    "DEFAULT_DB_NAME",
    "ConnectionManager",
    "get_default_manager",
    "initialize",
    # Config
    "StoreConfig",
    "BackendKind",
    "create_backend",
    "connect",
]
