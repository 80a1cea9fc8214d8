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
Store configuration, from code or from the environment.

Environment variables:
    SCOPEDSTORE_URI       connection string
    SCOPEDSTORE_DB_NAME   database name (default: DataStore)
    SCOPEDSTORE_BACKEND   "mongo" or "memory" (default: chosen from the URI)
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .backends import InMemoryStoreBackend, MongoStoreBackend, StoreBackend, backend_for_uri
from .connection import DEFAULT_DB_NAME, ConnectionManager
from .namespace import RootNode

ENV_URI = "SCOPEDSTORE_URI"
ENV_DB_NAME = "SCOPEDSTORE_DB_NAME"
ENV_BACKEND = "SCOPEDSTORE_BACKEND"

DEFAULT_URI = "mongodb://localhost:27017"


class BackendKind(str, Enum):
    """Which backing store implementation to use."""
    MONGO = "mongo"
    MEMORY = "memory"


@dataclass
class StoreConfig:
    """Connection settings for a ConnectionManager."""

    uri: str = DEFAULT_URI
    db_name: str = DEFAULT_DB_NAME
    backend: Optional[BackendKind] = None  # None = infer from uri

    def __post_init__(self):
        if isinstance(self.backend, str):
            object.__setattr__(self, "backend", BackendKind(self.backend))
        if not self.db_name:
            self.db_name = DEFAULT_DB_NAME

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uri": self.uri,
            "db_name": self.db_name,
            "backend": self.backend.value if self.backend else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StoreConfig":
        return cls(
            uri=data.get("uri", DEFAULT_URI),
            db_name=data.get("db_name") or DEFAULT_DB_NAME,
            backend=data.get("backend"),
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StoreConfig":
        env = os.environ if environ is None else environ
        return cls(
            uri=env.get(ENV_URI, DEFAULT_URI),
            db_name=env.get(ENV_DB_NAME) or DEFAULT_DB_NAME,
            backend=env.get(ENV_BACKEND) or None,
        )


def create_backend(config: StoreConfig) -> StoreBackend:
    """Instantiate the backend named by config."""
    if config.backend is BackendKind.MONGO:
        return MongoStoreBackend()
    if config.backend is BackendKind.MEMORY:
        return InMemoryStoreBackend()
    return backend_for_uri(config.uri)


async def connect(
    config: StoreConfig,
    manager: Optional[ConnectionManager] = None,
) -> RootNode:
    """Initialize a manager (a new one by default) from config."""
    manager = manager or ConnectionManager()
    return await manager.initialize(
        config.uri, db_name=config.db_name, backend=create_backend(config)
    )


__all__ = [
    "StoreConfig",
    "BackendKind",
    "create_backend",
    "connect",
    "ENV_URI",
    "ENV_DB_NAME",
    "ENV_BACKEND",
    "DEFAULT_URI",
]
