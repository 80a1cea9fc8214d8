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
ScopedStore error types.

Every failure surfaced by this package is a subclass of ScopedStoreError,
so callers can branch on the exact kind or catch the whole family.
"""

from typing import Any, Iterable, Optional


class ScopedStoreError(Exception):
    """Base class for all ScopedStore errors."""
    pass


# ============================================================================
# Lifecycle Errors
# ============================================================================

class AlreadyInitializedError(ScopedStoreError, RuntimeError):
    """Raised when initialize() is called while a connection is live."""

    def __init__(self, database_name: Optional[str] = None):
        self.database_name = database_name
        msg = "Initialization call rejected: the data store has already been initialized"
        if database_name:
            msg += f" (database '{database_name}')"
        super().__init__(msg)


class ConnectionFailureError(ScopedStoreError, ConnectionError):
    """Raised when the backing store cannot be reached."""

    def __init__(self, uri: str, reason: Optional[str] = None):
        self.uri = uri
        self.reason = reason
        msg = f"Could not connect to backing store at '{uri}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class StoreUnavailableError(ScopedStoreError):
    """Raised when a collection is requested with no live connection."""

    def __init__(self, namespace: Optional[str] = None):
        self.namespace = namespace
        msg = "Data store is not initialized or has been discarded"
        if namespace:
            msg += f" (requested from namespace '{namespace}')"
        super().__init__(msg)


# ============================================================================
# Namespace Errors
# ============================================================================

class InvalidNamespaceSegmentError(ScopedStoreError, ValueError):
    """Raised when a child namespace segment fails validation."""

    def __init__(self, segment: Any):
        self.segment = segment
        super().__init__(
            "Invalid namespace name provided (should only contain characters "
            f"a-z, 0-9, - and _): {segment!r}"
        )


class InvalidScopeError(ScopedStoreError, ValueError):
    """Raised when a scope outside the recognized set is requested."""

    def __init__(self, scope: Any, valid: Iterable[str] = ()):
        self.scope = scope
        self.valid = tuple(valid)
        msg = f"Invalid scope {scope!r}"
        if self.valid:
            msg += f". Valid scopes are: {', '.join(self.valid)}"
        super().__init__(msg)


# ============================================================================
# Collection Errors
# ============================================================================

class CollectionExistsError(ScopedStoreError):
    """Raised when explicitly creating a collection that already exists."""

    def __init__(self, name: str, namespace: Optional[str] = None):
        self.name = name
        self.namespace = namespace
        msg = f"Collection '{name}' already exists"
        if namespace:
            msg += f" in namespace '{namespace}'"
        super().__init__(msg)


__all__ = [
    "ScopedStoreError",
    "AlreadyInitializedError",
    "ConnectionFailureError",
    "StoreUnavailableError",
    "InvalidNamespaceSegmentError",
    "InvalidScopeError",
    "CollectionExistsError",
]
