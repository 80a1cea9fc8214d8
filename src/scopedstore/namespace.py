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
ScopedStore Namespace Handles

A namespace node is the handle applications hold. It confines every
collection it touches to its own dotted namespace path, and its scope decides
whether it can hand out child nodes.

Example:
    root = await scopedstore.initialize("mongodb://localhost:27017")

    # Delegate a private namespace to a component
    billing = root.get_data_store("billing")           # collectionsOnly
    invoices = await billing.get_collection("invoices")  # "global.billing.invoices"

    # A component that may delegate further
    plugins = root.get_data_store("plugins", SCOPE_DELEGATE)
    sandbox = plugins.get_data_store("sandbox")        # "global.plugins.sandbox"

Scope is structural: only DelegateNode defines get_data_store(), so a
collectionsOnly node has no way to mint children at all.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    ClassVar,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from .errors import InvalidNamespaceSegmentError, InvalidScopeError

if TYPE_CHECKING:
    from .connection import ConnectionManager

logger = logging.getLogger(__name__)


ROOT_SEGMENT = "global"
SEPARATOR = "."

VALID_NAMESPACE_FORMAT = re.compile(r"^[a-z0-9\-_]+$", re.IGNORECASE)


def validate_segment(segment: Any) -> str:
    """Return segment unchanged if it is a valid child namespace name."""
    if not isinstance(segment, str) or VALID_NAMESPACE_FORMAT.fullmatch(segment) is None:
        raise InvalidNamespaceSegmentError(segment)
    return segment


# ============================================================================
# Scope
# ============================================================================

class Scope(str, Enum):
    """Capability scope of a namespace node."""
    DELEGATE = "delegate"                 # may mint child nodes
    COLLECTIONS_ONLY = "collectionsOnly"  # collections only

    @classmethod
    def parse(cls, value: Union["Scope", str, None]) -> "Scope":
        """Coerce a scope identifier, defaulting to COLLECTIONS_ONLY."""
        if value is None:
            return cls.COLLECTIONS_ONLY
        try:
            return cls(value)
        except ValueError:
            raise InvalidScopeError(value, [s.value for s in cls]) from None


SCOPE_DELEGATE = Scope.DELEGATE.value
SCOPE_COLLECTIONS_ONLY = Scope.COLLECTIONS_ONLY.value


# ============================================================================
# Namespace Path
# ============================================================================

@dataclass(frozen=True)
class NamespacePath:
    """
    Ordered, validated namespace segments.

    The dotted string form is only produced at the backing-store boundary,
    so segments are never re-split.
    """
    segments: Tuple[str, ...]

    def __post_init__(self):
        if not self.segments:
            raise ValueError("Namespace path cannot be empty")

    @classmethod
    def root(cls) -> "NamespacePath":
        return cls((ROOT_SEGMENT,))

    def child(self, segment: str) -> "NamespacePath":
        """Create a path one segment deeper."""
        return NamespacePath(self.segments + (validate_segment(segment),))

    def dotted(self) -> str:
        return SEPARATOR.join(self.segments)

    def qualify(self, local_name: str) -> str:
        """Fully-qualified collection name for a collection under this path."""
        return f"{self.dotted()}{SEPARATOR}{local_name}"

    def is_child_of(self, parent: "NamespacePath") -> bool:
        n = len(parent.segments)
        return len(self.segments) > n and self.segments[:n] == parent.segments

    @property
    def depth(self) -> int:
        return len(self.segments)

    def __str__(self) -> str:
        return self.dotted()


# ============================================================================
# Namespace Nodes
# ============================================================================

@dataclass(frozen=True, eq=False)
class _NodeBase:
    """
    Collection access shared by every node, regardless of scope.

    Nodes own nothing; all I/O goes through the connection manager that
    minted them.
    """
    path: NamespacePath
    _manager: "ConnectionManager" = field(repr=False)

    scope: ClassVar[Optional[Scope]] = None

    @property
    def namespace(self) -> NamespacePath:
        return self.path

    @property
    def can_delegate(self) -> bool:
        return self.scope is Scope.DELEGATE

    def get_namespace(self) -> str:
        """Dotted namespace path of this node."""
        return self.path.dotted()

    async def get_collection(self, name: str) -> Any:
        """
        Return the collection with the given name under this namespace.

        The collection is created by the backing store if it does not exist.

        Raises:
            StoreUnavailableError: If the store was never initialized or has
                been discarded
        """
        return await self._manager.get_collection(self.path.qualify(name), namespace=self.get_namespace())

    async def collection(self, name: str) -> Any:
        """Alias for get_collection."""
        return await self.get_collection(name)

    async def create_collection(
        self,
        name: str,
        spec: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """
        Explicitly create a collection under this namespace.

        Args:
            name: Local collection name
            spec: Creation options forwarded to the backing store

        Returns:
            The newly created collection

        Raises:
            CollectionExistsError: If the collection already exists
            StoreUnavailableError: If the store is not initialized
        """
        return await self._manager.create_collection(
            self.path.qualify(name), spec or {}, namespace=self.get_namespace()
        )


@dataclass(frozen=True, eq=False)
class CollectionsOnlyNode(_NodeBase):
    """A node that can only get and create its own collections."""

    scope = Scope.COLLECTIONS_ONLY


@dataclass(frozen=True, eq=False)
class DelegateNode(_NodeBase):
    """A node that can additionally mint child nodes."""

    scope = Scope.DELEGATE

    def get_data_store(
        self,
        namespace: str,
        scope: Union[Scope, str, None] = None,
    ) -> "NamespaceNode":
        """
        Create a node for a child namespace.

        Args:
            namespace: Child segment, matching VALID_NAMESPACE_FORMAT
            scope: SCOPE_DELEGATE or SCOPE_COLLECTIONS_ONLY (default)

        Raises:
            InvalidNamespaceSegmentError: If the segment is malformed
            InvalidScopeError: If the scope is not recognized

        No check is made for an existing sibling; minting the same segment
        twice yields two nodes over the same namespace.
        """
        path = self.path.child(namespace)
        child_scope = Scope.parse(scope)
        logger.debug("Minted %s node %s", child_scope.value, path)
        return _make_node(path, child_scope, self._manager)


@dataclass(frozen=True, eq=False)
class RootNode(DelegateNode):
    """The top-level node returned by initialize()."""

    async def discard(self, drop_db: bool = False) -> None:
        """
        Close the connection and reset the store so it can be re-initialized.

        Args:
            drop_db: Drop the whole database before closing
        """
        await self._manager.discard(drop_db=drop_db)


NamespaceNode = Union[DelegateNode, CollectionsOnlyNode]


def _make_node(
    path: NamespacePath,
    scope: Scope,
    manager: "ConnectionManager",
) -> NamespaceNode:
    """Build the node class that carries exactly the capabilities of scope."""
    if scope is Scope.DELEGATE:
        return DelegateNode(path, manager)
    if scope is Scope.COLLECTIONS_ONLY:
        return CollectionsOnlyNode(path, manager)
    raise InvalidScopeError(scope, [s.value for s in Scope])


__all__ = [
    "ROOT_SEGMENT",
    "SEPARATOR",
    "VALID_NAMESPACE_FORMAT",
    "SCOPE_DELEGATE",
    "SCOPE_COLLECTIONS_ONLY",
    "Scope",
    "NamespacePath",
    "CollectionsOnlyNode",
    "DelegateNode",
    "RootNode",
    "NamespaceNode",
    "validate_segment",
]
