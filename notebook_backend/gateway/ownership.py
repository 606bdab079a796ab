"""
Ownership resolution.

A resource reference knows how to find the identity that owns it:
- NotebookRef: the notebook's own user_id
- SourceRef:   the user_id of the notebook the source belongs to

verify_ownership() turns a lookup miss into NotFound and an owner mismatch
into Forbidden; nothing is dispatched or written until it returns.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from notebook_backend.core.logging_config import get_logger
from notebook_backend.gateway.auth import CallerIdentity
from notebook_backend.gateway.errors import Forbidden, NotFound, StoreError
from notebook_backend.gateway.store import ResourceStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class OwnershipRef(ABC):
    """Reference to a resource whose owner can be resolved."""
    resource_id: str

    not_found_message = "Resource not found"
    forbidden_message = "Forbidden - you do not own this resource"

    @abstractmethod
    async def resolve_owner(self, store: ResourceStore) -> Optional[str]:
        """Return the owning user id, or None if the resource does not exist."""


@dataclass(frozen=True)
class NotebookRef(OwnershipRef):
    not_found_message = "Notebook not found"
    forbidden_message = "Forbidden - you do not own this notebook"

    async def resolve_owner(self, store: ResourceStore) -> Optional[str]:
        notebook = await store.get_notebook(self.resource_id)
        if not notebook:
            return None
        return notebook.get("user_id")


@dataclass(frozen=True)
class SourceRef(OwnershipRef):
    not_found_message = "Source not found"

    async def resolve_owner(self, store: ResourceStore) -> Optional[str]:
        source = await store.get_source_with_owner(self.resource_id)
        if not source:
            return None
        notebook = source.get("notebooks")
        # embedded to-one relations come back as an object, older servers use a list
        if isinstance(notebook, list):
            notebook = notebook[0] if notebook else None
        return notebook.get("user_id") if notebook else None


async def verify_ownership(
    store: ResourceStore, ref: OwnershipRef, identity: CallerIdentity
) -> None:
    """Raise NotFound or Forbidden unless ``identity`` owns ``ref``."""
    try:
        owner_id = await ref.resolve_owner(store)
    except StoreError as e:
        logger.error(f"{type(ref).__name__} lookup error for {ref.resource_id}: {e}")
        raise NotFound(ref.not_found_message) from e

    if owner_id is None:
        logger.error(f"{type(ref).__name__} lookup error: {ref.resource_id} not found")
        raise NotFound(ref.not_found_message)

    if str(owner_id) != identity.user_id:
        logger.error(
            f"User does not own {ref.resource_id}",
            extra={"data": {"userId": identity.user_id, "ownerId": owner_id}},
        )
        raise Forbidden(ref.forbidden_message)
