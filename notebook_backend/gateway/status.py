"""
Best-effort status recording.

Status writes never decide the caller's response. A failed write is logged
and returned as a StatusWriteResult that gateways discard, so a status
update cannot turn into a hard dependency of a request.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional

from notebook_backend.core.logging_config import get_logger
from notebook_backend.gateway.store import NOTEBOOKS, SOURCES, ResourceStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class StatusTarget:
    """A status column on one row."""
    table: str
    resource_id: str
    field: str

    @classmethod
    def notebook(cls, notebook_id: str) -> "StatusTarget":
        return cls(NOTEBOOKS, notebook_id, "generation_status")

    @classmethod
    def source(cls, source_id: str) -> "StatusTarget":
        return cls(SOURCES, source_id, "processing_status")


@dataclass(frozen=True)
class StatusWriteResult:
    target: StatusTarget
    value: str
    ok: bool
    error: Optional[str] = None


class StatusRecorder:
    """Writes status values through the resource store, swallowing failures."""

    def __init__(self, store: ResourceStore):
        self.store = store

    async def record(self, target: StatusTarget, value: str) -> StatusWriteResult:
        try:
            await self.store.update(target.table, target.resource_id, {target.field: value})
        except Exception as e:
            logger.warning(
                f"Status write {target.table}.{target.field}={value} "
                f"for {target.resource_id} failed: {e}"
            )
            return StatusWriteResult(target, value, ok=False, error=str(e))

        logger.debug(f"{target.table}/{target.resource_id} {target.field} -> {value}")
        return StatusWriteResult(target, value, ok=True)

    async def record_all(
        self, targets: Iterable[StatusTarget], value: str
    ) -> List[StatusWriteResult]:
        return [await self.record(target, value) for target in targets]
