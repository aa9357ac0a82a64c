"""Approval request store interface.

A store persists approval request documents and maintains aggregate
counters. Every write is atomic: the document, its indexed fields and the
counter adjustments land together or not at all.
"""

from abc import ABC, abstractmethod
from collections import Counter
from typing import Literal

from approvalflow.services.approval.schemas import (
    ApprovalRequest,
    ApprovalStatus,
    ApprovalType,
)

SortOrder = Literal["asc", "desc"]

# Fields stores must support as equality criteria in find().
FILTERABLE_FIELDS = frozenset(
    {
        "type",
        "status",
        "priority",
        "requested_by",
        "project_id",
        "entity_id",
        "entity_type",
    }
)

TOTAL_COUNTER = "total"


def status_counter(status: ApprovalStatus | str) -> str:
    value = status.value if isinstance(status, ApprovalStatus) else status
    return f"status:{value}"


def type_counter(request_type: ApprovalType | str) -> str:
    value = request_type.value if isinstance(request_type, ApprovalType) else request_type
    return f"type:{value}"


def all_counter_keys() -> list[str]:
    """Get every counter key a store maintains."""
    return (
        [TOTAL_COUNTER]
        + [status_counter(s) for s in ApprovalStatus]
        + [type_counter(t) for t in ApprovalType]
    )


def counter_deltas(
    previous: ApprovalRequest | None, updated: ApprovalRequest
) -> dict[str, int]:
    """Compute counter adjustments for a write.

    @param previous - Stored version being replaced, None for an insert
    @param updated - Version being written
    @returns Mapping of counter key to non-zero delta
    """
    deltas: Counter[str] = Counter()
    if previous is None:
        deltas[TOTAL_COUNTER] += 1
        deltas[type_counter(updated.type)] += 1
        deltas[status_counter(updated.status)] += 1
    elif previous.status != updated.status:
        deltas[status_counter(previous.status)] -= 1
        deltas[status_counter(updated.status)] += 1
    return {key: delta for key, delta in deltas.items() if delta}


def count_requests(requests: list[ApprovalRequest]) -> dict[str, int]:
    """Compute counters from scratch for a set of requests."""
    counts = dict.fromkeys(all_counter_keys(), 0)
    for request in requests:
        for key, delta in counter_deltas(None, request).items():
            counts[key] = counts.get(key, 0) + delta
    return counts


class ApprovalStore(ABC):
    """Persistence interface consumed by the approval workflow engine."""

    async def initialize(self) -> None:
        """Prepare backing storage. No-op unless a store needs a schema."""

    @abstractmethod
    async def get(self, request_id: str) -> ApprovalRequest | None:
        """Get request by ID.

        @param request_id - Request ID
        @returns Request or None if not found
        """

    @abstractmethod
    async def find(
        self,
        criteria: dict[str, str],
        *,
        order: SortOrder = "desc",
        limit: int | None = None,
    ) -> list[ApprovalRequest]:
        """Get requests matching all equality criteria, ordered by created_at.

        @param criteria - Field/value pairs, keys from FILTERABLE_FIELDS
        @param order - Sort direction on created_at
        @param limit - Maximum results (None for all)
        @returns Matching requests
        """

    @abstractmethod
    async def insert(self, request: ApprovalRequest) -> None:
        """Insert a new request and count it.

        @param request - Request to insert
        """

    @abstractmethod
    async def replace(
        self, previous: ApprovalRequest, updated: ApprovalRequest
    ) -> bool:
        """Conditionally replace a stored request.

        The write succeeds only if the stored revision still equals
        ``previous.revision``.

        @param previous - Version the update was computed from
        @param updated - New version (revision already incremented)
        @returns True if written, False if the stored revision moved on
        """

    @abstractmethod
    async def counters(self) -> dict[str, int]:
        """Get current counter values keyed by counter name."""

    @abstractmethod
    async def recount(self) -> dict[str, int]:
        """Rebuild counters from a full scan and return them."""

    @staticmethod
    def _check_criteria(criteria: dict[str, str]) -> None:
        unknown = set(criteria) - FILTERABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported filter fields: {sorted(unknown)}")
