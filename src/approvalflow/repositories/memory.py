"""In-memory approval request store."""

import asyncio

from approvalflow.repositories.base import (
    ApprovalStore,
    SortOrder,
    count_requests,
    counter_deltas,
)
from approvalflow.services.approval.schemas import ApprovalRequest


class InMemoryApprovalStore(ApprovalStore):
    """Store keeping JSON documents in a dict.

    Documents are stored serialized so callers never share mutable state
    with the store. A single asyncio lock makes each write atomic.
    """

    def __init__(self) -> None:
        self._documents: dict[str, dict] = {}
        self._counters: dict[str, int] = count_requests([])
        self._lock = asyncio.Lock()

    async def get(self, request_id: str) -> ApprovalRequest | None:
        document = self._documents.get(request_id)
        if document is None:
            return None
        return ApprovalRequest.from_document(document)

    async def find(
        self,
        criteria: dict[str, str],
        *,
        order: SortOrder = "desc",
        limit: int | None = None,
    ) -> list[ApprovalRequest]:
        self._check_criteria(criteria)
        requests = [
            ApprovalRequest.from_document(document)
            for document in self._documents.values()
        ]
        matches = [
            request
            for request in requests
            if all(_field_value(request, key) == value for key, value in criteria.items())
        ]
        matches.sort(key=lambda r: r.created_at, reverse=(order == "desc"))
        if limit is not None:
            matches = matches[:limit]
        return matches

    async def insert(self, request: ApprovalRequest) -> None:
        async with self._lock:
            if request.id in self._documents:
                raise ValueError(f"Approval request {request.id} already exists")
            self._documents[request.id] = request.to_document()
            self._apply(counter_deltas(None, request))

    async def replace(
        self, previous: ApprovalRequest, updated: ApprovalRequest
    ) -> bool:
        async with self._lock:
            stored = self._documents.get(previous.id)
            if stored is None or stored["revision"] != previous.revision:
                return False
            self._documents[updated.id] = updated.to_document()
            self._apply(counter_deltas(previous, updated))
            return True

    async def counters(self) -> dict[str, int]:
        return dict(self._counters)

    async def recount(self) -> dict[str, int]:
        async with self._lock:
            requests = [
                ApprovalRequest.from_document(document)
                for document in self._documents.values()
            ]
            self._counters = count_requests(requests)
            return dict(self._counters)

    def _apply(self, deltas: dict[str, int]) -> None:
        for key, delta in deltas.items():
            self._counters[key] = self._counters.get(key, 0) + delta


def _field_value(request: ApprovalRequest, field: str) -> str | None:
    value = getattr(request, field)
    return getattr(value, "value", value)
