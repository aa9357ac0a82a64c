"""SQLAlchemy-backed approval request store."""

import logging
from typing import Any

from sqlalchemy import asc, desc, select, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from approvalflow.infrastructure.database.session import (
    create_session_factory,
    init_database,
)
from approvalflow.models.approval import ApprovalCounter, ApprovalRequestRecord
from approvalflow.repositories.base import (
    ApprovalStore,
    SortOrder,
    all_counter_keys,
    count_requests,
    counter_deltas,
)
from approvalflow.services.approval.schemas import ApprovalRequest

logger = logging.getLogger(__name__)


class ApprovalRepository(ApprovalStore):
    """Store for approval requests in a relational database.

    Each write runs in its own transaction. Conditional replacement is an
    ``UPDATE ... WHERE revision = :expected`` whose row count tells whether
    the write won; counter updates share that transaction.
    """

    model = ApprovalRequestRecord

    def __init__(self, engine: AsyncEngine) -> None:
        """Initialize repository with an async engine.

        @param engine - SQLAlchemy async engine
        """
        self._engine = engine
        self._session_factory = create_session_factory(engine)

    async def initialize(self) -> None:
        """Create tables and seed every counter row with zero.

        Seeded rows mean counter updates never race on inserting a missing row.
        """
        await init_database(self._engine)
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(select(ApprovalCounter.key))
                existing = set(result.scalars().all())
                missing = [key for key in all_counter_keys() if key not in existing]
                session.add_all(ApprovalCounter(key=key, count=0) for key in missing)
        logger.info("Approval store ready (%d counters seeded)", len(missing))

    async def get(self, request_id: str) -> ApprovalRequest | None:
        async with self._session_factory() as session:
            record = await session.get(self.model, request_id)
            if record is None:
                return None
            return ApprovalRequest.from_document(record.document)

    async def find(
        self,
        criteria: dict[str, str],
        *,
        order: SortOrder = "desc",
        limit: int | None = None,
    ) -> list[ApprovalRequest]:
        self._check_criteria(criteria)
        stmt = select(self.model.document)
        for key, value in criteria.items():
            stmt = stmt.where(getattr(self.model, key) == value)
        direction = desc if order == "desc" else asc
        stmt = stmt.order_by(direction(self.model.created_at))
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [ApprovalRequest.from_document(doc) for doc in result.scalars().all()]

    async def insert(self, request: ApprovalRequest) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(self.model(**self._columns(request)))
                await self._apply_counters(session, counter_deltas(None, request))

    async def replace(
        self, previous: ApprovalRequest, updated: ApprovalRequest
    ) -> bool:
        stmt = (
            update(self.model)
            .where(
                self.model.id == previous.id,
                self.model.revision == previous.revision,
            )
            .values(**self._columns(updated))
        )
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(stmt)
                if result.rowcount != 1:
                    logger.debug(
                        "Conditional update missed for %s at revision %d",
                        previous.id,
                        previous.revision,
                    )
                    return False
                await self._apply_counters(session, counter_deltas(previous, updated))
        return True

    async def counters(self) -> dict[str, int]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ApprovalCounter.key, ApprovalCounter.count)
            )
            return {key: count for key, count in result.all()}

    async def recount(self) -> dict[str, int]:
        """Rebuild counters from the request table.

        @returns Rebuilt counter values
        """
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(select(self.model.document))
                requests = [
                    ApprovalRequest.from_document(doc) for doc in result.scalars().all()
                ]
                counts = count_requests(requests)
                for key, count in counts.items():
                    await self._set_counter(session, key, count)
        logger.info("Recounted approval counters over %d requests", len(requests))
        return counts

    async def _apply_counters(
        self, session: AsyncSession, deltas: dict[str, int]
    ) -> None:
        for key, delta in deltas.items():
            result = await session.execute(
                update(ApprovalCounter)
                .where(ApprovalCounter.key == key)
                .values(count=ApprovalCounter.count + delta)
            )
            if result.rowcount == 0:
                session.add(ApprovalCounter(key=key, count=delta))

    async def _set_counter(self, session: AsyncSession, key: str, count: int) -> None:
        result = await session.execute(
            update(ApprovalCounter).where(ApprovalCounter.key == key).values(count=count)
        )
        if result.rowcount == 0:
            session.add(ApprovalCounter(key=key, count=count))

    @staticmethod
    def _columns(request: ApprovalRequest) -> dict[str, Any]:
        return {
            "id": request.id,
            "type": request.type.value,
            "status": request.status.value,
            "priority": request.priority.value,
            "requested_by": request.requested_by,
            "project_id": request.project_id,
            "entity_id": request.entity_id,
            "entity_type": request.entity_type,
            "revision": request.revision,
            "document": request.to_document(),
            "created_at": request.created_at,
            "updated_at": request.updated_at,
        }
