"""Repositories over the core tables.

Each method runs in its own short transaction so that an effect committed by
one step (minutes credited, call recorded) is never rolled back by a later
best-effort step.
"""

from datetime import datetime
from typing import Any, NamedTuple, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agentline.core.exceptions import InvalidJobTransitionError
from agentline.core.logging import get_logger
from agentline.domain.entities.jobs import JobStatus, JobType, can_transition
from agentline.domain.entities.routing import PhoneStatus
from agentline.infrastructure.database.models import (
    Agent,
    CallHistory,
    Client,
    PhoneNumber,
    WebhookJob,
)

logger = get_logger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]

STALE_JOB_MESSAGE = "Job reclaimed after processing timeout"


def _insert_for(session: AsyncSession, model: type):
    """Dialect-specific INSERT supporting ON CONFLICT."""
    if session.bind is not None and session.bind.dialect.name == "sqlite":
        return sqlite.insert(model)
    return postgresql.insert(model)


async def _charge(session: AsyncSession, client_id: str, minutes: int) -> Client | None:
    """Add to `minutes_used` in the caller's transaction."""
    result = await session.execute(
        update(Client)
        .where(Client.id == client_id)
        .values(minutes_used=Client.minutes_used + minutes)
        .returning(Client)
    )
    return result.scalar_one_or_none()


class RecordedCall(NamedTuple):
    inserted: bool
    client: Client | None


class ClientRepository:
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def get(self, client_id: str) -> Client | None:
        async with self._session_factory() as session:
            return await session.get(Client, client_id)

    async def find_by_email(self, email: str) -> Client | None:
        normalized = email.strip().lower()
        if not normalized:
            return None
        async with self._session_factory() as session:
            result = await session.execute(
                select(Client).where(func.lower(Client.email) == normalized)
            )
            return result.scalars().first()

    async def add_minutes(self, client_id: str, minutes: int) -> int | None:
        """Atomically increase the prepaid balance.

        Returns:
            New `minutes_included`, or None if the client does not exist
        """
        stmt = (
            update(Client)
            .where(Client.id == client_id)
            .values(minutes_included=Client.minutes_included + minutes)
            .returning(Client.minutes_included)
        )
        async with self._session_factory() as session, session.begin():
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def set_phone_status(self, client_id: str, status: PhoneStatus) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                update(Client).where(Client.id == client_id).values(phone_status=status)
            )

    async def set_stripe_customer_if_missing(self, client_id: str, customer_id: str) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                update(Client)
                .where(Client.id == client_id, Client.stripe_customer_id.is_(None))
                .values(stripe_customer_id=customer_id)
            )


class AgentRepository:
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def get(self, agent_id: str) -> Agent | None:
        async with self._session_factory() as session:
            return await session.get(Agent, agent_id)

    async def get_by_retell_id(self, retell_agent_id: str) -> Agent | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Agent).where(Agent.retell_agent_id == retell_agent_id)
            )
            return result.scalar_one_or_none()

    async def list_for_client(self, client_id: str) -> Sequence[Agent]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Agent)
                .where(Agent.client_id == client_id)
                .order_by(Agent.created_at.desc())
            )
            return result.scalars().all()

    async def create(self, **values: Any) -> Agent:
        agent = Agent(**values)
        async with self._session_factory() as session, session.begin():
            session.add(agent)
        return agent

    async def update(self, agent_id: str, **values: Any) -> None:
        if not values:
            return
        async with self._session_factory() as session, session.begin():
            await session.execute(update(Agent).where(Agent.id == agent_id).values(**values))

    async def delete(self, agent_id: str) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(delete(Agent).where(Agent.id == agent_id))


class PhoneNumberRepository:
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def get(self, phone_number_id: str) -> PhoneNumber | None:
        async with self._session_factory() as session:
            return await session.get(PhoneNumber, phone_number_id)

    async def list_for_client(self, client_id: str) -> Sequence[PhoneNumber]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(PhoneNumber)
                .where(PhoneNumber.client_id == client_id)
                .order_by(PhoneNumber.created_at)
            )
            return result.scalars().all()

    async def create(self, **values: Any) -> PhoneNumber:
        record = PhoneNumber(**values)
        async with self._session_factory() as session, session.begin():
            session.add(record)
        return record

    async def set_agent(self, phone_number_id: str, agent_id: str | None) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                update(PhoneNumber)
                .where(PhoneNumber.id == phone_number_id)
                .values(agent_id=agent_id)
            )

    async def delete(self, phone_number_id: str) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(delete(PhoneNumber).where(PhoneNumber.id == phone_number_id))


class CallHistoryRepository:
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def record(
        self,
        *,
        retell_call_id: str,
        retell_agent_id: str,
        phone_number: str | None,
        transcript: str,
        call_duration_seconds: int,
        call_status: str,
    ) -> bool:
        """Insert a call unless one with the same Retell call id exists.

        Returns:
            True if a new row was written, False for a redelivered call
        """
        values = {
            "retell_call_id": retell_call_id,
            "retell_agent_id": retell_agent_id,
            "phone_number": phone_number,
            "transcript": transcript,
            "call_duration_seconds": call_duration_seconds,
            "call_status": call_status,
        }
        async with self._session_factory() as session, session.begin():
            return await self._insert(session, values)

    async def record_and_charge(
        self,
        *,
        client_id: str,
        minutes: int,
        retell_call_id: str,
        retell_agent_id: str,
        phone_number: str | None,
        transcript: str,
        call_duration_seconds: int,
        call_status: str,
    ) -> RecordedCall:
        """Insert a call and charge its minutes in one transaction.

        A redelivered call id charges nothing; the client is still returned
        so callers can re-check the balance.
        """
        values = {
            "retell_call_id": retell_call_id,
            "retell_agent_id": retell_agent_id,
            "phone_number": phone_number,
            "transcript": transcript,
            "call_duration_seconds": call_duration_seconds,
            "call_status": call_status,
        }
        async with self._session_factory() as session, session.begin():
            inserted = await self._insert(session, values)
            if inserted and minutes > 0:
                client = await _charge(session, client_id, minutes)
            else:
                client = await session.get(Client, client_id)
        return RecordedCall(inserted, client)

    @staticmethod
    async def _insert(session: AsyncSession, values: dict[str, Any]) -> bool:
        stmt = (
            _insert_for(session, CallHistory)
            .values(**values)
            .on_conflict_do_nothing(index_elements=["retell_call_id"])
            .returning(CallHistory.id)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list_for_client(
        self, client_id: str, limit: int = 50, offset: int = 0
    ) -> Sequence[CallHistory]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(CallHistory)
                .join(Agent, Agent.retell_agent_id == CallHistory.retell_agent_id)
                .where(Agent.client_id == client_id)
                .order_by(CallHistory.created_at.desc(), CallHistory.id.desc())
                .limit(limit)
                .offset(offset)
            )
            return result.scalars().all()


class WebhookJobRepository:
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    async def enqueue(self, job_type: JobType, payload: dict[str, Any]) -> WebhookJob:
        job = WebhookJob(
            job_type=job_type,
            payload=payload,
            status=JobStatus.PENDING,
            retry_count=0,
        )
        async with self._session_factory() as session, session.begin():
            session.add(job)
        logger.info("Webhook job enqueued", job_id=job.id, job_type=job_type.value)
        return job

    async def get(self, job_id: int) -> WebhookJob | None:
        async with self._session_factory() as session:
            return await session.get(WebhookJob, job_id)

    async def fetch_pending(self, limit: int) -> Sequence[WebhookJob]:
        """Oldest pending jobs first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(WebhookJob)
                .where(WebhookJob.status == JobStatus.PENDING)
                .order_by(WebhookJob.created_at, WebhookJob.id)
                .limit(limit)
            )
            return result.scalars().all()

    async def reclaim_stale(self, older_than: datetime, max_retries: int) -> int:
        """Release jobs left in `processing` by a worker that never finished.

        Each reclaimed job counts as one failed attempt: it goes back to
        `pending`, or to `failed` once the retry ceiling is reached.

        Returns:
            Number of jobs reclaimed
        """
        stale = (WebhookJob.status == JobStatus.PROCESSING, WebhookJob.updated_at < older_than)
        values = {
            "retry_count": WebhookJob.retry_count + 1,
            "error_message": STALE_JOB_MESSAGE,
        }
        async with self._session_factory() as session, session.begin():
            retried = await session.execute(
                update(WebhookJob)
                .where(*stale, WebhookJob.retry_count + 1 < max_retries)
                .values(status=JobStatus.PENDING, **values)
                .returning(WebhookJob.id)
            )
            retried_ids = list(retried.scalars())
            failed = await session.execute(
                update(WebhookJob)
                .where(*stale)
                .values(status=JobStatus.FAILED, **values)
                .returning(WebhookJob.id)
            )
            ids = retried_ids + list(failed.scalars())

        if ids:
            logger.warning("Reclaimed stale webhook jobs", job_ids=ids)
        return len(ids)

    async def transition(
        self,
        job_id: int,
        current: JobStatus,
        target: JobStatus,
        *,
        retry_count: int | None = None,
        error_message: str | None = None,
    ) -> WebhookJob:
        """Move a job between states.

        The update only matches while the row is still in `current`, so two
        workers cannot both claim the same pending job.

        Raises:
            InvalidJobTransitionError: If the state machine forbids the move,
                or the job is no longer in `current`
        """
        if not can_transition(current, target):
            raise InvalidJobTransitionError(
                f"Illegal job transition {current.value} -> {target.value}",
                details={"job_id": job_id},
            )

        values: dict[str, Any] = {"status": target}
        if retry_count is not None:
            values["retry_count"] = retry_count
        if error_message is not None:
            values["error_message"] = error_message

        stmt = (
            update(WebhookJob)
            .where(WebhookJob.id == job_id, WebhookJob.status == current)
            .values(**values)
            .returning(WebhookJob)
        )
        async with self._session_factory() as session, session.begin():
            result = await session.execute(stmt)
            job = result.scalar_one_or_none()

        if job is None:
            raise InvalidJobTransitionError(
                f"Job is not {current.value}",
                details={"job_id": job_id},
            )
        return job
