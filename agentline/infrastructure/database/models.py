"""SQLAlchemy database models."""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from agentline.domain.entities.jobs import JobStatus, JobType
from agentline.domain.entities.routing import PhoneStatus
from agentline.infrastructure.database.connection import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _enum_values(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


class Client(Base):
    """Tenant business with a prepaid minutes balance."""

    __tablename__ = "clients"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    minutes_included: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    minutes_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    phone_status: Mapped[PhoneStatus] = mapped_column(
        Enum(
            PhoneStatus,
            native_enum=False,
            length=20,
            values_callable=_enum_values,
            name="phone_status",
        ),
        default=PhoneStatus.ACTIVE,
        nullable=False,
    )
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    @property
    def minutes_remaining(self) -> int:
        return self.minutes_included - self.minutes_used

    @property
    def is_exhausted(self) -> bool:
        return self.minutes_used >= self.minutes_included


class Agent(Base):
    """Voice agent hosted on Retell, owned by a client."""

    __tablename__ = "agents"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    retell_agent_id: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False, index=True
    )
    retell_llm_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    agent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    voice: Mapped[str] = mapped_column(String(100), nullable=False)
    language: Mapped[str] = mapped_column(String(20), nullable=False)
    prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    transfer_calls: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    cal_com: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )


class PhoneNumber(Base):
    """Twilio number owned by a client, optionally linked to an agent.

    The agent link survives suspension; restoring trunk membership routes
    calls back to it.
    """

    __tablename__ = "phone_numbers"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    agent_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("agents.id", ondelete="SET NULL"), nullable=True
    )
    phone_number: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    twilio_sid: Mapped[str] = mapped_column(String(64), nullable=False)
    monthly_cost: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    stripe_subscription_item_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )


class CallHistory(Base):
    """One completed call, written once per Retell call id."""

    __tablename__ = "call_history"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    retell_call_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    retell_agent_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("agents.retell_agent_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    transcript: Mapped[str] = mapped_column(Text, default="", nullable=False)
    call_duration_seconds: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    call_status: Mapped[str] = mapped_column(String(50), default="completed", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False, index=True
    )


class WebhookJob(Base):
    """Durable retry record for routing work."""

    __tablename__ = "webhook_jobs"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    job_type: Mapped[JobType] = mapped_column(
        Enum(JobType, native_enum=False, length=50, values_callable=_enum_values, name="job_type"),
        nullable=False,
    )
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, native_enum=False, length=20, values_callable=_enum_values, name="job_status"),
        default=JobStatus.PENDING,
        nullable=False,
        index=True,
    )
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )
