"""
Relational persistence: ORM rows for the domain and the itinerary job table.

Any SQLAlchemy URL works. Postgres is expected in production; an in-memory
SQLite database backs local development and the tests.
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    select,
    update,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from shared.types import JobStatus

IN_MEMORY_URL = "sqlite+pysqlite:///:memory:"

Base = declarative_base()


@dataclass
class JobRecord:
    job_id: str
    trip_id: int
    user_id: int
    status: JobStatus
    stage: str = "WAITING"
    progress_percent: float = 0.0
    activities_created: int = 0
    message: Optional[str] = None
    locked_at: Optional[float] = None
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "trip_id": self.trip_id,
            "status": self.status.name,
            "stage": self.stage,
            "progress_percent": self.progress_percent,
            "activities_created": self.activities_created,
            "message": self.message,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class Database:
    """
    Owns the engine and session factory, plus the itinerary job lifecycle.
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required")
        self.is_in_memory = database_url == IN_MEMORY_URL
        if self.is_in_memory:
            # One shared connection so every session sees the same database.
            self.engine = create_engine(
                database_url,
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                database_url,
                future=True,
                pool_pre_ping=True,
                pool_recycle=1800,
            )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @classmethod
    def in_memory(cls) -> "Database":
        return cls(IN_MEMORY_URL)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session that commits on success and rolls back on error."""
        with self.Session() as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    def reset(self) -> None:
        """Drop and recreate every table (useful in tests)."""
        Base.metadata.drop_all(self.engine)
        Base.metadata.create_all(self.engine)

    # Itinerary generation jobs

    def _to_job_record(self, job: "GenerationJobRow") -> JobRecord:
        return JobRecord(
            job_id=job.job_id,
            trip_id=job.trip_id,
            user_id=job.user_id,
            status=JobStatus(job.status),
            stage=job.stage,
            progress_percent=job.progress_percent,
            activities_created=job.activities_created,
            message=job.message,
            locked_at=job.locked_at,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )

    def create_itinerary_job(self, trip_id: int, user_id: int) -> JobRecord:
        now = time.time()
        with self.Session() as session:
            job = GenerationJobRow(
                job_id=uuid.uuid4().hex,
                trip_id=trip_id,
                user_id=user_id,
                status=JobStatus.WAITING.value,
                stage="WAITING",
                progress_percent=0.0,
                activities_created=0,
                created_at=now,
                updated_at=now,
            )
            session.add(job)
            session.commit()
            session.refresh(job)
            return self._to_job_record(job)

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        with self.Session() as session:
            job = session.get(GenerationJobRow, job_id)
            if not job:
                return None
            return self._to_job_record(job)

    def claim_job(self, job_id: str) -> Optional[JobRecord]:
        """Claims a specific WAITING job; None when another worker got it first."""
        now = time.time()
        with self.Session() as session:
            result = session.execute(
                update(GenerationJobRow)
                .where(
                    GenerationJobRow.job_id == job_id,
                    GenerationJobRow.status == JobStatus.WAITING.value,
                )
                .values(
                    status=JobStatus.RUNNING.value,
                    stage="CLAIMED",
                    locked_at=now,
                    updated_at=now,
                )
            )
            session.commit()
            if result.rowcount != 1:
                return None
            return self._to_job_record(session.get(GenerationJobRow, job_id))

    def claim_next_waiting_job(self) -> Optional[JobRecord]:
        now = time.time()
        with self.Session() as session:
            stmt = (
                select(GenerationJobRow)
                .where(GenerationJobRow.status == JobStatus.WAITING.value)
                .order_by(GenerationJobRow.created_at.asc())
                .limit(1)
                .with_for_update(skip_locked=True)
            )
            job = session.execute(stmt).scalar_one_or_none()
            if not job:
                return None
            job.status = JobStatus.RUNNING.value
            job.stage = "CLAIMED"
            job.locked_at = now
            job.updated_at = now
            session.commit()
            session.refresh(job)
            return self._to_job_record(job)

    def update_job_progress(
        self,
        job_id: str,
        *,
        status: Optional[JobStatus] = None,
        stage: Optional[str] = None,
        progress_percent: Optional[float] = None,
        activities_created: Optional[int] = None,
        message: Optional[str] = None,
    ) -> None:
        with self.Session() as session:
            job = session.get(GenerationJobRow, job_id)
            if not job:
                return
            if status:
                job.status = status.value
            if stage:
                job.stage = stage
            if progress_percent is not None:
                job.progress_percent = progress_percent
            if activities_created is not None:
                job.activities_created = activities_created
            if message is not None:
                job.message = message
            job.updated_at = time.time()
            session.commit()

    def requeue_stale_locks(self, lock_timeout_seconds: float = 900) -> int:
        cutoff = time.time() - lock_timeout_seconds
        with self.Session() as session:
            updated = (
                session.query(GenerationJobRow)
                .filter(
                    GenerationJobRow.status == JobStatus.RUNNING.value,
                    GenerationJobRow.locked_at != None,  # noqa: E711
                    GenerationJobRow.locked_at < cutoff,
                )
                .update(
                    {
                        GenerationJobRow.status: JobStatus.WAITING.value,
                        GenerationJobRow.stage: "WAITING",
                        GenerationJobRow.progress_percent: 0.0,
                        GenerationJobRow.locked_at: None,
                        GenerationJobRow.updated_at: time.time(),
                    },
                    synchronize_session=False,
                )
            )
            session.commit()
            return updated or 0


def _now() -> float:
    return time.time()


class OrganizationRow(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    domain = Column(String, nullable=True)
    plan = Column(String, nullable=False, default="free")
    white_label_enabled = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False, default=_now)
    updated_at = Column(Float, nullable=False, default=_now, onupdate=_now)


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True, index=True)
    display_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="user")
    organization_id = Column(
        Integer, ForeignKey("organizations.id"), nullable=True, index=True
    )
    is_creator = Column(Boolean, nullable=False, default=False)
    creator_verified = Column(Boolean, nullable=False, default=False)
    suspended = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False, default=_now)


class TripRow(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id"), nullable=True, index=True
    )
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    city = Column(String, nullable=True)
    country = Column(String, nullable=True)
    location = Column(String, nullable=True)
    city_latitude = Column(Float, nullable=True)
    city_longitude = Column(Float, nullable=True)
    trip_type = Column(String, nullable=False, default="personal")
    client_name = Column(String, nullable=True)
    project_type = Column(String, nullable=True)
    budget = Column(Float, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    is_public = Column(Boolean, nullable=False, default=False)
    sharing_enabled = Column(Boolean, nullable=False, default=False)
    share_code = Column(String, nullable=True, unique=True)
    share_permission = Column(String, nullable=False, default="read-only")
    hotel_name = Column(String, nullable=True)
    hotel_address = Column(String, nullable=True)
    hotel_latitude = Column(Float, nullable=True)
    hotel_longitude = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False, default=_now)
    updated_at = Column(Float, nullable=False, default=_now, onupdate=_now)


class ActivityRow(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    time = Column(String, nullable=True)
    location_name = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    tag = Column(String, nullable=True)
    assigned_to = Column(String, nullable=True)
    order = Column("order", Integer, nullable=False, default=0)
    travel_mode = Column(String, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False, default=_now)


class CollaboratorRow(Base):
    __tablename__ = "trip_collaborators"
    __table_args__ = (UniqueConstraint("trip_id", "email"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    email = Column(String, nullable=False)
    name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="viewer")
    status = Column(String, nullable=False, default="invited")
    invited_by = Column(Integer, nullable=True)
    created_at = Column(Float, nullable=False, default=_now)


class ProposalRow(Base):
    __tablename__ = "proposals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False, index=True)
    created_by = Column(Integer, nullable=False)
    client_name = Column(String, nullable=False)
    contact_email = Column(String, nullable=True)
    storage_path = Column(String, nullable=False)
    estimated_cost = Column(Float, nullable=False)
    cost_breakdown = Column(JSON, nullable=False)
    valid_until = Column(Date, nullable=False)
    created_at = Column(Float, nullable=False, default=_now)


class TemplateRow(Base):
    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    currency = Column(String, nullable=False, default="USD")
    cover_image = Column(String, nullable=True)
    destinations = Column(JSON, nullable=False, default=list)
    duration = Column(Integer, nullable=False, default=1)
    trip_data = Column(JSON, nullable=False, default=dict)
    tags = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default="draft")
    moderation_status = Column(String, nullable=False, default="pending")
    rejection_reason = Column(String, nullable=True)
    sales_count = Column(Integer, nullable=False, default=0)
    view_count = Column(Integer, nullable=False, default=0)
    created_at = Column(Float, nullable=False, default=_now)
    updated_at = Column(Float, nullable=False, default=_now, onupdate=_now)


class TemplatePurchaseRow(Base):
    __tablename__ = "template_purchases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    template_id = Column(
        Integer, ForeignKey("templates.id"), nullable=False, index=True
    )
    buyer_id = Column(Integer, nullable=False, index=True)
    seller_id = Column(Integer, nullable=False, index=True)
    price = Column(Float, nullable=False)
    platform_fee = Column(Float, nullable=False)
    seller_earnings = Column(Float, nullable=False)
    bundle_purchase_id = Column(Integer, nullable=True)
    trip_id = Column(Integer, nullable=True)
    status = Column(String, nullable=False, default="completed")
    purchased_at = Column(Float, nullable=False, default=_now)


class BundleRow(Base):
    __tablename__ = "template_bundles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    template_ids = Column(JSON, nullable=False, default=list)
    bundle_price = Column(Float, nullable=False)
    original_price = Column(Float, nullable=False)
    discount_percentage = Column(Float, nullable=False, default=0.0)
    cover_image = Column(String, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    type = Column(String, nullable=False, default="creator")
    featured = Column(Boolean, nullable=False, default=False)
    status = Column(String, nullable=False, default="draft")
    valid_from = Column(Date, nullable=True)
    valid_until = Column(Date, nullable=True)
    max_sales = Column(Integer, nullable=True)
    sales_count = Column(Integer, nullable=False, default=0)
    view_count = Column(Integer, nullable=False, default=0)
    created_at = Column(Float, nullable=False, default=_now)
    updated_at = Column(Float, nullable=False, default=_now, onupdate=_now)


class BundlePurchaseRow(Base):
    __tablename__ = "bundle_purchases"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bundle_id = Column(
        Integer, ForeignKey("template_bundles.id"), nullable=False, index=True
    )
    buyer_id = Column(Integer, nullable=False, index=True)
    price = Column(Float, nullable=False)
    platform_fee = Column(Float, nullable=False)
    creator_earnings = Column(Float, nullable=False)
    card_fee = Column(Float, nullable=False)
    purchased_at = Column(Float, nullable=False, default=_now)


class CorporateCardRow(Base):
    __tablename__ = "corporate_cards"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    issuer_card_id = Column(String, nullable=False, unique=True)
    issuer_cardholder_id = Column(String, nullable=False)
    last4 = Column(String, nullable=False)
    cardholder_name = Column(String, nullable=False)
    spend_limit = Column(Float, nullable=False)
    interval = Column(String, nullable=False, default="monthly")
    status = Column(String, nullable=False, default="active")
    purpose = Column(String, nullable=True)
    department = Column(String, nullable=True)
    allowed_categories = Column(JSON, nullable=False, default=list)
    blocked_categories = Column(JSON, nullable=False, default=list)
    current_spend = Column(Float, nullable=False, default=0.0)
    currency = Column(String, nullable=False, default="USD")
    created_at = Column(Float, nullable=False, default=_now)
    updated_at = Column(Float, nullable=False, default=_now, onupdate=_now)


class CardTransactionRow(Base):
    __tablename__ = "card_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    card_id = Column(
        Integer, ForeignKey("corporate_cards.id"), nullable=False, index=True
    )
    issuer_transaction_id = Column(String, nullable=False, unique=True)
    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="USD")
    merchant_name = Column(String, nullable=True)
    merchant_category = Column(String, nullable=True)
    created_at = Column(Float, nullable=False, default=_now)


class ExpenseRow(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    card_id = Column(Integer, ForeignKey("corporate_cards.id"), nullable=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=True)
    merchant_name = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="USD")
    transaction_date = Column(Date, nullable=False)
    expense_category = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    business_purpose = Column(Text, nullable=True)
    receipt_url = Column(String, nullable=True)
    billable_to_client = Column(Boolean, nullable=False, default=False)
    project_code = Column(String, nullable=True)
    status = Column(String, nullable=False, default="pending")
    approval_status = Column(String, nullable=False, default="pending")
    approved_by = Column(Integer, nullable=True)
    approved_at = Column(Float, nullable=True)
    approved_amount = Column(Float, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(Float, nullable=False, default=_now)


class WhiteLabelSettingsRow(Base):
    __tablename__ = "white_label_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id"), nullable=False, unique=True
    )
    company_name = Column(String, nullable=False)
    tagline = Column(String, nullable=True)
    primary_color = Column(String, nullable=False)
    secondary_color = Column(String, nullable=False)
    accent_color = Column(String, nullable=False)
    logo_url = Column(String, nullable=True)
    favicon_url = Column(String, nullable=True)
    custom_domain = Column(String, nullable=True)
    support_email = Column(String, nullable=True)
    status = Column(String, nullable=False, default="pending")
    created_at = Column(Float, nullable=False, default=_now)
    updated_at = Column(Float, nullable=False, default=_now, onupdate=_now)


class FlightBookingRow(Base):
    __tablename__ = "flight_bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=True)
    provider_order_id = Column(String, nullable=False, unique=True)
    offer_id = Column(String, nullable=False)
    booking_reference = Column(String, nullable=True)
    status = Column(String, nullable=False, default="confirmed")
    total_amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False)
    passengers = Column(JSON, nullable=False, default=list)
    slices = Column(JSON, nullable=False, default=list)
    created_at = Column(Float, nullable=False, default=_now)


class GenerationJobRow(Base):
    __tablename__ = "generation_jobs"

    job_id = Column(String, primary_key=True)
    trip_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False)
    status = Column(String, nullable=False, index=True)
    stage = Column(String, nullable=False, default="WAITING")
    progress_percent = Column(Float, nullable=False, default=0.0)
    activities_created = Column(Integer, nullable=False, default=0)
    message = Column(String, nullable=True)
    locked_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)
