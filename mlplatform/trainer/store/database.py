# Copyright 2026 The ML Platform Authors.
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

"""SQLAlchemy-backed job status store.

The store survives restarts of the engine. Every call runs in its own transaction.
"""

from datetime import datetime, timezone
import logging
from typing import Optional

from sqlalchemy import JSON, DateTime, Engine, String, Text, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from mlplatform.trainer.store.base import StatusStore, now
from mlplatform.trainer.types import types

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class JobStatusRow(Base):
    __tablename__ = "training_job_status"

    namespace: Mapped[str] = mapped_column(String(63), primary_key=True)
    job_id: Mapped[str] = mapped_column(String(63), primary_key=True)
    phase: Mapped[str] = mapped_column(String(16), default=types.JobPhase.PENDING.value)
    message: Mapped[str] = mapped_column(Text, default="")
    start_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completion_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cluster_replicas: Mapped[dict] = mapped_column(JSON, default=dict)
    target_clusters: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Some backends, e.g. SQLite, drop the timezone on read.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_record(row: JobStatusRow) -> types.JobStatusRecord:
    return types.JobStatusRecord(
        job_id=row.job_id,
        namespace=row.namespace,
        phase=types.JobPhase(row.phase),
        message=row.message or "",
        start_time=_as_utc(row.start_time),
        completion_time=_as_utc(row.completion_time),
        cluster_replicas=dict(row.cluster_replicas or {}),
        target_clusters=list(row.target_clusters or []),
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


def _apply(row: JobStatusRow, record: types.JobStatusRecord):
    row.phase = record.phase.value
    row.message = record.message
    row.start_time = record.start_time
    row.completion_time = record.completion_time
    row.cluster_replicas = dict(record.cluster_replicas)
    row.target_clusters = list(record.target_clusters)
    row.updated_at = now()


class DatabaseStatusStore(StatusStore):
    """Keeps the records in a SQL database.

    Args:
        url: The SQLAlchemy database URL, e.g. `sqlite:///jobs.db`. Ignored when an
            engine is given.
        engine: A prepared SQLAlchemy engine.
    """

    def __init__(self, url: Optional[str] = None, engine: Optional[Engine] = None):
        if engine is None:
            if not url:
                raise ValueError("Either a database URL or an engine must be set")
            engine = create_engine(url)

        self.engine = engine
        Base.metadata.create_all(self.engine)
        self._session = sessionmaker(bind=self.engine, expire_on_commit=False)

    def get(self, job_id: str, namespace: str) -> Optional[types.JobStatusRecord]:
        with self._session() as session:
            row = session.get(JobStatusRow, (namespace, job_id))
            return _to_record(row) if row else None

    def set(self, record: types.JobStatusRecord):
        with self._session.begin() as session:
            self.__put(session, record)

    def advance(self, record: types.JobStatusRecord) -> bool:
        with self._session.begin() as session:
            row = session.get(JobStatusRow, (record.namespace, record.job_id), with_for_update=True)
            if row is not None and record.phase.rank <= types.JobPhase(row.phase).rank:
                return False
            self.__put(session, record, row)
            return True

    def list_jobs(self, namespace: Optional[str] = None) -> list[types.JobStatusRecord]:
        query = select(JobStatusRow).order_by(JobStatusRow.namespace, JobStatusRow.job_id)
        if namespace is not None:
            query = query.where(JobStatusRow.namespace == namespace)
        with self._session() as session:
            return [_to_record(row) for row in session.scalars(query)]

    def list_active(self) -> list[types.JobStatusRecord]:
        terminal = [p.value for p in types.TERMINAL_PHASES]
        query = (
            select(JobStatusRow)
            .where(JobStatusRow.phase.not_in(terminal))
            .order_by(JobStatusRow.namespace, JobStatusRow.job_id)
        )
        with self._session() as session:
            return [_to_record(row) for row in session.scalars(query)]

    def __put(
        self,
        session: Session,
        record: types.JobStatusRecord,
        row: Optional[JobStatusRow] = None,
    ):
        if row is None:
            row = session.get(JobStatusRow, (record.namespace, record.job_id))
        if row is None:
            row = JobStatusRow(
                namespace=record.namespace,
                job_id=record.job_id,
                created_at=record.created_at or now(),
            )
            session.add(row)
        _apply(row, record)
        logger.debug(f"Job {record.namespace}/{record.job_id} stored as {record.phase.value}")
