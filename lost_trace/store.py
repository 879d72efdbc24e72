"""SQL-backed gallery store for reports.

Reports live in a single SQLModel table. Signatures are stored as JSON
arrays and decoded on every scan; rows whose signature cannot be decoded
are returned with ``signature=None`` so they are simply not comparable.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from lost_trace.errors import PersistenceFailure, ReportNotFound
from lost_trace.logging_config import get_logger
from lost_trace.models import GalleryEntry, Report, ReportStatus, ReportView
from lost_trace.signature import signature_from_json

logger = get_logger(__name__)


def make_engine(database_url: str, echo: bool = False):
    """Create an engine for database_url.

    In-memory SQLite URLs share one connection so that every session sees the
    same database.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)
    return create_engine(database_url, echo=echo)


class SqlGalleryStore:
    """Gallery store on top of a SQLAlchemy engine.

    Every operation runs in its own session, so a report inserted by one call
    is visible to the next scan issued by the same caller.

    Attributes:
        engine: SQLAlchemy engine

    Example:
        >>> store = SqlGalleryStore.from_url("sqlite://")
        >>> store.create_db_and_tables()
        >>> report_id = store.insert(report)
        >>> entries = store.scan_excluding(report_id)
    """

    def __init__(self, engine):
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> SqlGalleryStore:
        return cls(make_engine(database_url))

    def create_db_and_tables(self) -> None:
        SQLModel.metadata.create_all(self.engine)
        logger.info(f"Database ready at {self.engine.url}")

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with Session(self.engine, expire_on_commit=False) as session:
            yield session

    def insert(self, report: Report) -> str:
        """Persist a new report in one transaction.

        Raises:
            PersistenceFailure: If the write fails. Nothing is left behind.
        """
        try:
            with self._session() as session:
                session.add(report)
                session.commit()
                session.refresh(report)
                report_id = report.id
        except SQLAlchemyError as e:
            logger.error(f"Failed to insert report: {e}")
            raise PersistenceFailure(f"Failed to insert report: {e}") from e

        logger.debug(f"Inserted report {report_id}")
        return report_id

    def get(self, report_id: str) -> ReportView:
        """Fetch one report.

        Raises:
            ReportNotFound: If no report has this id.
        """
        with self._session() as session:
            row = session.get(Report, report_id)
            if row is None:
                raise ReportNotFound(f"Report {report_id} not found")
            return ReportView.from_row(row)

    def scan_excluding(self, report_id: str) -> List[GalleryEntry]:
        """Return every other report, oldest first."""
        with self._session() as session:
            rows = session.exec(
                select(Report)
                .where(Report.id != report_id)
                .order_by(Report.submitted_at, Report.id)
            ).all()

            entries = []
            for row in rows:
                signature = signature_from_json(row.signature)
                if signature is None and row.signature:
                    logger.debug(f"Report {row.id} has a malformed stored signature")
                entries.append(
                    GalleryEntry(
                        id=row.id,
                        signature=signature,
                        view=ReportView.from_row(row),
                    )
                )

        return entries

    def update_status_and_link(
        self,
        report_id: str,
        status: ReportStatus,
        matched_with_id: Optional[str],
    ) -> None:
        """Set status and match link of one report.

        Raises:
            ReportNotFound: If no report has this id.
            PersistenceFailure: If the write fails.
        """
        try:
            with self._session() as session:
                row = session.get(Report, report_id)
                if row is None:
                    raise ReportNotFound(f"Report {report_id} not found")
                row.status = ReportStatus(status).value
                row.matched_with_id = matched_with_id
                session.add(row)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to update report {report_id}: {e}")
            raise PersistenceFailure(f"Failed to update report {report_id}: {e}") from e

        logger.debug(
            f"Report {report_id} -> status={ReportStatus(status).value}, "
            f"matched_with={matched_with_id}"
        )

    def list_all(self) -> List[ReportView]:
        """All reports, newest first."""
        with self._session() as session:
            rows = session.exec(
                select(Report).order_by(Report.submitted_at.desc())
            ).all()
            return [ReportView.from_row(row) for row in rows]

    def list_by_submitter(self, submitter_id: str) -> List[ReportView]:
        """Reports of one submitter, newest first."""
        with self._session() as session:
            rows = session.exec(
                select(Report)
                .where(Report.submitted_by_id == submitter_id)
                .order_by(Report.submitted_at.desc())
            ).all()
            return [ReportView.from_row(row) for row in rows]

    def get_image_public_id(self, report_id: str) -> Optional[str]:
        with self._session() as session:
            row = session.get(Report, report_id)
            if row is None:
                raise ReportNotFound(f"Report {report_id} not found")
            return row.image_public_id

    def delete(self, report_id: str) -> None:
        """Delete one report row. Links pointing at it are left as they are.

        Raises:
            ReportNotFound: If no report has this id.
            PersistenceFailure: If the write fails.
        """
        try:
            with self._session() as session:
                row = session.get(Report, report_id)
                if row is None:
                    raise ReportNotFound(f"Report {report_id} not found")
                session.delete(row)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete report {report_id}: {e}")
            raise PersistenceFailure(f"Failed to delete report {report_id}: {e}") from e

        logger.info(f"Deleted report {report_id}")

    def __repr__(self) -> str:
        return f"SqlGalleryStore(url={self.engine.url})"
