"""
Filing of a classified violation as a routed, persisted report.

Order of work for one submission:
    identity check -> verdict check -> authority resolution -> evidence file +
    row insert (one unit) -> authority notification (best-effort)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional, Protocol
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from ecolens.core.errors import (
    ErrorType,
    NonActionableVerdictError,
    PersistenceError,
    UnauthorizedError,
)
from ecolens.models.report import ReportStatus, ViolationReport
from ecolens.models.user import User
from ecolens.schemas.authority import ReportLocation
from ecolens.schemas.verdict import ViolationVerdict
from ecolens.services.authority_resolver import AuthorityResolver

logger = logging.getLogger(__name__)

_EXTENSIONS = {"image/jpeg": "jpg", "image/jpg": "jpg", "image/png": "png", "image/webp": "webp", "image/gif": "gif"}


@dataclass(frozen=True)
class EvidenceImage:
    data: bytes
    mime_type: str = "image/jpeg"

    @property
    def extension(self) -> str:
        return _EXTENSIONS.get(self.mime_type.lower(), "jpg")


class AuthorityNotifier(Protocol):
    async def send_authority_alert(
        self, report: ViolationReport, reporter_email: str, evidence: bytes
    ) -> None:
        ...


class ReportAssembler:

    def __init__(
        self,
        resolver: AuthorityResolver,
        notifier: AuthorityNotifier,
        media_root: Path
    ):
        self.resolver = resolver
        self.notifier = notifier
        self.media_root = Path(media_root)

    def _write_evidence(self, evidence: EvidenceImage) -> str:
        self.media_root.mkdir(parents=True, exist_ok=True)
        filename = f"report_{uuid4().hex}.{evidence.extension}"
        (self.media_root / filename).write_bytes(evidence.data)
        return filename

    def _remove_evidence(self, filename: str) -> None:
        try:
            (self.media_root / filename).unlink(missing_ok=True)
        except OSError as e:
            logger.error(f"Could not remove orphaned evidence {filename}: {e}")

    async def file_report(
        self,
        db: AsyncSession,
        reporter: Optional[User],
        verdict: ViolationVerdict,
        location: ReportLocation,
        evidence: EvidenceImage,
        offense_date: Optional[str] = None,
        offense_time: Optional[str] = None
    ) -> ViolationReport:
        """
        Route and persist one report, then notify the authority.

        Raises:
            UnauthorizedError: No verified reporter; nothing else is attempted
            NonActionableVerdictError: Verdict is not a confirmed violation
            PersistenceError: The report could not be stored; no partial report remains
        """
        if reporter is None or reporter.id is None:
            raise UnauthorizedError.missing_reporter()
        if not verdict.is_actionable:
            raise NonActionableVerdictError.for_outcome(verdict.outcome.value)

        authority = await self.resolver.resolve(verdict.category.value, location)

        now = datetime.now()
        filename = None
        try:
            filename = await run_in_threadpool(self._write_evidence, evidence)

            report = ViolationReport(
                reporter_id=reporter.id,
                title=verdict.title or "Detected Violation",
                category=verdict.category.value,
                severity=verdict.severity.value,
                description=verdict.description,
                applicable_law=verdict.applicable_law,
                estimated_fine=verdict.estimated_fine,
                location=location.place,
                latitude=location.latitude,
                longitude=location.longitude,
                evidence_path=filename,
                evidence_mime_type=evidence.mime_type,
                status=ReportStatus.PENDING.value,
                offense_date=offense_date or now.strftime("%d/%m/%Y"),
                offense_time=offense_time or now.strftime("%I:%M:%S %p"),
            )
            report.mark_forwarded(authority.name, authority.source_confidence.value)

            # Only the file write and the commit belong in this unit. Once the
            # commit succeeds the report exists and its file must stay. Id and
            # timestamps are set client-side, so no refresh is needed.
            db.add(report)
            await db.commit()

        except (SQLAlchemyError, OSError) as e:
            logger.error(f"{ErrorType.PERSISTENCE_FAILED.value}: {e}")
            await db.rollback()
            if filename:
                await run_in_threadpool(self._remove_evidence, filename)
            raise PersistenceError.write_failed(e) from e

        logger.info(
            f"Report #{report.reference} routed to {authority.name} "
            f"({authority.source_confidence.value})"
        )

        try:
            await self.notifier.send_authority_alert(report, reporter.email, evidence.data)
        except Exception as e:
            # The stored report stands on its own
            logger.error(f"{ErrorType.NOTIFICATION_FAILED.value}: report #{report.reference}: {e}")

        return report
