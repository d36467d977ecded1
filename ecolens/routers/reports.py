import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ecolens.core.dependencies import get_current_active_user, get_optional_user, get_report_assembler
from ecolens.db.database import get_db
from ecolens.models.report import ViolationReport
from ecolens.models.user import User
from ecolens.routers.analysis import read_image
from ecolens.schemas.authority import ReportLocation
from ecolens.schemas.report import ReportResponse, ReportSubmissionResponse
from ecolens.schemas.verdict import Severity, ViolationCategory, ViolationVerdict
from ecolens.services.report_assembler import EvidenceImage, ReportAssembler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.post("", response_model=ReportSubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_report(
        # -- Evidence --
        image: UploadFile = File(..., description="Photo that was analyzed"),

        # -- Verdict being filed (as returned by POST /analysis/violation) --
        violation_detected: bool = Form(...),
        category: ViolationCategory = Form(...),
        severity: Severity = Form(Severity.MEDIUM),
        title: str = Form("Detected Violation", max_length=255),
        description: str = Form(""),
        applicable_law: str = Form("N/A"),
        estimated_fine: str = Form("N/A"),
        preventive_action: str = Form(""),
        evidence_sufficient: bool = Form(True),
        parse_error: bool = Form(False),

        # -- Where and when --
        place: str = Form(..., max_length=255, description="Administrative area name"),
        latitude: Optional[float] = Form(None),
        longitude: Optional[float] = Form(None),
        offense_date: Optional[str] = Form(None, max_length=20),
        offense_time: Optional[str] = Form(None, max_length=20),

        current_user: Optional[User] = Depends(get_optional_user),
        assembler: ReportAssembler = Depends(get_report_assembler),
        db: AsyncSession = Depends(get_db)
):
    """
    Files a verdict as a report: routes it to the nearest competent authority,
    stores it, and alerts the authority by email.
    """
    verdict = ViolationVerdict(
        violation_detected=violation_detected,
        category=category,
        severity=severity,
        title=title,
        description=description,
        applicable_law=applicable_law,
        estimated_fine=estimated_fine,
        preventive_action=preventive_action,
        evidence_sufficient=evidence_sufficient,
        parse_error=parse_error,
    )
    location = ReportLocation(place=place, latitude=latitude, longitude=longitude)
    evidence = EvidenceImage(data=await read_image(image), mime_type=image.content_type or "image/jpeg")

    report = await assembler.file_report(
        db,
        reporter=current_user,
        verdict=verdict,
        location=location,
        evidence=evidence,
        offense_date=offense_date,
        offense_time=offense_time,
    )

    return ReportSubmissionResponse(
        report=ReportResponse.model_validate(report),
        forwarded_to=report.forwarded_to,
        source_confidence=report.authority_confidence,
        reference=report.reference,
    )


@router.get("/mine", response_model=List[ReportResponse])
async def list_my_reports(
        current_user: User = Depends(get_current_active_user),
        db: AsyncSession = Depends(get_db),
        limit: int = Query(50, ge=1, le=200),
):
    """Past reports of the authenticated reporter, newest first."""
    stmt = select(ViolationReport).where(
        ViolationReport.reporter_id == current_user.id
    ).order_by(
        ViolationReport.created_at.desc()
    ).limit(limit)

    result = await db.execute(stmt)
    return [ReportResponse.model_validate(report) for report in result.scalars().all()]


@router.get("/{report_id}/evidence")
async def get_report_evidence(
        report_id: UUID,
        current_user: User = Depends(get_current_active_user),
        assembler: ReportAssembler = Depends(get_report_assembler),
        db: AsyncSession = Depends(get_db)
):
    """Serves the evidence image of a report. Only its reporter may view it."""
    stmt = select(ViolationReport).where(ViolationReport.id == report_id)
    report = (await db.execute(stmt)).scalars().first()

    if not report:
        raise HTTPException(status_code=404, detail="Report not found")

    if report.reporter_id != current_user.id:
        logger.warning(f"User {current_user.email} tried to access report {report_id} of another reporter")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to view this evidence."
        )

    file_path = assembler.media_root / report.evidence_path
    if not file_path.is_file():
        raise HTTPException(status_code=404, detail="Evidence file missing")

    return FileResponse(file_path, media_type=report.evidence_mime_type)
