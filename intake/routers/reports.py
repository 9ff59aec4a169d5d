# intake/routers/reports.py
"""Vehicle reports (JSON summary and PDF) and the dashboard."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from intake.database import get_db
from intake.dependencies import get_session
from intake.models.client import Client
from intake.models.profile import Profile
from intake.schemas.report import DashboardOut, ReportSummary
from intake.services import report_service
from intake.services.auth_service import SessionContext

router = APIRouter()


@router.get("/reports/summary", response_model=ReportSummary)
def report_summary(client_id: Optional[str] = None, created_by: Optional[str] = None,
                   db: Session = Depends(get_db), ctx: SessionContext = Depends(get_session)):
    summary, _ = report_service.build_report(db, client_id, created_by)
    return summary


@router.get("/reports/vehicles.pdf", summary="Download the vehicle report as PDF")
def report_pdf(client_id: Optional[str] = None, created_by: Optional[str] = None,
               db: Session = Depends(get_db), ctx: SessionContext = Depends(get_session)):
    summary, vehicles = report_service.build_report(db, client_id, created_by)
    filters = {}
    if client_id:
        client = db.query(Client).filter(Client.id == client_id).first()
        filters["Cliente"] = client.name if client else client_id
    if created_by:
        profile = db.query(Profile).filter(Profile.id == created_by).first()
        filters["Cadastrado por"] = profile.full_name if profile else created_by

    data = report_service.render_pdf(summary, vehicles, filters)
    filename = f"relatorio_veiculos_{datetime.utcnow().strftime('%Y%m%d_%H%M')}.pdf"
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/dashboard", response_model=DashboardOut)
def dashboard(search: Optional[str] = None, db: Session = Depends(get_db),
              ctx: SessionContext = Depends(get_session)):
    """Counts by status plus clients with vehicles awaiting drop-off."""
    return report_service.dashboard(db, search)
