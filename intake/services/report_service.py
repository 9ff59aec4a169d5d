# intake/services/report_service.py
"""
Vehicle reports and the dashboard summary.

aggregate() is pure: it counts whatever vehicle set it is handed.
render_pdf() lays the same numbers out with fpdf2:
title, generation time, active filters, summary table, per-user table, vehicle table.
"""

from collections import Counter
from datetime import datetime
from typing import Iterable, Optional

from fpdf import FPDF
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from intake.models.client import Client
from intake.models.profile import Profile
from intake.models.vehicle import Vehicle
from intake.schemas.report import CreatorCount, DashboardClient, DashboardOut, ReportSummary
from intake.services.client_service import tax_id_digits
from intake.services.query_cache import query_cache
from intake.utils.constants import STATUS_LABELS, VehicleStatus
from intake.utils.logger import get_logger
from intake.utils.normalize import digits_only

logger = get_logger(__name__)

DATE_FORMAT = "%d/%m/%Y %H:%M"


def aggregate(vehicles: Iterable, names: Optional[dict] = None) -> ReportSummary:
    """Total, per-status counts and per-creator counts. Unknown creators group under None."""
    names = names or {}
    statuses = Counter()
    creators = Counter()
    for v in vehicles:
        statuses[VehicleStatus(v.status)] += 1
        creators[v.created_by] += 1

    by_creator = [
        CreatorCount(user_id=user_id, full_name=names.get(user_id), count=count)
        for user_id, count in sorted(creators.items(), key=lambda item: (-item[1], item[0] or ""))
    ]
    return ReportSummary(
        total=sum(statuses.values()),
        awaiting_dropoff=statuses[VehicleStatus.AWAITING_DROPOFF],
        checked_in=statuses[VehicleStatus.CHECKED_IN],
        checked_out=statuses[VehicleStatus.CHECKED_OUT],
        cancelled=statuses[VehicleStatus.CANCELLED],
        by_creator=by_creator,
    )


def _profile_names(db: Session) -> dict:
    return {p.id: p.full_name for p in db.query(Profile.id, Profile.full_name).all()}


def report_vehicles(db: Session, client_id: Optional[str] = None,
                    created_by: Optional[str] = None) -> list[Vehicle]:
    query = db.query(Vehicle)
    if client_id:
        query = query.filter(Vehicle.client_id == client_id)
    if created_by:
        query = query.filter(Vehicle.created_by == created_by)
    return query.order_by(Vehicle.created_at.desc()).all()


def build_report(db: Session, client_id: Optional[str] = None,
                 created_by: Optional[str] = None) -> tuple[ReportSummary, list[Vehicle]]:
    vehicles = report_vehicles(db, client_id, created_by)
    return aggregate(vehicles, _profile_names(db)), vehicles


def _text(value) -> str:
    """Core PDF fonts are latin-1 only."""
    return str(value if value is not None else "-").encode("latin-1", "replace").decode("latin-1")


def _when(value: Optional[datetime]) -> str:
    return value.strftime(DATE_FORMAT) if value else "-"


def render_pdf(summary: ReportSummary, vehicles: list, filters: Optional[dict] = None,
               generated_at: Optional[datetime] = None) -> bytes:
    generated_at = generated_at or datetime.utcnow()
    pdf = FPDF(orientation="L")
    pdf.add_page()
    pdf.set_auto_page_break(auto=True, margin=15)

    pdf.set_font("Helvetica", "B", 18)
    pdf.cell(0, 10, _text("Relatório de Veículos"), new_x="LMARGIN", new_y="NEXT", align="C")
    pdf.set_font("Helvetica", "", 10)
    pdf.cell(0, 6, f"Gerado em {generated_at.strftime(DATE_FORMAT)}", new_x="LMARGIN", new_y="NEXT", align="C")
    for label, value in (filters or {}).items():
        if value:
            pdf.cell(0, 6, _text(f"{label}: {value}"), new_x="LMARGIN", new_y="NEXT", align="C")
    pdf.ln(4)

    # Summary
    pdf.set_fill_color(240, 240, 240)
    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(0, 7, "  Resumo", new_x="LMARGIN", new_y="NEXT", fill=True)
    pdf.set_font("Helvetica", "", 10)
    rows = [("Total", summary.total)] + [
        (STATUS_LABELS[status], getattr(summary, status.value)) for status in VehicleStatus
    ]
    for label, count in rows:
        pdf.cell(120, 6, _text(f"  {label}"), new_x="RIGHT")
        pdf.cell(40, 6, str(count), align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # Per user
    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(0, 7, _text("  Veículos por usuário"), new_x="LMARGIN", new_y="NEXT", fill=True)
    pdf.set_font("Helvetica", "", 10)
    for row in summary.by_creator:
        pdf.cell(120, 6, _text(f"  {row.full_name or 'Desconhecido'}"), new_x="RIGHT")
        pdf.cell(40, 6, str(row.count), align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # Vehicles
    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(0, 7, _text("  Veículos"), new_x="LMARGIN", new_y="NEXT", fill=True)
    pdf.set_font("Helvetica", "B", 9)
    columns = (("Placa", 30), ("Modelo", 50), ("Cliente", 70), ("Status", 50), ("Check-in", 38), ("Check-out", 38))
    for title, width in columns:
        pdf.cell(width, 6, title, border="B")
    pdf.ln()
    pdf.set_font("Helvetica", "", 9)
    for v in vehicles:
        values = (
            v.plate,
            v.model or "-",
            v.client.name if v.client else "-",
            STATUS_LABELS[VehicleStatus(v.status)],
            _when(v.checkin_at),
            _when(v.checkout_at),
        )
        for (_, width), value in zip(columns, values):
            pdf.cell(width, 5, _text(value)[:40])
        pdf.ln()

    data = bytes(pdf.output())
    logger.info(f"[REPORT] Rendered PDF with {len(vehicles)} vehicles ({len(data)} bytes)")
    return data


def dashboard(db: Session, search: Optional[str] = None) -> DashboardOut:
    """Status counts plus the clients that still have vehicles awaiting drop-off."""
    term = (search or "").strip()

    def load():
        rows = db.query(Vehicle.status, func.count(Vehicle.id)).group_by(Vehicle.status).all()
        counts = Counter({VehicleStatus(status): n for status, n in rows})
        query = (
            db.query(Client, func.count(Vehicle.id))
            .join(Vehicle, Vehicle.client_id == Client.id)
            .filter(Vehicle.status == VehicleStatus.AWAITING_DROPOFF)
        )
        if term:
            conditions = [Client.name.ilike(f"%{term}%")]
            digits = digits_only(term)
            if digits:
                conditions += [tax_id_digits(Client.cnpj).contains(digits), tax_id_digits(Client.cpf).contains(digits)]
            query = query.filter(or_(*conditions))
        pending = query.group_by(Client.id).order_by(Client.name).all()

        return DashboardOut(
            total=sum(counts.values()),
            awaiting_dropoff=counts[VehicleStatus.AWAITING_DROPOFF],
            checked_in=counts[VehicleStatus.CHECKED_IN],
            checked_out=counts[VehicleStatus.CHECKED_OUT],
            cancelled=counts[VehicleStatus.CANCELLED],
            pending_clients=[
                DashboardClient(id=c.id, name=c.name, tax_id=c.tax_id, pending_vehicles=n) for c, n in pending
            ],
        )

    return query_cache.get_or_load(("dashboard", term.lower()), load)
