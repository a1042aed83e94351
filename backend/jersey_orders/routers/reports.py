"""Report generation and the recent-reports list."""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import get_settings
from ..database import get_db
from ..security import require_admin
from ..services.reports import CsvDocument, generate_report, get_report, render_report

router = APIRouter(prefix="/reports", tags=["Reports"], dependencies=[Depends(require_admin)])
RECENT_LIMIT = 10


def csv_response(document: CsvDocument, headers: dict = None) -> Response:
    response_headers = {"Content-Disposition": f'attachment; filename="{document.file_name}"'}
    response_headers.update(headers or {})
    return Response(
        content=document.encode(),
        media_type="text/csv; charset=utf-8",
        headers=response_headers,
    )


@router.get("/", response_model=List[schemas.ReportOut])
def list_reports(db: Session = Depends(get_db)):
    stmt = select(models.Report).order_by(models.Report.generated.desc()).limit(RECENT_LIMIT)
    return db.scalars(stmt).all()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_report(payload: schemas.ReportRequest, db: Session = Depends(get_db)) -> Response:
    report, document = generate_report(
        db,
        payload.type,
        payload.date_from,
        payload.date_to,
        get_settings().low_stock_threshold,
    )
    response = csv_response(document, headers={"X-Report-Id": report.id})
    response.status_code = status.HTTP_201_CREATED
    return response


@router.get("/{report_id}/download")
def download_report(report_id: str, db: Session = Depends(get_db)) -> Response:
    report = get_report(db, report_id)
    document = render_report(
        db,
        models.ReportType(report.type),
        report.date_from,
        report.date_to,
        get_settings().low_stock_threshold,
        today=report.generated.date() if report.generated else None,
    )
    return csv_response(document)


@router.delete("/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_report(report_id: str, db: Session = Depends(get_db)):
    db.delete(get_report(db, report_id))
    db.commit()
