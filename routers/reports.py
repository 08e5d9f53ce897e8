import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pymongo import DESCENDING
from pymongo.database import Database

import schemas
from database import get_mongo_db, insert_document, update_if_unchanged, utcnow
from dependencies import get_current_user, get_current_admin_user
from exceptions import InvalidTransition, NotFound, ValidationError
from lifecycle import report_changes
from policy import REPORT, authorize, build_list_query, filter_update
from stats import collect_statistics
from utils.exports import (
    EXCEL_MEDIA_TYPE,
    PDF_MEDIA_TYPE,
    REPORT_COLUMNS,
    render_excel,
    render_pdf,
    report_rows,
)
from utils.mongo import mongo_to_json, parse_object_id, populate_report

router = APIRouter()


def _get_report_or_404(db: Database, report_id: str) -> dict:
    report = db.reports.find_one({"_id": parse_object_id(report_id)})
    if not report:
        raise NotFound("Signalement non trouvé")
    return report


def _populated(db: Database, report_id) -> dict:
    return mongo_to_json(populate_report(db, db.reports.find_one({"_id": report_id})))


def _all_reports(db: Database):
    return [populate_report(db, r) for r in db.reports.find().sort("createdAt", DESCENDING)]


@router.get("/stats", summary="Statistiques du système")
def get_stats(
    db: Database = Depends(get_mongo_db),
    current_admin: schemas.User = Depends(get_current_admin_user),
):
    return {"success": True, "stats": mongo_to_json(collect_statistics(db))}


@router.get("/export/pdf", summary="Exporter les signalements en PDF")
def export_reports_pdf(
    db: Database = Depends(get_mongo_db),
    current_admin: schemas.User = Depends(get_current_admin_user),
):
    content = render_pdf("Rapport des signalements", REPORT_COLUMNS, report_rows(_all_reports(db)))
    return Response(
        content=content,
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=reports.pdf"},
    )


@router.get("/export/excel", summary="Exporter les signalements en Excel")
def export_reports_excel(
    db: Database = Depends(get_mongo_db),
    current_admin: schemas.User = Depends(get_current_admin_user),
):
    content = render_excel("Signalements", REPORT_COLUMNS, report_rows(_all_reports(db)))
    return Response(
        content=content,
        media_type=EXCEL_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=reports.xlsx"},
    )


@router.get("", summary="Lister les signalements visibles par l'utilisateur")
def list_reports(
    status: Optional[schemas.ReportStatus] = Query(None),
    type: Optional[schemas.ReportType] = Query(None),
    priority: Optional[schemas.ReportPriority] = Query(None),
    zone: Optional[str] = Query(None, description="Filtre réservé aux admins"),
    db: Database = Depends(get_mongo_db),
    current_user: schemas.User = Depends(get_current_user),
):
    params = {
        "status": status.value if status else None,
        "type": type.value if type else None,
        "priority": priority.value if priority else None,
        "zone": zone,
    }
    query = build_list_query(REPORT, current_user, params)
    reports = [mongo_to_json(populate_report(db, r)) for r in db.reports.find(query).sort("createdAt", DESCENDING)]
    return {"success": True, "count": len(reports), "reports": reports}


@router.post("", status_code=201, summary="Créer un signalement")
def create_report(
    report: schemas.ReportCreate,
    db: Database = Depends(get_mongo_db),
    current_user: schemas.User = Depends(get_current_user),
):
    data = report.model_dump(exclude={"collectionId"}, exclude_none=True)
    data.update({
        "reportedBy": parse_object_id(current_user.id),
        "zone": report.zone or current_user.zone,
        "status": schemas.ReportStatus.open.value,
    })
    if report.collectionId:
        collection_id = parse_object_id(report.collectionId, "collectionId")
        if not db.collections.find_one({"_id": collection_id}):
            raise ValidationError("La collecte liée n'existe pas", fields=["collectionId"])
        data["collection"] = collection_id

    new_report = insert_document(db.reports, data)
    logging.info(f"Signalement {new_report['_id']} ({report.type}) créé par {current_user.email}")
    return {
        "success": True,
        "message": "Signalement créé avec succès",
        "report": _populated(db, new_report["_id"]),
    }


@router.get("/{report_id}", summary="Obtenir un signalement")
def get_report(
    report_id: str,
    db: Database = Depends(get_mongo_db),
    current_user: schemas.User = Depends(get_current_user),
):
    report = _get_report_or_404(db, report_id)
    authorize(REPORT, "read", current_user, report)
    return {"success": True, "report": mongo_to_json(populate_report(db, report))}


@router.put("/{report_id}", summary="Mettre à jour un signalement")
def update_report(
    report_id: str,
    report_update: schemas.ReportUpdate,
    db: Database = Depends(get_mongo_db),
    current_user: schemas.User = Depends(get_current_user),
):
    report = _get_report_or_404(db, report_id)
    authorize(REPORT, "update", current_user, report)

    fields = filter_update(REPORT, current_user, report, report_update.model_dump(exclude_unset=True))
    changes = report_changes(report, fields, current_user.id, utcnow())

    if not update_if_unchanged(db.reports, report, changes):
        raise InvalidTransition(report["status"], changes.get("status", report["status"]),
                                "Le signalement a été modifié entre-temps, veuillez réessayer")

    if "status" in changes:
        logging.info(f"Signalement {report_id}: {report['status']} -> {changes['status']} par {current_user.email}")
    return {
        "success": True,
        "message": "Signalement mis à jour avec succès",
        "report": _populated(db, report["_id"]),
    }


@router.delete("/{report_id}", summary="Supprimer un signalement")
def delete_report(
    report_id: str,
    db: Database = Depends(get_mongo_db),
    current_admin: schemas.User = Depends(get_current_admin_user),
):
    report = _get_report_or_404(db, report_id)
    db.reports.delete_one({"_id": report["_id"]})
    logging.info(f"Signalement {report_id} supprimé par l'admin {current_admin.email}")
    return {"success": True, "message": "Signalement supprimé avec succès"}
