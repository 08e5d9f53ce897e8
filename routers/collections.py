import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from pymongo import DESCENDING
from pymongo.database import Database

import schemas
from database import get_mongo_db, insert_document, update_if_unchanged, utcnow
from dependencies import (
    get_current_user,
    get_current_admin_user,
    get_current_collector_or_admin_user,
    get_current_resident_or_admin_user,
)
from exceptions import InvalidTransition, NotFound, ValidationError
from lifecycle import assignment_changes, check_staffed, collection_changes
from policy import COLLECTION, authorize, build_list_query, filter_update, resolve_assignment_target
from utils.exports import (
    COLLECTION_COLUMNS,
    EXCEL_MEDIA_TYPE,
    PDF_MEDIA_TYPE,
    collection_rows,
    render_excel,
    render_pdf,
)
from utils.mongo import mongo_to_json, optional_object_id, parse_object_id, populate_collection

router = APIRouter()


def _get_collection_or_404(db: Database, collection_id: str) -> dict:
    collection = db.collections.find_one({"_id": parse_object_id(collection_id)})
    if not collection:
        raise NotFound("Collecte non trouvée")
    return collection


def _require_active_collector(db: Database, collector_id, field: str = "collectorId") -> dict:
    collector = db.users.find_one({"_id": collector_id})
    if not collector or collector.get("role") != schemas.UserRole.collector.value or not collector.get("isActive", True):
        raise ValidationError("L'agent désigné n'existe pas ou n'est pas actif", fields=[field])
    return collector


def _populated(db: Database, collection_id) -> dict:
    return mongo_to_json(populate_collection(db, db.collections.find_one({"_id": collection_id})))


def _all_collections(db: Database):
    return [populate_collection(db, c) for c in db.collections.find().sort("createdAt", DESCENDING)]


# --- Exports (déclarés avant les routes /{collection_id}) ---

@router.get("/export/pdf", summary="Exporter les collectes en PDF")
def export_collections_pdf(
    db: Database = Depends(get_mongo_db),
    current_admin: schemas.User = Depends(get_current_admin_user),
):
    content = render_pdf("Rapport des collectes", COLLECTION_COLUMNS, collection_rows(_all_collections(db)))
    return Response(
        content=content,
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=collections.pdf"},
    )


@router.get("/export/excel", summary="Exporter les collectes en Excel")
def export_collections_excel(
    db: Database = Depends(get_mongo_db),
    current_admin: schemas.User = Depends(get_current_admin_user),
):
    content = render_excel("Collectes", COLLECTION_COLUMNS, collection_rows(_all_collections(db)))
    return Response(
        content=content,
        media_type=EXCEL_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=collections.xlsx"},
    )


@router.get("", summary="Lister les collectes visibles par l'utilisateur")
def list_collections(
    status: Optional[schemas.CollectionStatus] = Query(None),
    zone: Optional[str] = Query(None, description="Filtre réservé aux admins"),
    wasteType: Optional[schemas.WasteType] = Query(None),
    priority: Optional[schemas.CollectionPriority] = Query(None),
    db: Database = Depends(get_mongo_db),
    current_user: schemas.User = Depends(get_current_user),
):
    params = {
        "status": status.value if status else None,
        "zone": zone,
        "wasteType": wasteType.value if wasteType else None,
        "priority": priority.value if priority else None,
    }
    query = build_list_query(COLLECTION, current_user, params)
    collections = [
        mongo_to_json(populate_collection(db, c))
        for c in db.collections.find(query).sort("createdAt", DESCENDING)
    ]
    return {"success": True, "count": len(collections), "collections": collections}


@router.post("", status_code=201, summary="Créer une demande de collecte")
def create_collection(
    collection: schemas.CollectionCreate,
    db: Database = Depends(get_mongo_db),
    current_user: schemas.User = Depends(get_current_resident_or_admin_user),
):
    resident_id = parse_object_id(current_user.id)
    if current_user.role == schemas.UserRole.admin and collection.residentId:
        resident_id = parse_object_id(collection.residentId, "residentId")
        if not db.users.find_one({"_id": resident_id, "role": schemas.UserRole.resident.value}):
            raise ValidationError("Habitant introuvable", fields=["residentId"])

    data = collection.model_dump(exclude={"residentId"}, exclude_none=True)
    data.update({
        "resident": resident_id,
        "status": schemas.CollectionStatus.pending.value,
    })
    new_collection = insert_document(db.collections, data)

    logging.info(f"Collecte {new_collection['_id']} créée pour l'habitant {resident_id} (zone {collection.zone})")
    return {
        "success": True,
        "message": "Demande de collecte créée avec succès",
        "collection": _populated(db, new_collection["_id"]),
    }


@router.get("/{collection_id}", summary="Obtenir une collecte")
def get_collection(
    collection_id: str,
    db: Database = Depends(get_mongo_db),
    current_user: schemas.User = Depends(get_current_user),
):
    collection = _get_collection_or_404(db, collection_id)
    authorize(COLLECTION, "read", current_user, collection)
    return {"success": True, "collection": mongo_to_json(populate_collection(db, collection))}


@router.put("/{collection_id}", summary="Mettre à jour une collecte")
def update_collection(
    collection_id: str,
    collection_update: schemas.CollectionUpdate,
    db: Database = Depends(get_mongo_db),
    current_user: schemas.User = Depends(get_current_user),
):
    collection = _get_collection_or_404(db, collection_id)
    authorize(COLLECTION, "update", current_user, collection)

    fields = filter_update(COLLECTION, current_user, collection, collection_update.model_dump(exclude_unset=True))
    if "collector" in fields:
        fields["collector"] = optional_object_id(fields["collector"], "collector")
        if fields["collector"] is not None:
            _require_active_collector(db, fields["collector"], "collector")
    changes = collection_changes(collection, fields, utcnow())
    check_staffed(collection, changes)

    if not update_if_unchanged(db.collections, collection, changes):
        raise InvalidTransition(collection["status"], changes.get("status", collection["status"]),
                                "La collecte a été modifiée entre-temps, veuillez réessayer")

    if "status" in changes:
        logging.info(f"Collecte {collection_id}: {collection['status']} -> {changes['status']} par {current_user.email}")
    return {
        "success": True,
        "message": "Collecte mise à jour avec succès",
        "collection": _populated(db, collection["_id"]),
    }


@router.delete("/{collection_id}", summary="Supprimer une collecte")
def delete_collection(
    collection_id: str,
    db: Database = Depends(get_mongo_db),
    current_user: schemas.User = Depends(get_current_user),
):
    collection = _get_collection_or_404(db, collection_id)
    authorize(COLLECTION, "delete", current_user, collection)

    db.collections.delete_one({"_id": collection["_id"]})
    logging.info(f"Collecte {collection_id} supprimée par {current_user.email}")
    return {"success": True, "message": "Collecte supprimée avec succès"}


@router.put("/{collection_id}/assign", summary="Assigner un agent à une collecte")
def assign_collector(
    collection_id: str,
    assignment: Optional[schemas.AssignCollector] = None,
    db: Database = Depends(get_mongo_db),
    current_user: schemas.User = Depends(get_current_collector_or_admin_user),
):
    collection = _get_collection_or_404(db, collection_id)
    authorize(COLLECTION, "update", current_user, collection)

    # Un agent s'assigne toujours lui-même (collectorId du corps ignoré)
    target_id = parse_object_id(resolve_assignment_target(current_user, assignment.collectorId if assignment else None), "collectorId")
    target = _require_active_collector(db, target_id)

    changes = assignment_changes(collection, target_id)
    if not update_if_unchanged(db.collections, collection, changes):
        raise InvalidTransition(collection["status"], changes["status"],
                                "La collecte a été modifiée entre-temps, veuillez réessayer")

    logging.info(f"Collecte {collection_id} assignée à l'agent {target.get('email')}")
    return {
        "success": True,
        "message": "Agent assigné avec succès",
        "collection": _populated(db, collection["_id"]),
    }
