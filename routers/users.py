import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pymongo import DESCENDING
from pymongo.database import Database

import schemas
from database import get_mongo_db, utcnow
from dependencies import get_current_admin_user, get_current_user
from stats import collect_admin_statistics
from utils.mongo import mongo_to_json, parse_object_id

router = APIRouter()

COLLECTOR_FIELDS = {"name": 1, "email": 1, "phone": 1, "zone": 1}


@router.get("/collectors", summary="Lister les agents de collecte actifs")
def list_collectors(
    zone: Optional[str] = Query(None, description="Filtrer par zone"),
    db: Database = Depends(get_mongo_db),
    current_user: schemas.User = Depends(get_current_user),
):
    query = {"role": schemas.UserRole.collector.value, "isActive": True}
    if zone:
        query["zone"] = zone
    collectors = [mongo_to_json(c) for c in db.users.find(query, COLLECTOR_FIELDS)]
    return {"success": True, "count": len(collectors), "collectors": collectors}


@router.get("/admin/statistics", summary="Statistiques d'administration")
def admin_statistics(
    db: Database = Depends(get_mongo_db),
    current_admin: schemas.User = Depends(get_current_admin_user),
):
    return {"success": True, "stats": collect_admin_statistics(db)}


@router.get("", summary="Lister tous les utilisateurs")
def list_users(
    role: Optional[schemas.UserRole] = Query(None),
    zone: Optional[str] = Query(None),
    isActive: Optional[bool] = Query(None),
    db: Database = Depends(get_mongo_db),
    current_admin: schemas.User = Depends(get_current_admin_user),
):
    query = {}
    if role:
        query["role"] = role.value
    if zone:
        query["zone"] = zone
    if isActive is not None:
        query["isActive"] = isActive

    users = [mongo_to_json(u) for u in db.users.find(query).sort("createdAt", DESCENDING)]
    return {"success": True, "count": len(users), "users": users}


@router.get("/{user_id}", summary="Obtenir un utilisateur par son ID")
def get_user(
    user_id: str,
    db: Database = Depends(get_mongo_db),
    current_admin: schemas.User = Depends(get_current_admin_user),
):
    db_user = db.users.find_one({"_id": parse_object_id(user_id)})
    if not db_user:
        raise HTTPException(status_code=404, detail="Utilisateur non trouvé")
    return {"success": True, "user": mongo_to_json(db_user)}


@router.put("/{user_id}", summary="Mettre à jour un utilisateur")
def update_user(
    user_id: str,
    user_update: schemas.UserUpdate,
    db: Database = Depends(get_mongo_db),
    current_admin: schemas.User = Depends(get_current_admin_user),
):
    oid = parse_object_id(user_id)
    if not db.users.find_one({"_id": oid}):
        raise HTTPException(status_code=404, detail="Utilisateur non trouvé")

    # Crée un dictionnaire avec les champs à mettre à jour
    update_data = user_update.model_dump(exclude_unset=True)
    if "email" in update_data and db.users.find_one({"email": update_data["email"], "_id": {"$ne": oid}}):
        raise HTTPException(status_code=400, detail="Email déjà utilisé")

    update_data["updatedAt"] = utcnow()
    db.users.update_one({"_id": oid}, {"$set": update_data})

    updated_user = db.users.find_one({"_id": oid})
    logging.info(f"Utilisateur {user_id} mis à jour par l'admin {current_admin.email}")
    return {"success": True, "message": "Utilisateur mis à jour avec succès", "user": mongo_to_json(updated_user)}


@router.delete("/{user_id}", summary="Supprimer un utilisateur")
def delete_user(
    user_id: str,
    db: Database = Depends(get_mongo_db),
    current_admin: schemas.User = Depends(get_current_admin_user),
):
    oid = parse_object_id(user_id)
    db_user = db.users.find_one({"_id": oid})
    if not db_user:
        raise HTTPException(status_code=404, detail="Utilisateur non trouvé")

    # Un admin ne peut pas supprimer son propre compte
    if str(db_user["_id"]) == current_admin.id:
        raise HTTPException(status_code=400, detail="Vous ne pouvez pas supprimer votre propre compte")

    db.users.delete_one({"_id": oid})
    logging.info(f"Utilisateur {db_user.get('email')} supprimé par l'admin {current_admin.email}")
    return {"success": True, "message": "Utilisateur supprimé avec succès"}
