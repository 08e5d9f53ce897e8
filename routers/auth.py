import logging

from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from pymongo.database import Database
from bson import ObjectId

import schemas
from database import get_mongo_db, insert_document, utcnow
from dependencies import (
    get_current_user,
    verify_password,
    hash_password,
    create_access_token,
)
from utils.mongo import mongo_to_json

router = APIRouter()


def _token_response(user_data: dict, message: str) -> dict:
    access_token = create_access_token(data={"sub": str(user_data["_id"]), "role": user_data.get("role")})
    return {
        "success": True,
        "message": message,
        "token": access_token,
        "token_type": "bearer",
        "user": mongo_to_json(user_data),
    }


@router.post("/register", status_code=201)
def register(user: schemas.UserRegister, db: Database = Depends(get_mongo_db)):
    """Inscription publique d'un habitant ou d'un agent de collecte."""
    if user.role == schemas.UserRole.admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Impossible de s'inscrire en tant qu'administrateur")
    if db.users.find_one({"email": user.email}):
        raise HTTPException(status_code=400, detail="Email déjà utilisé")

    user_data = user.model_dump(exclude_none=True)
    user_data["password"] = hash_password(user.password)
    user_data["isActive"] = True
    new_user = insert_document(db.users, user_data)

    logging.info(f"Nouvel utilisateur inscrit: {user.email} ({user.role})")
    return _token_response(new_user, "Inscription réussie")


def _authenticate(db: Database, email: str, password: str) -> dict:
    user_data = db.users.find_one({"email": email})

    if not user_data or not user_data.get("password") or not verify_password(password, user_data["password"]):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email ou mot de passe incorrect",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user_data.get("isActive", True):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Votre compte est désactivé. Veuillez contacter un administrateur."
        )

    return user_data


@router.post("/login")
def login(credentials: schemas.LoginRequest, db: Database = Depends(get_mongo_db)):
    """Connecte l'utilisateur et retourne un token JWT."""
    user_data = _authenticate(db, credentials.email, credentials.password)
    return _token_response(user_data, "Connexion réussie")


@router.post("/token")
def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends(), db: Database = Depends(get_mongo_db)):
    """Variante formulaire OAuth2 (username = email) utilisée par le bouton Authorize de la doc."""
    user_data = _authenticate(db, form_data.username, form_data.password)
    access_token = create_access_token(data={"sub": str(user_data["_id"]), "role": user_data.get("role")})
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me")
def read_users_me(current_user: schemas.User = Depends(get_current_user), db: Database = Depends(get_mongo_db)):
    """Retourne le profil de l'utilisateur actuellement connecté."""
    user_data = db.users.find_one({"_id": ObjectId(current_user.id)})
    return {"success": True, "user": mongo_to_json(user_data)}


@router.put("/me")
def update_users_me(
    profile: schemas.ProfileUpdate,
    current_user: schemas.User = Depends(get_current_user),
    db: Database = Depends(get_mongo_db),
):
    """Mise à jour de son propre profil (nom, téléphone, adresse, mot de passe)."""
    update_data = profile.model_dump(exclude_unset=True, exclude_none=True)
    if profile.password:
        update_data["password"] = hash_password(profile.password)
    if not update_data:
        raise HTTPException(status_code=400, detail="Aucune donnée à mettre à jour")

    update_data["updatedAt"] = utcnow()
    db.users.update_one({"_id": ObjectId(current_user.id)}, {"$set": update_data})
    updated_user = db.users.find_one({"_id": ObjectId(current_user.id)})
    return {"success": True, "message": "Profil mis à jour avec succès", "user": mongo_to_json(updated_user)}
