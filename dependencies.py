from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database
from bson import ObjectId
from datetime import datetime, timedelta, timezone

import schemas
from config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from database import get_mongo_db

# --- CONFIGURATION SÉCURITÉ ---
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")

# --- FONCTIONS UTILITAIRES ---
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    expire_time = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire_time})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def user_helper(user_data) -> schemas.User:
    """Convertit un document MongoDB en identité Pydantic."""
    return schemas.User(
        id=str(user_data["_id"]),
        name=user_data.get("name", ""),
        email=user_data.get("email", ""),
        role=user_data.get("role", schemas.UserRole.resident.value),
        zone=user_data.get("zone"),
        isActive=user_data.get("isActive", True),
    )

# --- DÉPENDANCES FASTAPI ---

def get_current_user(token: str = Depends(oauth2_scheme), db: Database = Depends(get_mongo_db)) -> schemas.User:
    """Décode le token JWT et récupère l'utilisateur depuis MongoDB."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Impossible de valider les informations d'identification",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None or not ObjectId.is_valid(user_id):
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    user_data = db.users.find_one({"_id": ObjectId(user_id)})
    if user_data is None or not user_data.get("isActive", True):
        raise credentials_exception

    return user_helper(user_data)

def get_current_admin_user(current_user: schemas.User = Depends(get_current_user)) -> schemas.User:
    """Vérifie que l'utilisateur actuel est un administrateur."""
    if current_user.role != schemas.UserRole.admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="L'opération nécessite des privilèges d'administrateur"
        )
    return current_user

def get_current_collector_or_admin_user(current_user: schemas.User = Depends(get_current_user)) -> schemas.User:
    """Vérifie que l'utilisateur actuel est un agent de collecte ou un administrateur."""
    allowed_roles = [schemas.UserRole.admin, schemas.UserRole.collector]
    if current_user.role not in allowed_roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="L'opération nécessite des privilèges d'agent ou d'administrateur"
        )
    return current_user

def get_current_resident_or_admin_user(current_user: schemas.User = Depends(get_current_user)) -> schemas.User:
    """Vérifie que l'utilisateur actuel est un habitant ou un administrateur."""
    allowed_roles = [schemas.UserRole.admin, schemas.UserRole.resident]
    if current_user.role not in allowed_roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="L'opération est réservée aux habitants et aux administrateurs"
        )
    return current_user
