from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, EmailStr, Field


class BaseModel(PydanticBaseModel):
    # Les énumérations sont stockées telles quelles (valeurs str) dans MongoDB
    model_config = ConfigDict(use_enum_values=True)


# --- Énumérations, miroir des valeurs stockées dans MongoDB ---

class UserRole(str, Enum):
    admin = "admin"           # Administrateur du service
    collector = "collector"   # Agent de collecte
    resident = "resident"     # Habitant


class WasteType(str, Enum):
    general = "general"
    recyclable = "recyclable"
    organic = "organic"
    hazardous = "hazardous"


class CollectionStatus(str, Enum):
    pending = "pending"
    assigned = "assigned"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"


class CollectionPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class ReportType(str, Enum):
    full_bin = "full-bin"
    missed_collection = "missed-collection"
    damaged_bin = "damaged-bin"
    illegal_dumping = "illegal-dumping"
    other = "other"


class ReportStatus(str, Enum):
    open = "open"
    in_progress = "in-progress"
    resolved = "resolved"
    closed = "closed"


class ReportPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


# --- Utilisateurs ---

class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None


class User(BaseModel):
    """Identité résolue à partir du token (jamais de mot de passe ici)."""
    id: str
    name: str
    email: str
    role: UserRole
    zone: Optional[str] = None
    isActive: bool = True


class UserRegister(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.resident
    phone: Optional[str] = None
    address: Optional[Address] = None
    zone: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    phone: Optional[str] = None
    address: Optional[Address] = None
    zone: Optional[str] = None
    isActive: Optional[bool] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Address] = None
    password: Optional[str] = Field(None, min_length=6)


# --- Collectes ---

class CollectionAddress(BaseModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: Optional[str] = None
    zipCode: Optional[str] = None


class CollectionCreate(BaseModel):
    address: CollectionAddress
    zone: str = Field(..., min_length=1)
    wasteType: WasteType = WasteType.general
    priority: CollectionPriority = CollectionPriority.medium
    scheduledDate: Optional[datetime] = None
    description: Optional[str] = None
    residentId: Optional[str] = None  # réservé à l'admin (création pour le compte d'un habitant)


class CollectionUpdate(BaseModel):
    # Les champs hors de la liste autorisée pour le rôle sont ignorés (voir policy.py)
    collector: Optional[str] = None
    status: Optional[CollectionStatus] = None
    scheduledDate: Optional[datetime] = None
    completedDate: Optional[datetime] = None
    description: Optional[str] = None
    notes: Optional[str] = None


class AssignCollector(BaseModel):
    collectorId: Optional[str] = None


# --- Signalements ---

class Coordinates(BaseModel):
    latitude: float
    longitude: float


class Location(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    coordinates: Optional[Coordinates] = None


class ReportCreate(BaseModel):
    type: ReportType
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    location: Optional[Location] = None
    zone: Optional[str] = None
    priority: ReportPriority = ReportPriority.medium
    collectionId: Optional[str] = None


class ReportUpdate(BaseModel):
    status: Optional[ReportStatus] = None
    priority: Optional[ReportPriority] = None
    resolution: Optional[str] = None
