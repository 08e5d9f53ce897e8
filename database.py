# Base de données: connexion MongoDB partagée et création des index.

from datetime import datetime, timezone

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import MONGO_URI, DB_NAME

# Créer le client une seule fois pour être réutilisé à travers l'application
mongo_client = MongoClient(MONGO_URI)


def get_mongo_db() -> Database:
    """
    Retourne une instance de la base de données MongoDB.
    Utilisée comme dépendance FastAPI (surchargée dans les tests).
    """
    return mongo_client[DB_NAME]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_indexes(db: Database):
    """Crée les index utilisés par les filtres de liste. Opération idempotente."""
    db.users.create_index([("email", ASCENDING)], unique=True)
    db.collections.create_index([("status", ASCENDING), ("zone", ASCENDING)])
    db.collections.create_index([("resident", ASCENDING)])
    db.collections.create_index([("collector", ASCENDING)])
    db.reports.create_index([("status", ASCENDING), ("priority", ASCENDING)])
    db.reports.create_index([("reportedBy", ASCENDING)])
    db.reports.create_index([("zone", ASCENDING)])


def update_if_unchanged(collection, doc: dict, changes: dict) -> bool:
    """
    Applique `changes` seulement si le statut lu lors de la vérification d'accès
    n'a pas changé (compare-and-set sur un seul document).
    """
    changes = dict(changes)
    changes["updatedAt"] = utcnow()
    result = collection.update_one({"_id": doc["_id"], "status": doc.get("status")}, {"$set": changes})
    return result.matched_count == 1


def insert_document(collection, data: dict):
    """Insère un document en ajoutant les horodatages createdAt/updatedAt."""
    now = utcnow()
    data["createdAt"] = now
    data["updatedAt"] = now
    result = collection.insert_one(data)
    return collection.find_one({"_id": result.inserted_id})
