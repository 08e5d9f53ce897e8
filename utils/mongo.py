from typing import Optional

from bson import ObjectId
from pymongo.database import Database

from exceptions import ValidationError

# Projections utilisées pour "peupler" les références (jamais le mot de passe)
RESIDENT_FIELDS = {"name": 1, "email": 1, "phone": 1, "address": 1}
CONTACT_FIELDS = {"name": 1, "email": 1, "phone": 1}
NAME_EMAIL_FIELDS = {"name": 1, "email": 1}
NAME_FIELDS = {"name": 1}


def parse_object_id(value: str, field: str = "id") -> ObjectId:
    """Valide et convertit un identifiant reçu dans l'URL ou le corps de la requête."""
    if not value or not ObjectId.is_valid(value):
        raise ValidationError(f"Identifiant invalide: {value}", fields=[field])
    return ObjectId(value)


def optional_object_id(value: Optional[str], field: str) -> Optional[ObjectId]:
    if value is None:
        return None
    return parse_object_id(value, field)


def mongo_to_json(doc):
    """Convertit récursivement les ObjectId en str pour la sérialisation JSON."""
    if isinstance(doc, list):
        return [mongo_to_json(item) for item in doc]
    if isinstance(doc, dict):
        return {k: mongo_to_json(v) for k, v in doc.items() if k != "password"}
    if isinstance(doc, ObjectId):
        return str(doc)
    return doc


def populate(db: Database, doc: dict, field: str, collection: str, projection: dict) -> dict:
    """Remplace la référence `field` par le sous-document correspondant (ou None)."""
    ref = doc.get(field)
    if isinstance(ref, ObjectId):
        doc[field] = db[collection].find_one({"_id": ref}, projection)
    return doc


def populate_collection(db: Database, doc: dict, resident_fields: dict = RESIDENT_FIELDS,
                        collector_fields: dict = CONTACT_FIELDS) -> dict:
    populate(db, doc, "resident", "users", resident_fields)
    populate(db, doc, "collector", "users", collector_fields)
    return doc


def populate_report(db: Database, doc: dict) -> dict:
    populate(db, doc, "reportedBy", "users", CONTACT_FIELDS)
    populate(db, doc, "resolvedBy", "users", NAME_EMAIL_FIELDS)
    populate(db, doc, "collection", "collections", None)
    return doc
