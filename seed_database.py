"""
Réinitialise la base et insère un jeu de données de démonstration :
1 admin, 2 agents (Zone-A, Zone-B), 3 habitants, 4 collectes et 4 signalements
couvrant toutes les étapes du cycle de vie.
"""
import sys
from datetime import timedelta

import pymongo
from dotenv import load_dotenv

load_dotenv()

from config import MONGO_URI, DB_NAME  # noqa: E402
from database import create_indexes, utcnow  # noqa: E402
from dependencies import hash_password  # noqa: E402

USERS = [
    # (clé, nom, email, mot de passe, rôle, téléphone, rue, code postal, zone)
    ("admin", "Admin User", "admin@waste.com", "admin123", "admin", "+254712345678", "123 Admin Street", "00100", "Central"),
    ("collector1", "John Collector", "collector1@waste.com", "collector123", "collector", "+254723456789", "456 Collector Avenue", "00200", "Zone-A"),
    ("collector2", "Jane Collector", "collector2@waste.com", "collector123", "collector", "+254734567890", "789 Waste Drive", "00300", "Zone-B"),
    ("resident1", "Alice Resident", "resident1@waste.com", "resident123", "resident", "+254745678901", "321 Resident Road", "00400", "Zone-A"),
    ("resident2", "Bob Resident", "resident2@waste.com", "resident123", "resident", "+254756789012", "654 Home Lane", "00500", "Zone-B"),
    ("resident3", "Charlie Resident", "resident3@waste.com", "resident123", "resident", "+254767890123", "987 Park Street", "00600", "Zone-A"),
]


def _address(street: str, zip_code: str) -> dict:
    return {"street": street, "city": "Nairobi", "state": "Nairobi", "zipCode": zip_code}


def seed_database(db) -> dict:
    """Vide puis remplit les collections. Retourne les identifiants créés par clé."""
    db.users.delete_many({})
    db.collections.delete_many({})
    db.reports.delete_many({})
    print("Données supprimées...")

    now = utcnow()
    day = timedelta(days=1)
    ids = {}
    for key, name, email, password, role, phone, street, zip_code, zone in USERS:
        ids[key] = db.users.insert_one({
            "name": name,
            "email": email,
            "password": hash_password(password),
            "role": role,
            "phone": phone,
            "address": _address(street, zip_code),
            "zone": zone,
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        }).inserted_id
    print("Utilisateurs créés...")

    addresses = {key: _address(street, zip_code) for key, _, _, _, _, _, street, zip_code, _ in USERS}
    collections = [
        {"resident": ids["resident1"], "collector": ids["collector1"], "address": addresses["resident1"],
         "zone": "Zone-A", "wasteType": "general", "status": "completed", "priority": "medium",
         "scheduledDate": now - 2 * day, "completedDate": now - day,
         "description": "Weekly general waste collection"},
        {"resident": ids["resident2"], "collector": ids["collector2"], "address": addresses["resident2"],
         "zone": "Zone-B", "wasteType": "recyclable", "status": "in-progress", "priority": "high",
         "scheduledDate": now, "description": "Recyclable materials pickup"},
        {"resident": ids["resident3"], "address": addresses["resident3"],
         "zone": "Zone-A", "wasteType": "organic", "status": "pending", "priority": "low",
         "scheduledDate": now + day, "description": "Garden waste collection"},
        {"resident": ids["resident1"], "collector": ids["collector1"], "address": addresses["resident1"],
         "zone": "Zone-A", "wasteType": "hazardous", "status": "assigned", "priority": "high",
         "scheduledDate": now + 2 * day, "description": "Electronic waste disposal"},
    ]
    for offset, collection in enumerate(collections):
        collection["createdAt"] = collection["updatedAt"] = now + timedelta(seconds=offset)
    db.collections.insert_many(collections)
    print("Collectes créées...")

    reports = [
        {"reportedBy": ids["resident1"], "type": "full-bin", "title": "Overflowing waste bin",
         "description": "The communal bin on Resident Road is overflowing and needs immediate attention.",
         "location": {"street": "321 Resident Road", "city": "Nairobi"}, "zone": "Zone-A",
         "status": "resolved", "priority": "high", "resolvedBy": ids["collector1"], "resolvedDate": now,
         "resolution": "Bin emptied and cleaned"},
        {"reportedBy": ids["resident2"], "type": "missed-collection", "title": "Missed scheduled pickup",
         "description": "Scheduled collection on Tuesday was missed. Waste still waiting.",
         "location": {"street": "654 Home Lane", "city": "Nairobi"}, "zone": "Zone-B",
         "status": "in-progress", "priority": "medium"},
        {"reportedBy": ids["collector1"], "type": "damaged-bin", "title": "Damaged waste container",
         "description": "Large container on Park Street is damaged and leaking.",
         "location": {"street": "987 Park Street", "city": "Nairobi"}, "zone": "Zone-A",
         "status": "open", "priority": "high"},
        {"reportedBy": ids["resident3"], "type": "illegal-dumping", "title": "Illegal waste dumping",
         "description": "Construction waste dumped illegally near the community center.",
         "location": {"street": "Community Center Parking", "city": "Nairobi"}, "zone": "Zone-A",
         "status": "open", "priority": "urgent"},
    ]
    for offset, report in enumerate(reports):
        report["createdAt"] = report["updatedAt"] = now + timedelta(seconds=offset)
    db.reports.insert_many(reports)
    print("Signalements créés...")

    create_indexes(db)
    return ids


def main():
    client = None
    try:
        client = pymongo.MongoClient(MONGO_URI)
        seed_database(client[DB_NAME])
    except pymongo.errors.PyMongoError as e:
        print(f"Erreur lors du remplissage de la base : {e}")
        sys.exit(1)
    finally:
        if client:
            client.close()

    print("\nBase de données initialisée avec succès !")
    print("\nIdentifiants de connexion :")
    for _, name, email, password, role, *_ in USERS:
        print(f"  {role:<10} {email} / {password}")


if __name__ == "__main__":
    main()
