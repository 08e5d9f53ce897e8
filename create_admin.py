import sys

import pymongo
from dotenv import load_dotenv

load_dotenv()

from config import MONGO_URI, DB_NAME  # noqa: E402
from database import utcnow  # noqa: E402
from dependencies import hash_password  # noqa: E402

# --- Identifiants par défaut de l'administrateur --- #
DEFAULT_ADMIN_EMAIL = "admin@test.com"
DEFAULT_ADMIN_PASSWORD = "admin123"
ADMIN_NAME = "Admin User"
ADMIN_ROLE = "admin"


def create_admin_user(email: str, password: str):
    """
    Se connecte à MongoDB, vérifie si l'utilisateur existe déjà,
    et le promeut admin ou le crée si nécessaire.
    """
    client = None
    try:
        client = pymongo.MongoClient(MONGO_URI)
        users_collection = client[DB_NAME]["users"]

        existing_user = users_collection.find_one({"email": email})
        if existing_user:
            print(f"L'utilisateur '{email}' existe déjà. Passage au rôle admin.")
            users_collection.update_one(
                {"email": email},
                {"$set": {"role": ADMIN_ROLE, "isActive": True, "updatedAt": utcnow()}}
            )
            print("Utilisateur mis à jour avec succès.")
            return

        print(f"Création de l'utilisateur admin '{email}'.")
        now = utcnow()
        users_collection.insert_one({
            "name": ADMIN_NAME,
            "email": email,
            "password": hash_password(password),
            "role": ADMIN_ROLE,
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        })
        print("Utilisateur admin créé avec succès.")
        print(f"Email: {email}")
        print(f"Mot de passe: {password}")

    except pymongo.errors.ConnectionFailure as e:
        print(f"Erreur de connexion à MongoDB : {e}")
        sys.exit(1)
    finally:
        if client:
            client.close()


if __name__ == "__main__":
    admin_email = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_ADMIN_EMAIL
    admin_password = sys.argv[2] if len(sys.argv) > 2 else DEFAULT_ADMIN_PASSWORD
    create_admin_user(admin_email, admin_password)
