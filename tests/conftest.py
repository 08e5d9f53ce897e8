"""
Fixtures partagées : une base mongomock injectée à la place de MongoDB,
un TestClient FastAPI et des utilisateurs prêts à l'emploi pour chaque rôle.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from app_factory import create_app
from database import get_mongo_db
from dependencies import create_access_token, hash_password

PASSWORD = "secret123"


@dataclass
class Actor:
    id: str
    email: str
    role: str
    zone: Optional[str]
    token: str

    @property
    def oid(self) -> ObjectId:
        return ObjectId(self.id)

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture(scope="session")
def password_hash():
    return hash_password(PASSWORD)


@pytest.fixture
def db():
    return mongomock.MongoClient()["waste_management_test"]


@pytest.fixture
def app(db):
    application = create_app()
    application.dependency_overrides[get_mongo_db] = lambda: db
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(db, password_hash):
    counter = {"n": 0}

    def _make_user(role: str, zone: Optional[str] = None, is_active: bool = True, email: Optional[str] = None) -> Actor:
        counter["n"] += 1
        email = email or f"{role}{counter['n']}@waste.com"
        now = datetime.now(timezone.utc)
        user_id = db.users.insert_one({
            "name": f"{role.title()} {counter['n']}",
            "email": email,
            "password": password_hash,
            "role": role,
            "zone": zone,
            "isActive": is_active,
            "createdAt": now,
            "updatedAt": now,
        }).inserted_id
        token = create_access_token({"sub": str(user_id), "role": role})
        return Actor(id=str(user_id), email=email, role=role, zone=zone, token=token)

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user("admin", zone="Central")


@pytest.fixture
def collector_a(make_user):
    return make_user("collector", zone="Zone-A")


@pytest.fixture
def collector_b(make_user):
    return make_user("collector", zone="Zone-B")


@pytest.fixture
def resident(make_user):
    return make_user("resident", zone="Zone-A")


@pytest.fixture
def other_resident(make_user):
    return make_user("resident", zone="Zone-B")


@pytest.fixture
def make_collection(db):
    counter = {"n": 0}

    def _make_collection(resident: Actor, **fields) -> str:
        counter["n"] += 1
        created = datetime.now(timezone.utc) + timedelta(seconds=counter["n"])
        data = {
            "resident": resident.oid,
            "address": {"street": f"{counter['n']} Main Street", "city": "Nairobi"},
            "zone": "Zone-A",
            "wasteType": "general",
            "status": "pending",
            "priority": "medium",
            "createdAt": created,
            "updatedAt": created,
        }
        data.update(fields)
        return str(db.collections.insert_one(data).inserted_id)

    return _make_collection


@pytest.fixture
def make_report(db):
    counter = {"n": 0}

    def _make_report(reporter: Actor, **fields) -> str:
        counter["n"] += 1
        created = datetime.now(timezone.utc) + timedelta(seconds=counter["n"])
        data = {
            "reportedBy": reporter.oid,
            "type": "full-bin",
            "title": f"Report {counter['n']}",
            "description": "Bin overflowing",
            "zone": "Zone-A",
            "status": "open",
            "priority": "medium",
            "createdAt": created,
            "updatedAt": created,
        }
        data.update(fields)
        return str(db.reports.insert_one(data).inserted_id)

    return _make_report
