"""Statistiques globales (admin) calculées à partir des collections MongoDB.

Chaque compteur est une requête séparée : l'instantané n'est pas
transactionnel et une écriture concurrente peut le rendre légèrement
incohérent.
"""
from pymongo import DESCENDING
from pymongo.database import Database

from schemas import CollectionStatus, ReportStatus, UserRole
from utils.mongo import NAME_FIELDS, populate_collection

RECENT_COLLECTIONS_LIMIT = 5


def _group_count(collection, field: str):
    pipeline = [
        {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
        {"$sort": {"count": -1, "_id": 1}},
    ]
    return list(collection.aggregate(pipeline))


def _count_by(collection, field: str, values) -> dict:
    return {value: collection.count_documents({field: value}) for value in values}


def collect_statistics(db: Database) -> dict:
    """Document complet de statistiques pour le tableau de bord admin."""
    users_by_role = _count_by(db.users, "role", [role.value for role in UserRole])
    collections_by_status = _count_by(db.collections, "status", [s.value for s in CollectionStatus])
    reports_by_status = _count_by(db.reports, "status", [s.value for s in ReportStatus])

    recent = db.collections.find().sort("createdAt", DESCENDING).limit(RECENT_COLLECTIONS_LIMIT)
    recent_collections = [
        populate_collection(db, doc, resident_fields=NAME_FIELDS, collector_fields=NAME_FIELDS)
        for doc in recent
    ]

    return {
        "users": {
            "total": db.users.count_documents({}),
            "admins": users_by_role[UserRole.admin.value],
            "collectors": users_by_role[UserRole.collector.value],
            "residents": users_by_role[UserRole.resident.value],
        },
        "collections": {
            "total": db.collections.count_documents({}),
            "pending": collections_by_status[CollectionStatus.pending.value],
            "assigned": collections_by_status[CollectionStatus.assigned.value],
            "inProgress": collections_by_status[CollectionStatus.in_progress.value],
            "completed": collections_by_status[CollectionStatus.completed.value],
            "cancelled": collections_by_status[CollectionStatus.cancelled.value],
            "byType": _group_count(db.collections, "wasteType"),
            "byZone": _group_count(db.collections, "zone"),
        },
        "reports": {
            "total": db.reports.count_documents({}),
            "open": reports_by_status[ReportStatus.open.value],
            "inProgress": reports_by_status[ReportStatus.in_progress.value],
            "resolved": reports_by_status[ReportStatus.resolved.value],
            "closed": reports_by_status[ReportStatus.closed.value],
            "byType": _group_count(db.reports, "type"),
        },
        "recentCollections": recent_collections,
    }


def collect_admin_statistics(db: Database) -> dict:
    """Compteurs à plat utilisés par la page d'administration des utilisateurs."""
    users_by_role = _count_by(db.users, "role", [role.value for role in UserRole])
    collections_by_status = _count_by(db.collections, "status", [s.value for s in CollectionStatus])
    reports_by_status = _count_by(db.reports, "status", [s.value for s in ReportStatus])

    return {
        "totalUsers": db.users.count_documents({}),
        "adminUsers": users_by_role[UserRole.admin.value],
        "collectorUsers": users_by_role[UserRole.collector.value],
        "residentUsers": users_by_role[UserRole.resident.value],
        "totalCollections": db.collections.count_documents({}),
        "pendingCollections": collections_by_status[CollectionStatus.pending.value],
        "assignedCollections": collections_by_status[CollectionStatus.assigned.value],
        "inProgressCollections": collections_by_status[CollectionStatus.in_progress.value],
        "completedCollections": collections_by_status[CollectionStatus.completed.value],
        "totalReports": db.reports.count_documents({}),
        "openReports": reports_by_status[ReportStatus.open.value],
        "inProgressReports": reports_by_status[ReportStatus.in_progress.value],
        "resolvedReports": reports_by_status[ReportStatus.resolved.value],
        "closedReports": reports_by_status[ReportStatus.closed.value],
    }
