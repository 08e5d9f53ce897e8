"""
Cycle de vie des collectes et des signalements.

Collecte : pending -> assigned -> in-progress -> completed, avec `cancelled`
accessible depuis tout statut non terminal. On peut avancer de plusieurs
étapes d'un coup mais jamais revenir en arrière ni sortir d'un statut
terminal. Le passage à `completed` horodate `completedDate` si la requête
n'en fournit pas.

Signalement : tout statut énuméré est accepté. L'entrée en `resolved` ou
`closed` enregistre une seule fois `resolvedBy`/`resolvedDate`.
"""
from datetime import datetime
from typing import Optional

from bson import ObjectId

from exceptions import InvalidTransition, ValidationError
from schemas import CollectionStatus, ReportStatus

COLLECTION_FLOW = [
    CollectionStatus.pending.value,
    CollectionStatus.assigned.value,
    CollectionStatus.in_progress.value,
    CollectionStatus.completed.value,
]
COLLECTION_TERMINAL = {CollectionStatus.completed.value, CollectionStatus.cancelled.value}
# Statuts qui supposent un agent assigné
COLLECTION_STAFFED = {
    CollectionStatus.assigned.value,
    CollectionStatus.in_progress.value,
    CollectionStatus.completed.value,
}
REPORT_RESOLVED = {ReportStatus.resolved.value, ReportStatus.closed.value}


def can_transition(current: str, target: str) -> bool:
    if current == target:
        return True
    if current in COLLECTION_TERMINAL:
        return False
    if target == CollectionStatus.cancelled.value:
        return True
    return COLLECTION_FLOW.index(target) > COLLECTION_FLOW.index(current)


def check_collection_transition(current: str, target: str):
    if not can_transition(current, target):
        raise InvalidTransition(current, target)


def collection_changes(doc: dict, fields: dict, now: datetime) -> dict:
    """Calcule le $set à appliquer à une collecte à partir des champs déjà filtrés."""
    changes = dict(fields)
    completed_date = changes.pop("completedDate", None)
    if changes.get("status") is None:
        changes.pop("status", None)

    target = changes.get("status")
    if target is not None:
        check_collection_transition(doc["status"], target)
        if target == CollectionStatus.completed.value and target != doc["status"]:
            changes["completedDate"] = completed_date or now
    return changes


def check_staffed(doc: dict, changes: dict):
    """Une collecte au-delà de `pending` (hors annulation) doit garder un agent."""
    if "status" not in changes and "collector" not in changes:
        return
    status = changes.get("status", doc["status"])
    collector = changes["collector"] if "collector" in changes else doc.get("collector")
    if status in COLLECTION_STAFFED and collector is None:
        raise ValidationError(
            f"Un agent doit être assigné pour passer la collecte au statut '{status}'", fields=["collector"]
        )


def assignment_changes(doc: dict, collector_id: ObjectId) -> dict:
    """Assigner un agent fait passer la collecte au statut `assigned`."""
    target = CollectionStatus.assigned.value
    check_collection_transition(doc["status"], target)
    return {"collector": collector_id, "status": target}


def report_changes(doc: dict, fields: dict, actor_id: str, now: datetime) -> dict:
    changes = {key: value for key, value in fields.items() if value is not None or key == "resolution"}
    target: Optional[str] = changes.get("status")
    if target in REPORT_RESOLVED and not doc.get("resolvedBy"):
        changes["resolvedBy"] = ObjectId(actor_id)
        changes["resolvedDate"] = now
    return changes
