"""
Moteur de politique d'accès.

Pour un acteur (identité résolue par le token) et un type d'entité
("collection" ou "report"), ce module décide :
- le filtre de visibilité appliqué aux listes ;
- si une opération sur un document précis est autorisée ;
- la liste des champs qu'un rôle peut modifier.

Aucune fonction ici n'écrit en base : un refus lève Forbidden sans effet de bord.
"""
from typing import Dict, FrozenSet, Optional

from bson import ObjectId

from exceptions import Forbidden, ValidationError
from schemas import CollectionStatus, User, UserRole

COLLECTION = "collection"
REPORT = "report"

# Champ "propriétaire" de chaque entité
OWNER_FIELD = {
    COLLECTION: "resident",
    REPORT: "reportedBy",
}

# Champ d'assignation (non propriétaire); les signalements n'en ont pas
ASSIGNMENT_FIELD = {
    COLLECTION: "collector",
    REPORT: None,
}

# Filtres d'égalité acceptés en plus du filtre de rôle (zone: admin uniquement)
LIST_FILTERS = {
    COLLECTION: ("status", "wasteType", "priority"),
    REPORT: ("status", "type", "priority"),
}

_STAFF_COLLECTION_FIELDS = frozenset(
    {"collector", "status", "scheduledDate", "completedDate", "notes", "description"}
)
_STAFF_REPORT_FIELDS = frozenset({"status", "priority", "resolution"})

# Table des permissions de modification : (entité, rôle) -> champs autorisés
MUTATION_FIELDS: Dict[str, Dict[str, FrozenSet[str]]] = {
    COLLECTION: {
        UserRole.admin.value: _STAFF_COLLECTION_FIELDS,
        UserRole.collector.value: _STAFF_COLLECTION_FIELDS,
        UserRole.resident.value: frozenset({"description"}),
    },
    REPORT: {
        UserRole.admin.value: _STAFF_REPORT_FIELDS,
        UserRole.collector.value: _STAFF_REPORT_FIELDS,
        UserRole.resident.value: frozenset(),
    },
}


def _role(user: User) -> str:
    return getattr(user.role, "value", user.role)


def _same_id(ref, user_id: str) -> bool:
    if isinstance(ref, dict):
        ref = ref.get("_id")
    return ref is not None and str(ref) == user_id


def visibility_filter(entity: str, user: User) -> dict:
    """Filtre MongoDB limitant une liste aux documents visibles par l'acteur."""
    role = _role(user)
    if role == UserRole.admin.value:
        return {}

    user_oid = ObjectId(user.id)
    if role == UserRole.resident.value:
        return {OWNER_FIELD[entity]: user_oid}

    # Agent de collecte
    if entity == COLLECTION:
        # Collectes assignées OU collectes en attente de sa zone (toutes les zones s'il n'en a pas)
        pending = {"status": CollectionStatus.pending.value}
        if user.zone:
            pending["zone"] = user.zone
        return {"$or": [{"collector": user_oid}, pending]}

    # Signalements déposés par l'agent OU signalements de sa zone (toutes les zones s'il n'en a pas)
    if not user.zone:
        return {}
    return {"$or": [{"reportedBy": user_oid}, {"zone": user.zone}]}


def build_list_query(entity: str, user: User, params: dict) -> dict:
    """Combine le filtre de rôle et les filtres d'égalité de la requête (ET logique)."""
    query = visibility_filter(entity, user)
    extra = {key: params[key] for key in LIST_FILTERS[entity] if params.get(key)}
    if params.get("zone") and _role(user) == UserRole.admin.value:
        extra["zone"] = params["zone"]

    if not extra:
        return query
    if not query:
        return extra
    return {"$and": [query, extra]}


def authorize(entity: str, operation: str, user: User, doc: dict):
    """
    Vérifie qu'une opération ("read", "update", "delete") est permise sur `doc`.
    Lève Forbidden sinon.
    """
    role = _role(user)
    if role == UserRole.admin.value:
        return

    label = "cette collecte" if entity == COLLECTION else "ce signalement"
    if role == UserRole.resident.value:
        if not _same_id(doc.get(OWNER_FIELD[entity]), user.id):
            raise Forbidden(f"Accès non autorisé à {label}")
        return

    # Agent de collecte : jamais de suppression
    if operation == "delete":
        raise Forbidden(f"Non autorisé à supprimer {label}")

    assignment = ASSIGNMENT_FIELD[entity]
    if assignment and doc.get(assignment) is not None and not _same_id(doc[assignment], user.id):
        raise Forbidden(f"Accès non autorisé à {label}")


def permitted_fields(entity: str, user: User, doc: dict) -> FrozenSet[str]:
    """Champs modifiables par l'acteur sur ce document."""
    role = _role(user)
    if (
        entity == COLLECTION
        and role == UserRole.resident.value
        and doc.get("status") != CollectionStatus.pending.value
    ):
        raise ValidationError("Impossible de modifier une collecte une fois assignée", fields=["status"])
    return MUTATION_FIELDS[entity][role]


def filter_update(entity: str, user: User, doc: dict, payload: dict) -> dict:
    """Ne garde du corps de requête que les champs autorisés; les autres sont ignorés."""
    allowed = permitted_fields(entity, user, doc)
    return {key: value for key, value in payload.items() if key in allowed}


def resolve_assignment_target(user: User, collector_id: Optional[str]) -> str:
    """Un agent s'assigne lui-même; un admin doit désigner explicitement l'agent."""
    role = _role(user)
    if role == UserRole.collector.value:
        return user.id
    if role == UserRole.admin.value:
        if not collector_id:
            raise ValidationError("L'identifiant de l'agent (collectorId) est requis", fields=["collectorId"])
        return collector_id
    raise Forbidden("Seuls les admins et les agents peuvent assigner une collecte")
