"""Moteur de politique d'accès : filtres de liste, autorisations, champs modifiables."""
import pytest
from bson import ObjectId

from exceptions import Forbidden, ValidationError
from policy import (
    COLLECTION,
    REPORT,
    authorize,
    build_list_query,
    filter_update,
    resolve_assignment_target,
    visibility_filter,
)
from schemas import User


def identity(role, zone=None):
    return User(id=str(ObjectId()), name=role, email=f"{role}@waste.com", role=role, zone=zone)


class TestVisibilityFilter:

    def test_admin_sees_everything(self):
        assert visibility_filter(COLLECTION, identity("admin")) == {}
        assert visibility_filter(REPORT, identity("admin")) == {}

    def test_resident_limited_to_owned_records(self):
        user = identity("resident")
        assert visibility_filter(COLLECTION, user) == {"resident": ObjectId(user.id)}
        assert visibility_filter(REPORT, user) == {"reportedBy": ObjectId(user.id)}

    def test_collector_with_zone_sees_assigned_or_pending_in_zone(self):
        user = identity("collector", zone="Zone-A")
        assert visibility_filter(COLLECTION, user) == {
            "$or": [{"collector": ObjectId(user.id)}, {"status": "pending", "zone": "Zone-A"}]
        }

    def test_collector_without_zone_sees_all_pending(self):
        user = identity("collector")
        assert visibility_filter(COLLECTION, user) == {
            "$or": [{"collector": ObjectId(user.id)}, {"status": "pending"}]
        }

    def test_collector_reports_use_zone_membership(self):
        user = identity("collector", zone="Zone-B")
        assert visibility_filter(REPORT, user) == {
            "$or": [{"reportedBy": ObjectId(user.id)}, {"zone": "Zone-B"}]
        }

    def test_collector_without_zone_sees_every_report(self):
        assert visibility_filter(REPORT, identity("collector")) == {}


class TestBuildListQuery:

    def test_extra_filters_are_anded_with_role_filter(self):
        user = identity("resident")
        query = build_list_query(COLLECTION, user, {"status": "pending", "wasteType": "organic"})
        assert query == {"$and": [{"resident": ObjectId(user.id)}, {"status": "pending", "wasteType": "organic"}]}

    def test_zone_filter_is_admin_only(self):
        assert build_list_query(COLLECTION, identity("admin"), {"zone": "Zone-B"}) == {"zone": "Zone-B"}
        resident = identity("resident")
        assert build_list_query(COLLECTION, resident, {"zone": "Zone-B"}) == {"resident": ObjectId(resident.id)}

    def test_report_filters_use_type_not_waste_type(self):
        query = build_list_query(REPORT, identity("admin"), {"type": "full-bin", "wasteType": "organic"})
        assert query == {"type": "full-bin"}

    def test_empty_values_are_ignored(self):
        assert build_list_query(COLLECTION, identity("admin"), {"status": None, "priority": ""}) == {}


class TestAuthorize:

    def test_resident_cannot_touch_someone_elses_record(self):
        user = identity("resident")
        doc = {"resident": ObjectId(), "status": "pending"}
        for operation in ("read", "update", "delete"):
            with pytest.raises(Forbidden):
                authorize(COLLECTION, operation, user, doc)

    def test_resident_owner_is_allowed(self):
        user = identity("resident")
        authorize(COLLECTION, "delete", user, {"resident": ObjectId(user.id)})
        authorize(REPORT, "read", user, {"reportedBy": ObjectId(user.id)})

    def test_collector_blocked_by_other_assignment(self):
        user = identity("collector", zone="Zone-A")
        with pytest.raises(Forbidden):
            authorize(COLLECTION, "read", user, {"resident": ObjectId(), "collector": ObjectId()})

    def test_collector_allowed_when_unassigned_or_self(self):
        user = identity("collector", zone="Zone-A")
        authorize(COLLECTION, "read", user, {"resident": ObjectId(), "collector": None})
        authorize(COLLECTION, "update", user, {"resident": ObjectId(), "collector": ObjectId(user.id)})

    def test_collector_handles_populated_reference(self):
        user = identity("collector")
        authorize(COLLECTION, "read", user, {"collector": {"_id": ObjectId(user.id), "name": "me"}})

    def test_collector_never_deletes(self):
        user = identity("collector")
        with pytest.raises(Forbidden):
            authorize(COLLECTION, "delete", user, {"collector": ObjectId(user.id)})

    def test_admin_is_always_allowed(self):
        authorize(REPORT, "delete", identity("admin"), {"reportedBy": ObjectId()})

    def test_denial_does_not_modify_record(self):
        doc = {"resident": ObjectId(), "status": "pending"}
        snapshot = dict(doc)
        with pytest.raises(Forbidden):
            authorize(COLLECTION, "update", identity("resident"), doc)
        assert doc == snapshot


class TestMutationFields:

    def test_resident_may_only_set_description(self):
        user = identity("resident")
        doc = {"resident": ObjectId(user.id), "status": "pending"}
        payload = {"description": "new", "status": "completed", "collector": str(ObjectId()), "notes": "x"}
        assert filter_update(COLLECTION, user, doc, payload) == {"description": "new"}

    def test_resident_rejected_once_collection_left_pending(self):
        user = identity("resident")
        doc = {"resident": ObjectId(user.id), "status": "assigned"}
        with pytest.raises(ValidationError):
            filter_update(COLLECTION, user, doc, {})

    def test_staff_fields_for_collection(self):
        payload = {"status": "assigned", "notes": "ok", "scheduledDate": None, "resident": "ignored"}
        fields = filter_update(COLLECTION, identity("collector"), {"status": "pending"}, payload)
        assert fields == {"status": "assigned", "notes": "ok", "scheduledDate": None}

    def test_report_fields(self):
        payload = {"status": "resolved", "priority": "high", "resolution": "done", "title": "nope"}
        assert filter_update(REPORT, identity("admin"), {}, payload) == {
            "status": "resolved", "priority": "high", "resolution": "done",
        }
        user = identity("resident")
        assert filter_update(REPORT, user, {"reportedBy": ObjectId(user.id)}, payload) == {}


class TestAssignmentTarget:

    def test_collector_assigns_self(self):
        user = identity("collector")
        assert resolve_assignment_target(user, str(ObjectId())) == user.id

    def test_admin_requires_explicit_target(self):
        target = str(ObjectId())
        assert resolve_assignment_target(identity("admin"), target) == target
        with pytest.raises(ValidationError):
            resolve_assignment_target(identity("admin"), None)

    def test_resident_cannot_assign(self):
        with pytest.raises(Forbidden):
            resolve_assignment_target(identity("resident"), str(ObjectId()))
