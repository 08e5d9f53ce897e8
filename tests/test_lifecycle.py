from datetime import datetime, timezone

import pytest
from bson import ObjectId

from exceptions import InvalidTransition, ValidationError
from lifecycle import assignment_changes, can_transition, check_staffed, collection_changes, report_changes

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestCollectionTransitions:

    @pytest.mark.parametrize("current,target", [
        ("pending", "assigned"),
        ("assigned", "in-progress"),
        ("in-progress", "completed"),
        ("pending", "in-progress"),
        ("pending", "cancelled"),
        ("assigned", "cancelled"),
        ("in-progress", "cancelled"),
        ("completed", "completed"),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        ("completed", "pending"),
        ("completed", "cancelled"),
        ("cancelled", "pending"),
        ("cancelled", "assigned"),
        ("in-progress", "assigned"),
        ("assigned", "pending"),
    ])
    def test_rejected(self, current, target):
        assert not can_transition(current, target)

    def test_leaving_terminal_state_raises(self):
        with pytest.raises(InvalidTransition) as exc_info:
            collection_changes({"status": "cancelled"}, {"status": "in-progress"}, NOW)
        assert exc_info.value.current == "cancelled"
        assert exc_info.value.target == "in-progress"


class TestCompletedDate:

    def test_completion_stamps_current_time(self):
        changes = collection_changes({"status": "in-progress"}, {"status": "completed"}, NOW)
        assert changes == {"status": "completed", "completedDate": NOW}

    def test_explicit_completed_date_is_kept(self):
        explicit = datetime(2024, 5, 30, 8, 0, tzinfo=timezone.utc)
        changes = collection_changes(
            {"status": "in-progress"}, {"status": "completed", "completedDate": explicit}, NOW
        )
        assert changes["completedDate"] == explicit

    def test_completed_date_ignored_without_completion(self):
        changes = collection_changes({"status": "pending"}, {"notes": "x", "completedDate": NOW}, NOW)
        assert changes == {"notes": "x"}

    def test_null_status_is_dropped(self):
        assert collection_changes({"status": "pending"}, {"status": None, "description": "d"}, NOW) == {
            "description": "d"
        }


class TestStaffing:

    @pytest.mark.parametrize("status", ["assigned", "in-progress", "completed"])
    def test_unstaffed_move_rejected(self, status):
        with pytest.raises(ValidationError) as exc_info:
            check_staffed({"status": "pending"}, {"status": status})
        assert exc_info.value.fields == ["collector"]

    def test_collector_in_same_update(self):
        check_staffed({"status": "pending"}, {"status": "in-progress", "collector": ObjectId()})

    def test_existing_collector_kept(self):
        check_staffed({"status": "assigned", "collector": ObjectId()}, {"status": "completed"})

    def test_clearing_collector_of_assigned_collection(self):
        with pytest.raises(ValidationError):
            check_staffed({"status": "assigned", "collector": ObjectId()}, {"collector": None})

    def test_cancel_and_notes_need_no_collector(self):
        check_staffed({"status": "pending"}, {"status": "cancelled"})
        check_staffed({"status": "in-progress"}, {"notes": "x"})


class TestAssignment:

    def test_assignment_sets_collector_and_status(self):
        collector = ObjectId()
        assert assignment_changes({"status": "pending"}, collector) == {"collector": collector, "status": "assigned"}

    def test_reassignment_of_assigned_collection(self):
        assert assignment_changes({"status": "assigned"}, ObjectId())["status"] == "assigned"

    def test_cannot_assign_completed_collection(self):
        with pytest.raises(InvalidTransition):
            assignment_changes({"status": "completed"}, ObjectId())


class TestReportResolution:

    def test_resolution_stamps_resolver(self):
        actor = str(ObjectId())
        changes = report_changes({"status": "open"}, {"status": "resolved"}, actor, NOW)
        assert changes["resolvedBy"] == ObjectId(actor)
        assert changes["resolvedDate"] == NOW

    def test_closing_also_stamps(self):
        changes = report_changes({"status": "in-progress"}, {"status": "closed"}, str(ObjectId()), NOW)
        assert "resolvedBy" in changes

    def test_stamp_is_set_once(self):
        first = ObjectId()
        doc = {"status": "resolved", "resolvedBy": first, "resolvedDate": NOW}
        changes = report_changes(doc, {"status": "closed"}, str(ObjectId()), NOW)
        assert changes == {"status": "closed"}

    def test_reopening_does_not_clear_stamp(self):
        doc = {"status": "resolved", "resolvedBy": ObjectId(), "resolvedDate": NOW}
        changes = report_changes(doc, {"status": "open"}, str(ObjectId()), NOW)
        assert changes == {"status": "open"}

    def test_any_enumerated_status_accepted(self):
        changes = report_changes({"status": "closed"}, {"status": "in-progress"}, str(ObjectId()), NOW)
        assert changes == {"status": "in-progress"}
