"""
Staff edits through claim_service.update_claim: required columns, estimate
recomputation and the audit entry every edit leaves.
"""
import pytest

from sanad import schemas
from sanad.core import exceptions
from sanad.crud import crud_timeline
from sanad.services import claim_service, lifecycle_service


class TestRequiredFields:

    @pytest.mark.parametrize("field", ["description", "company_name", "customer_name", "incident_date", "issue_type"])
    def test_clearing_a_required_field_is_rejected(self, db, flight_claim, field):
        before = crud_timeline.count_events(db, flight_claim.id)

        with pytest.raises(exceptions.ValidationError) as exc_info:
            claim_service.update_claim(db, flight_claim.id, schemas.ClaimUpdate(**{field: None}))

        assert exc_info.value.details["fields"] == [field]
        db.refresh(flight_claim)
        assert getattr(flight_claim, field) is not None
        assert crud_timeline.count_events(db, flight_claim.id) == before

    def test_blank_text_counts_as_empty(self, db, flight_claim):
        with pytest.raises(exceptions.ValidationError):
            claim_service.update_claim(db, flight_claim.id, schemas.ClaimUpdate(reference_number="   "))

    def test_optional_field_can_be_cleared(self, db, flight_claim):
        claim = claim_service.update_claim(db, flight_claim.id, schemas.ClaimUpdate(flight_to=None))
        assert claim.flight_to is None


class TestEditAudit:

    def test_delay_change_is_logged_with_the_new_estimate(self, db, flight_claim):
        before = crud_timeline.count_events(db, flight_claim.id)

        claim = claim_service.update_claim(db, flight_claim.id, schemas.ClaimUpdate(delay_hours=1))

        assert claim.eligibility_status == "not_eligible"
        events = crud_timeline.get_timeline_events(db, flight_claim.id)
        assert len(events) == before + 1
        assert events[0].event_type == "note"
        assert "delay_hours" in events[0].message
        assert "not_eligible" in events[0].message

    def test_one_event_names_every_edited_field(self, db, flight_claim):
        before = crud_timeline.count_events(db, flight_claim.id)

        claim_service.update_claim(
            db, flight_claim.id, schemas.ClaimUpdate(internal_notes="Called airline", flight_to="DMM")
        )

        events = crud_timeline.get_timeline_events(db, flight_claim.id)
        assert len(events) == before + 1
        assert events[0].message == "Claim details updated: flight_to, internal_notes."

    def test_unchanged_values_leave_no_event(self, db, flight_claim):
        before = crud_timeline.count_events(db, flight_claim.id)
        claim_service.update_claim(db, flight_claim.id, schemas.ClaimUpdate(company_name=flight_claim.company_name))
        assert crud_timeline.count_events(db, flight_claim.id) == before

    def test_status_only_edit_logs_just_the_status_change(self, db, flight_claim):
        claim_service.update_claim(db, flight_claim.id, schemas.ClaimUpdate(status="in_review"))
        assert [e.event_type for e in crud_timeline.get_timeline_events(db, flight_claim.id)] == [
            "status_change", "creation",
        ]

    def test_closed_claim_keeps_its_estimate(self, db, flight_claim):
        lifecycle_service.change_status(db, flight_claim.id, "rejected")

        claim = claim_service.update_claim(db, flight_claim.id, schemas.ClaimUpdate(delay_hours=1))

        assert claim.estimated_sdr_amount == 150
        assert "Estimate" not in crud_timeline.get_timeline_events(db, flight_claim.id)[0].message
