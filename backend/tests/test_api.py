"""
HTTP surface tests: routing, the staff gate and how domain errors map to
status codes.
"""
import re

from conftest import CLAIMANT_PHONE, claim_payload


def create_claim(client, **overrides):
    response = client.post("/api/claims/", json=claim_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


class TestPublicRoutes:

    def test_create_claim_returns_code_and_estimate(self, client):
        body = create_claim(client)

        assert re.match(r"^SAN-\d{4}-\d{5}$", body["claim_code"])
        assert body["status"] == "new"
        assert body["estimate"]["status"] == "eligible"
        assert body["estimate"]["sdr_amount"] == 150
        assert body["estimate"]["local_amount"] == 765

    def test_issue_type_must_match_category(self, client):
        response = client.post("/api/claims/", json=claim_payload(category="delivery", issue_type="delay"))
        assert response.status_code == 422

    def test_invalid_phone_is_rejected(self, client):
        response = client.post("/api/claims/", json=claim_payload(customer_phone="12ab"))
        assert response.status_code == 422

    def test_track_claim(self, client):
        body = create_claim(client)

        response = client.get(f"/api/claims/track/{body['claim_code']}", params={"phone": CLAIMANT_PHONE})

        assert response.status_code == 200
        data = response.json()
        assert data["claim"]["claim_code"] == body["claim_code"]
        assert "internal_notes" not in data["claim"]
        assert data["timeline"][0]["event_type"] == "creation"

    def test_track_with_wrong_phone_is_not_found(self, client):
        body = create_claim(client)
        response = client.get(f"/api/claims/track/{body['claim_code']}", params={"phone": "0559999999"})
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_history(self, client):
        body = create_claim(client)
        create_claim(client, issue_type="cancel", delay_hours=None)

        response = client.get(f"/api/claims/history/{CLAIMANT_PHONE}", params={"verify_claim_code": body["claim_code"]})

        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_history_without_code_is_unauthorized(self, client):
        response = client.get(f"/api/claims/history/{CLAIMANT_PHONE}")
        assert response.status_code == 401

    def test_history_with_someone_elses_code_is_forbidden(self, client):
        other = create_claim(client, customer_phone="0559999999")

        response = client.get(f"/api/claims/history/{CLAIMANT_PHONE}", params={"verify_claim_code": other["claim_code"]})

        assert response.status_code == 403
        assert response.json()["code"] == "unauthorized"

    def test_upload_attachment(self, client, blob_store):
        body = create_claim(client)

        response = client.post(
            f"/api/claims/{body['id']}/attachments",
            files={"file": ("receipt.png", b"png-bytes", "image/png")},
        )

        assert response.status_code == 201
        assert response.json()["file_name"] == "receipt.png"
        assert list(blob_store.blobs.values()) == [b"png-bytes"]

    def test_eligibility_check(self, client):
        response = client.post("/api/eligibility/check", json={"issue_type": "delay", "delay_hours": 4})
        assert response.status_code == 200
        assert response.json()["sdr_amount"] == 50
        assert response.json()["local_amount"] == 255


class TestStaffGate:

    def test_missing_token(self, client):
        response = client.get("/api/claims/")
        assert response.status_code == 401
        assert response.json()["code"] == "unauthorized"

    def test_wrong_token(self, client):
        response = client.get("/api/claims/", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_valid_token(self, client, staff_headers):
        create_claim(client)
        response = client.get("/api/claims/", headers=staff_headers)
        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_verification_routes_are_gated(self, client):
        body = create_claim(client)
        assert client.post(f"/api/claims/{body['id']}/verify-flight").status_code == 401
        assert client.post("/api/ai/flight-agent", json={}).status_code == 401


class TestStaffRoutes:

    def test_claim_detail(self, client, staff_headers):
        body = create_claim(client)

        response = client.get(f"/api/claims/{body['id']}", headers=staff_headers)

        assert response.status_code == 200
        detail = response.json()
        assert detail["estimate"]["local_amount"] == 765
        assert "in_review" in detail["allowed_transitions"]
        assert detail["flight_verification"] is None

    def test_unknown_claim_is_404(self, client, staff_headers):
        assert client.get("/api/claims/999", headers=staff_headers).status_code == 404

    def test_list_filters(self, client, staff_headers):
        create_claim(client)
        create_claim(client, category="delivery", issue_type="damaged", delay_hours=None, company_name="FastShip")

        by_category = client.get("/api/claims/", params={"category": "delivery"}, headers=staff_headers).json()
        by_search = client.get("/api/claims/", params={"search": "fastship"}, headers=staff_headers).json()

        assert [c["company_name"] for c in by_category] == ["FastShip"]
        assert [c["company_name"] for c in by_search] == ["FastShip"]

    def test_status_change_and_invalid_transition(self, client, staff_headers):
        body = create_claim(client)
        url = f"/api/claims/{body['id']}/status"

        ok = client.post(url, json={"status": "in_review"}, headers=staff_headers)
        bad = client.post(url, json={"status": "resolved"}, headers=staff_headers)

        assert ok.status_code == 200
        assert ok.json()["status"] == "in_review"
        assert bad.status_code == 409
        assert bad.json()["code"] == "invalid_transition"

    def test_patch_routes_status_through_state_machine(self, client, staff_headers):
        body = create_claim(client)
        response = client.patch(
            f"/api/claims/{body['id']}", json={"status": "approved", "internal_notes": "x"}, headers=staff_headers
        )
        assert response.status_code == 409

    def test_patch_cannot_null_a_required_field(self, client, staff_headers):
        body = create_claim(client)

        response = client.patch(f"/api/claims/{body['id']}", json={"description": None}, headers=staff_headers)

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"
        assert response.json()["details"]["fields"] == ["description"]

    def test_patch_rejects_empty_company_name(self, client, staff_headers):
        body = create_claim(client)
        response = client.patch(f"/api/claims/{body['id']}", json={"company_name": ""}, headers=staff_headers)
        assert response.status_code == 422

    def test_patch_recomputes_estimate(self, client, staff_headers):
        body = create_claim(client)
        response = client.patch(f"/api/claims/{body['id']}", json={"delay_hours": 4}, headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["estimated_sdr_amount"] == 50

    def test_settlement_then_duplicate(self, client, staff_headers):
        body = create_claim(client)
        url = f"/api/claims/{body['id']}/settlement"
        payload = {"compensation_type": "cash", "compensation_amount": 765, "fee_percent": 20}

        first = client.post(url, json=payload, headers=staff_headers)
        second = client.post(url, json=payload, headers=staff_headers)

        assert first.status_code == 201
        assert first.json()["user_net"] == 612
        assert second.status_code == 409
        assert second.json()["code"] == "conflict"

    def test_manual_note_and_communications(self, client, staff_headers):
        body = create_claim(client)
        base = f"/api/claims/{body['id']}"

        note = client.post(f"{base}/timeline", json={"message": "Called the customer"}, headers=staff_headers)
        comm = client.post(
            f"{base}/communications", json={"method": "email", "recipient": "claims@saudia.com"}, headers=staff_headers
        )
        reply = client.patch(
            f"{base}/communications/{comm.json()['id']}",
            json={"company_response": "We will pay 765 SAR."},
            headers=staff_headers,
        )

        assert note.status_code == 201
        assert comm.status_code == 201
        assert reply.json()["company_response"] == "We will pay 765 SAR."
        events = client.get(base, headers=staff_headers).json()["timeline_events"]
        assert [e["event_type"] for e in events[:3]] == ["company_response", "communication", "note"]

    def test_boarding_pass_on_delivery_claim(self, client, staff_headers):
        body = create_claim(client, category="delivery", issue_type="damaged", delay_hours=None)

        response = client.post(
            f"/api/claims/{body['id']}/boarding-pass",
            files={"file": ("bp.jpg", b"jpg-bytes", "image/jpeg")},
            headers=staff_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_category"
        assert client.get(f"/api/claims/{body['id']}/verification", headers=staff_headers).json() is None

    def test_boarding_pass_without_ocr_provider_reports_failed_step(self, client, staff_headers):
        body = create_claim(client)

        response = client.post(
            f"/api/claims/{body['id']}/boarding-pass",
            files={"file": ("bp.jpg", b"jpg-bytes", "image/jpeg")},
            headers=staff_headers,
        )

        assert response.status_code == 502
        assert response.json()["code"] == "verification_step_failed"
        assert response.json()["details"]["step"] == "ocr"

    def test_verify_flight_before_boarding_pass(self, client, staff_headers):
        body = create_claim(client)
        response = client.post(f"/api/claims/{body['id']}/verify-flight", headers=staff_headers)
        assert response.status_code == 409
        assert response.json()["code"] == "missing_prerequisite"


class TestAdminRoutes:

    def test_conversion_rate_round_trip(self, client, staff_headers):
        assert client.get("/api/admin/settings/", headers=staff_headers).json()["sdr_to_sar"] == 5.1

        response = client.put("/api/admin/settings/", json={"sdr_to_sar": 4.0}, headers=staff_headers)

        assert response.status_code == 200
        assert client.get("/api/admin/settings/", headers=staff_headers).json()["sdr_to_sar"] == 4.0

    def test_conversion_rate_must_be_positive(self, client, staff_headers):
        response = client.put("/api/admin/settings/", json={"sdr_to_sar": 0}, headers=staff_headers)
        assert response.status_code == 422

    def test_analytics_summary(self, client, staff_headers):
        first = create_claim(client)
        create_claim(client, category="delivery", issue_type="damaged", delay_hours=None)
        client.post(
            f"/api/claims/{first['id']}/settlement",
            json={"compensation_type": "cash", "compensation_amount": 1000, "fee_percent": 10},
            headers=staff_headers,
        )

        summary = client.get("/api/admin/analytics/summary", headers=staff_headers).json()

        assert summary["total_claims"] == 2
        assert summary["status_counts"] == {"resolved": 1, "new": 1}
        assert summary["category_counts"] == {"flight": 1, "delivery": 1}
        assert summary["total_compensation_amount"] == 1000
        assert summary["total_user_net"] == 900
