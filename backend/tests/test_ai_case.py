"""
Case agent orchestration tests: output normalization, the input hash cache
and failure recording.
"""
import pytest

from sanad import schemas
from sanad.core import exceptions
from sanad.crud import crud_timeline, crud_verification
from sanad.services import ai_case_service, llm_service
from sanad.services.ai_case_service import compute_input_hash, normalize_case_output

from conftest import FakeCaseAgent

CLAIM_DATA = {
    "airline": "Saudia",
    "flight_number": "SV123",
    "date": "2026-03-01",
    "from": "RUH",
    "to": "JED",
    "disruption_type": "delay",
    "delay_minutes": 420,
}


def case_request(claim_id, mode="analyze", evidence_text="Boarding pass attached.", airline_response_text=None):
    return schemas.AiCaseRequest(
        claim_id=claim_id,
        mode=mode,
        claim_data=CLAIM_DATA,
        evidence_text=evidence_text,
        airline_response_text=airline_response_text,
    )


class TestNormalization:

    def test_prefixed_keys(self):
        fields = normalize_case_output({"ai_summary": "s", "ai_case_strength": "strong", "ai_next_action": "n"})
        assert fields.summary == "s"
        assert fields.case_strength == "strong"
        assert fields.next_action == "n"

    def test_camel_case_keys(self):
        fields = normalize_case_output({
            "caseStrength": "Weak",
            "eligibilityReasoning": "Extraordinary circumstances.",
            "claimDraft": "Dear Saudia",
            "nextAction": "Stop here",
        })
        assert fields.case_strength == "weak"
        assert fields.eligibility_reasoning == "Extraordinary circumstances."
        assert fields.claim_draft == "Dear Saudia"
        assert fields.next_action == "Stop here"

    def test_arabic_case_strength(self):
        assert normalize_case_output({"case_strength": "متوسطة"}).case_strength == "medium"

    def test_unrecognized_case_strength_is_dropped(self):
        assert normalize_case_output({"case_strength": "excellent"}).case_strength is None

    def test_structured_value_is_kept_as_text(self):
        fields = normalize_case_output({"next_action": {"action": "escalate"}})
        assert fields.next_action == '{"action": "escalate"}'

    def test_missing_fields_are_none(self):
        assert normalize_case_output({}) == schemas.CaseAnalysisFields()


class TestInputHash:

    def test_hash_is_deterministic_and_key_order_independent(self):
        reordered = dict(reversed(list(CLAIM_DATA.items())))
        assert compute_input_hash(CLAIM_DATA, "e", None, "analyze") == compute_input_hash(reordered, "e", None, "analyze")

    @pytest.mark.parametrize("change", [
        {"mode": "draft"},
        {"evidence_text": "different"},
        {"airline_response_text": "We decline."},
        {"claim_data": {**CLAIM_DATA, "delay_minutes": 400}},
    ])
    def test_any_input_change_changes_the_hash(self, change):
        base = {"claim_data": CLAIM_DATA, "evidence_text": "e", "airline_response_text": None, "mode": "analyze"}
        assert compute_input_hash(**base) != compute_input_hash(**{**base, **change})


class TestRunCaseAgent:

    async def test_identical_request_is_served_from_cache(self, db, flight_claim):
        agent = FakeCaseAgent()

        first = await ai_case_service.run_case_agent(db, case_request(flight_claim.id), analyze=agent)
        second = await ai_case_service.run_case_agent(db, case_request(flight_claim.id), analyze=agent)

        assert first.cached is False
        assert second.cached is True
        assert len(agent.calls) == 1
        assert second.summary == first.summary == "Seven hour delay on SV123."
        assert second.case_strength == "strong"

    async def test_changed_evidence_misses_the_cache(self, db, flight_claim):
        agent = FakeCaseAgent()

        await ai_case_service.run_case_agent(db, case_request(flight_claim.id), analyze=agent)
        result = await ai_case_service.run_case_agent(
            db, case_request(flight_claim.id, evidence_text="Receipt for hotel."), analyze=agent
        )

        assert result.cached is False
        assert len(agent.calls) == 2

    async def test_changed_mode_misses_the_cache(self, db, flight_claim):
        agent = FakeCaseAgent()
        await ai_case_service.run_case_agent(db, case_request(flight_claim.id), analyze=agent)
        result = await ai_case_service.run_case_agent(db, case_request(flight_claim.id, mode="draft"), analyze=agent)
        assert result.cached is False
        assert [call[0] for call in agent.calls] == ["analyze", "draft"]

    async def test_draft_keeps_fields_it_does_not_produce(self, db, flight_claim):
        await ai_case_service.run_case_agent(db, case_request(flight_claim.id), analyze=FakeCaseAgent())
        draft_agent = FakeCaseAgent({"claimDraft": "Dear Saudia, ...", "nextAction": "Send by email"})

        result = await ai_case_service.run_case_agent(
            db, case_request(flight_claim.id, mode="draft"), analyze=draft_agent
        )

        assert result.claim_draft == "Dear Saudia, ..."
        assert result.next_action == "Send by email"
        assert result.summary == "Seven hour delay on SV123."
        assert result.case_strength == "strong"

    async def test_each_fresh_run_logs_one_ai_event(self, db, flight_claim):
        before = crud_timeline.count_events(db, flight_claim.id)
        agent = FakeCaseAgent()

        await ai_case_service.run_case_agent(db, case_request(flight_claim.id), analyze=agent)
        await ai_case_service.run_case_agent(db, case_request(flight_claim.id), analyze=agent)

        events = crud_timeline.get_timeline_events(db, flight_claim.id)
        assert len(events) == before + 1
        assert events[0].event_type == "ai_action"

    async def test_capability_failure_is_recorded_and_leaves_output_untouched(self, db, flight_claim):
        agent = FakeCaseAgent(error=exceptions.ExternalCapabilityError("ai", "rate limited"))

        with pytest.raises(exceptions.VerificationStepFailed) as exc_info:
            await ai_case_service.run_case_agent(db, case_request(flight_claim.id), analyze=agent)

        assert exc_info.value.step == "ai"
        assert crud_verification.get_ai_output(db, flight_claim.id) is None
        latest = crud_timeline.get_timeline_events(db, flight_claim.id)[0]
        assert latest.event_type == "ai_action"
        assert "failed" in latest.message

    async def test_failure_after_success_keeps_previous_output(self, db, flight_claim):
        await ai_case_service.run_case_agent(db, case_request(flight_claim.id), analyze=FakeCaseAgent())
        failing = FakeCaseAgent(error=exceptions.ExternalCapabilityError("ai", "timeout"))

        with pytest.raises(exceptions.VerificationStepFailed):
            await ai_case_service.run_case_agent(db, case_request(flight_claim.id, mode="draft"), analyze=failing)

        output = crud_verification.get_ai_output(db, flight_claim.id)
        assert output.last_mode == "analyze"
        assert output.summary == "Seven hour delay on SV123."

    async def test_unknown_claim(self, db):
        with pytest.raises(exceptions.NotFound):
            await ai_case_service.run_case_agent(db, case_request(999), analyze=FakeCaseAgent())

    async def test_default_agent_without_api_key_fails_cleanly(self, db, flight_claim):
        with pytest.raises(exceptions.VerificationStepFailed):
            await ai_case_service.run_case_agent(db, case_request(flight_claim.id))


class TestPrompts:

    def test_followup_prompt_includes_airline_response(self):
        prompts = llm_service.build_case_prompts(
            "followup", {"claim_data": CLAIM_DATA, "evidence_text": "", "airline_response_text": "We offer a voucher."}
        )
        assert "We offer a voucher." in prompts["system"]
        assert "ai_claim_draft" in prompts["user"]

    def test_analyze_prompt_omits_airline_response(self):
        prompts = llm_service.build_case_prompts(
            "analyze", {"claim_data": CLAIM_DATA, "evidence_text": "", "airline_response_text": "We offer a voucher."}
        )
        assert "We offer a voucher." not in prompts["system"]
        assert "420 minutes" in prompts["system"]
