import base64
import json
import logging
import re
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from sanad.core import exceptions
from sanad.core.config import settings

logger = logging.getLogger(__name__)
client: Optional[AsyncOpenAI] = None

# --- Initialize the OpenAI Client ---
# Automatic retries are off: a failed call is surfaced and retried only when staff ask again.
if settings.OPENAI_API_KEY:
    try:
        client = AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.EXTERNAL_CALL_TIMEOUT_SECONDS,
            max_retries=0,
        )
        logger.info("AsyncOpenAI client initialized.")
    except Exception as e:
        logger.error(f"Failed to initialize AsyncOpenAI client: {e}", exc_info=True)
else:
    logger.warning("OpenAI API key is not configured. AI, OCR and document checks will be unavailable.")

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Pulls the first {...} block out of a model reply. None when there is no parseable object."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


async def _call_llm_with_json_response(system_prompt: str, user_prompt: str, capability: str = "ai") -> str:
    """Makes a JSON-mode chat call and returns the raw message content."""
    if not client:
        raise exceptions.ExternalCapabilityError(capability, "OpenAI client is not initialized.")

    try:
        chat_completion = await client.chat.completions.create(
            model=settings.OPENAI_LLM_MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            max_tokens=2000,
            response_format={"type": "json_object"},
        )
        return chat_completion.choices[0].message.content or "{}"
    except Exception as e:
        logger.error(f"OpenAI chat call failed: {e}", exc_info=True)
        raise exceptions.ExternalCapabilityError(capability, f"AI call failed: {e}")


async def call_vision(prompt: str, image_bytes: bytes, mime_type: str, capability: str, max_tokens: int = 1000) -> str:
    """Sends one image plus instructions to the vision model and returns the raw reply text."""
    if not client:
        raise exceptions.ExternalCapabilityError(capability, "OpenAI client is not initialized.")

    encoded = base64.b64encode(image_bytes).decode("utf-8")
    try:
        response = await client.chat.completions.create(
            model=settings.OPENAI_VISION_MODEL,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{mime_type};base64,{encoded}", "detail": "high"},
                        },
                    ],
                }
            ],
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content or ""
    except Exception as e:
        logger.error(f"OpenAI vision call failed ({capability}): {e}", exc_info=True)
        raise exceptions.ExternalCapabilityError(capability, f"Vision call failed: {e}")


# --- Case agent ---

AGENT_PERSONA = """
You are "Sanad", a professional aviation claims agent acting on behalf of passengers.
You are not a chatbot. You analyze flight disruption cases, decide whether a claim is worth
pursuing, draft claim communications and manage follow-ups.
You do not guarantee success and you never invent regulations. If you assume a region or an
airline policy, say so. Be conservative: advise stopping early when a case is weak.
Write every free-text field in {language}.
"""

MODE_INSTRUCTIONS = {
    "analyze": """
Analyze this case and return a JSON object with exactly these keys:
- "ai_summary": a short summary of the case
- "ai_case_strength": one of "strong", "medium", "weak"
- "ai_eligibility_reasoning": why compensation is or is not likely owed
- "ai_next_action": the recommended next step
""",
    "draft": """
Draft a formal claim message to the airline that states the flight details, describes the
disruption factually, requests compensation, mentions the attached evidence and sets a polite
response deadline. Return a JSON object with exactly these keys:
- "ai_claim_draft": the full claim text
- "ai_next_action": the next step after sending the claim
""",
    "followup": """
Review the airline's response. Decide whether to accept, counter or escalate, and draft the
reply if one is needed. Return a JSON object with exactly these keys:
- "ai_summary": a summary of where the case stands
- "ai_claim_draft": the reply or follow-up text
- "ai_next_action": one of "accept", "counter", "escalate" with a one-line reason
""",
}


def build_case_prompts(mode: str, context: Dict[str, Any]) -> Dict[str, str]:
    claim = context.get("claim_data", {})
    lines = [
        AGENT_PERSONA.format(language=settings.AI_RESPONSE_LANGUAGE).strip(),
        "",
        "Case details:",
        f"- Airline: {claim.get('airline')}",
        f"- Flight number: {claim.get('flight_number')}",
        f"- Date: {claim.get('date')}",
        f"- From: {claim.get('from')}",
        f"- To: {claim.get('to')}",
        f"- Disruption type: {claim.get('disruption_type')}",
    ]
    if claim.get("delay_minutes"):
        lines.append(f"- Delay: {claim['delay_minutes']} minutes")
    if claim.get("reason_text"):
        lines.append(f"- Reason given: {claim['reason_text']}")
    lines += ["", "Available evidence:", context.get("evidence_text") or "No textual evidence provided."]
    if mode == "followup":
        lines += ["", "Airline response:", context.get("airline_response_text") or "No response received."]
    return {"system": "\n".join(lines), "user": MODE_INSTRUCTIONS[mode].strip()}


async def run_case_analysis(mode: str, context: Dict[str, Any]) -> Dict[str, Any]:
    """
    Runs the case agent in one of its modes and returns the raw JSON dict.
    A reply that is not a JSON object is kept as the summary text.
    """
    if mode not in MODE_INSTRUCTIONS:
        raise exceptions.ValidationError(f"Unknown agent mode '{mode}'.")
    logger.info(f"AI case agent: running '{mode}'.")
    prompts = build_case_prompts(mode, context)
    content = await _call_llm_with_json_response(prompts["system"], prompts["user"], capability="ai")
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        logger.warning("AI case agent returned non-JSON content; keeping it as the summary.")
        return {"summary": content}
    return parsed if isinstance(parsed, dict) else {"summary": content}
