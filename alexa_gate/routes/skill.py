"""
Example downstream handler for verified skill requests.

Parsing the platform payload into typed models and building rich responses
belongs to the skill itself; this route only proves the verified body arrives
intact and re-readable.
"""

from fastapi import APIRouter, Request

from alexa_gate.infrastructure.observability.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/alexa")
async def skill_webhook(request: Request):
    raw = await request.body()
    verified = getattr(request.state, "alexa_verification", None)

    try:
        payload = await request.json()
    except ValueError:
        payload = {}

    request_type = (payload.get("request") or {}).get("type") if isinstance(payload, dict) else None
    logger.info(
        "Verified skill request received",
        request_type=request_type,
        body_bytes=len(raw),
        body_matches_verified=verified is not None and verified.body == raw,
    )

    return {
        "version": "1.0",
        "response": {
            "outputSpeech": {"type": "PlainText", "text": "Request verified."},
            "shouldEndSession": True,
        },
        "sessionAttributes": {},
    }
