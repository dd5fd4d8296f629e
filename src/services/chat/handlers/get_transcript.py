"""GET_TRANSCRIPT: turns of one call the caller may access."""

from src.models.chat_models import HandlerParams, HandlerResult
from src.services.chat.errors import ErrorMessages
from src.services.chat.handlers.base import (
    HandlerDeps,
    agent_name_for,
    fail_from,
    require_call_access,
)
from src.services.transcript_parser import format_transcript, parse_transcript


async def handle(params: HandlerParams, message: str, deps: HandlerDeps) -> HandlerResult:
    call_id = params.call_id
    if not call_id:
        return HandlerResult.fail(ErrorMessages.call_required())

    try:
        call = await require_call_access(call_id, params, deps)

        turns = await deps.repository.get_call_turns(call_id)
        transcript = None
        source = "turns"
        if not turns:
            transcript = await deps.repository.get_call_transcript(call_id)
            raw = (transcript and transcript.full_transcript) or call.full_transcript
            turns = parse_transcript(raw, call_id, call.agent_user_id)
            source = "parsed"

        agent_name = (transcript and transcript.agent_name) or await agent_name_for(
            deps, call.agent_user_id
        )

        return HandlerResult.ok(
            {
                "type": "transcript",
                "call_id": call_id,
                "agent_name": agent_name,
                "agent_user_id": call.agent_user_id,
                "call_date": (transcript and transcript.call_date) or call.call_date,
                "duration": (transcript and transcript.total_duration_formatted)
                or call.total_duration_formatted,
                "is_inbound": call.is_inbound_call,
                "talk_ratio": {
                    "agent": call.agent_talk_percentage,
                    "customer": call.customer_talk_percentage,
                },
                "total_turns": call.total_turns or len(turns),
                "turns": [t.model_dump() for t in turns],
                "transcript_text": format_transcript(turns),
                "source": source,
            }
        )
    except Exception as e:
        return fail_from(e, "fetch transcript")
