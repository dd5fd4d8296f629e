"""COACHING: rubric-based coaching analysis of one call."""

import json

import logfire

from src.constants import (
    ANALYSIS_MAX_TOKENS,
    COACHING_SUMMARY_MAX_TOKENS,
    PROSE_TEMPERATURE,
)
from src.models.call_models import CallMetadata, CallTranscript
from src.models.chat_models import HandlerParams, HandlerResult
from src.models.coaching_models import CoachingAnalysis
from src.services.chat.errors import (
    AnalysisServiceError,
    ErrorMessages,
    InvalidRequestError,
)
from src.services.chat.handlers.base import (
    HandlerDeps,
    agent_name_for,
    fail_from,
    require_call_access,
)
from src.services.prompt_loader import load_prompt, render_prompt


async def load_call_for_analysis(
    call_id: str, params: HandlerParams, deps: HandlerDeps
) -> tuple[CallMetadata, CallTranscript, str]:
    """
    Load a call, check access and make sure its transcript is usable.

    Returns:
        (call metadata, transcript row, agent name)

    Raises:
        NotFoundError / PermissionDeniedError: From the access check
        InvalidRequestError: The transcript is missing or still processing
    """
    call = await require_call_access(call_id, params, deps)
    transcript = await deps.repository.get_call_transcript(call_id)
    if transcript is None or not (transcript.full_transcript or "").strip():
        raise InvalidRequestError(
            f"Transcript for {call_id} not available",
            user_message=ErrorMessages.transcript_not_ready(call_id),
        )
    agent_name = transcript.agent_name or await agent_name_for(deps, call.agent_user_id)
    return call, transcript, agent_name


def _ratio(value: float | None) -> str:
    return f"{value:.0f}%" if value is not None else "N/A"


async def handle(params: HandlerParams, message: str, deps: HandlerDeps) -> HandlerResult:
    call_id = params.call_id
    if not call_id:
        return HandlerResult.fail(ErrorMessages.coaching_call_required())

    try:
        call, transcript, agent_name = await load_call_for_analysis(call_id, params, deps)
        call_date = transcript.call_date or call.call_date
        duration = transcript.total_duration_formatted or call.total_duration_formatted

        with logfire.span("coaching_analysis", call_id=call_id):
            try:
                analysis = await deps.llm.run_structured(
                    load_prompt("coaching_system"),
                    render_prompt(
                        "coaching_analysis",
                        agent_name=agent_name,
                        call_date=call_date,
                        duration=duration,
                        agent_talk_ratio=_ratio(call.agent_talk_percentage),
                        customer_talk_ratio=_ratio(call.customer_talk_percentage),
                        transcript=transcript.full_transcript,
                    ),
                    CoachingAnalysis,
                    max_tokens=ANALYSIS_MAX_TOKENS,
                )
            except Exception as e:
                raise AnalysisServiceError(
                    f"Coaching analysis failed: {e}",
                    user_message=ErrorMessages.coaching_analysis_failed(),
                ) from e

        summary = await _summarize(deps, analysis, agent_name, call_date, duration)

        logfire.info(
            "Coaching analysis completed",
            call_id=call_id,
            overall_score=analysis.overall_score,
            has_critical_flags=analysis.has_critical_flags,
        )
        return HandlerResult.ok(
            {
                "type": "coaching",
                "call_id": call_id,
                "agent_name": agent_name,
                "agent_user_id": call.agent_user_id,
                "call_date": call_date,
                "duration": duration,
                "talk_ratio": {
                    "agent": call.agent_talk_percentage,
                    "customer": call.customer_talk_percentage,
                },
                "analysis": analysis.model_dump(),
                "summary": summary,
                "has_critical_flags": analysis.has_critical_flags,
            }
        )
    except Exception as e:
        return fail_from(e, "analyze this call")


async def _summarize(
    deps: HandlerDeps,
    analysis: CoachingAnalysis,
    agent_name: str,
    call_date: str | None,
    duration: str | None,
) -> str | None:
    """Prose summary of the analysis; None if the model call fails."""
    try:
        return await deps.llm.chat(
            load_prompt("coaching_system"),
            render_prompt(
                "coaching_summary",
                coaching_json=json.dumps(analysis.model_dump(), indent=2),
                agent_name=agent_name,
                call_date=call_date,
                duration=duration,
            ),
            max_tokens=COACHING_SUMMARY_MAX_TOKENS,
            temperature=PROSE_TEMPERATURE,
        )
    except Exception as e:
        logfire.warning("Coaching summary failed", error=str(e))
        return None
