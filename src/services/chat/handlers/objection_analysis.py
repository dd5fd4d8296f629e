"""OBJECTION_ANALYSIS: objection handling review of one call.

Each objection found is recorded for the agent's history in a background
task. Recording failures are logged and never affect the reply.
"""

import asyncio
import json

import logfire

from src.constants import (
    ANALYSIS_MAX_TOKENS,
    OBJECTION_SUMMARY_MAX_TOKENS,
    PROSE_TEMPERATURE,
)
from src.db.repository import CoachingRepository
from src.models.chat_models import HandlerParams, HandlerResult
from src.models.coaching_models import (
    AgentObjectionHistory,
    ObjectionAnalysis,
    RecordObjectionInput,
)
from src.services.background_tasks import spawn_background_task
from src.services.chat.errors import AnalysisServiceError, ErrorMessages
from src.services.chat.handlers.base import HandlerDeps, fail_from
from src.services.chat.handlers.coaching import load_call_for_analysis
from src.services.prompt_loader import load_prompt, render_prompt


async def load_objection_history(
    repository: CoachingRepository, agent_user_id: str | None
) -> AgentObjectionHistory | None:
    """Past objection stats for an agent, or None if unavailable."""
    if not agent_user_id:
        return None
    stats, weak, strong = await asyncio.gather(
        repository.get_agent_objection_stats(agent_user_id),
        repository.get_agent_weak_areas(agent_user_id),
        repository.get_agent_strong_areas(agent_user_id),
        return_exceptions=True,
    )
    for part in (stats, weak, strong):
        if isinstance(part, BaseException):
            logfire.warning(
                "Objection history unavailable",
                agent_user_id=agent_user_id,
                error=str(part),
            )
            return None
    return AgentObjectionHistory.from_parts(agent_user_id, stats, weak, strong)


def history_context(history: AgentObjectionHistory | None) -> str:
    """Markdown block describing past patterns, empty when there are none."""
    if history is None or history.total_analyzed == 0:
        return ""
    lines = ["", "**Historical Patterns:**"]
    lines.append(f"- Objections analyzed previously: {history.total_analyzed}")
    if history.overall_avg_score is not None:
        lines.append(f"- Average handling score: {history.overall_avg_score}/5")
    if history.weak_areas:
        weak = ", ".join(a.objection_type for a in history.weak_areas)
        lines.append(f"- Recurring weak areas: {weak}")
    if history.strong_areas:
        strong = ", ".join(a.objection_type for a in history.strong_areas)
        lines.append(f"- Consistent strengths: {strong}")
    return "\n".join(lines)


async def record_objections(
    repository: CoachingRepository,
    analysis: ObjectionAnalysis,
    agent_user_id: str,
    call_id: str,
) -> int:
    """Record every objection found; returns how many were stored."""
    recorded = 0
    for objection in analysis.objections_found:
        try:
            await repository.record_objection(
                RecordObjectionInput.from_objection(objection, agent_user_id, call_id)
            )
            recorded += 1
        except Exception as e:
            logfire.warning(
                "Failed to record objection",
                call_id=call_id,
                objection_type=objection.objection_type,
                error=str(e),
            )
    logfire.info("Objections recorded", call_id=call_id, recorded=recorded)
    return recorded


async def handle(params: HandlerParams, message: str, deps: HandlerDeps) -> HandlerResult:
    call_id = params.call_id
    if not call_id:
        return HandlerResult.fail(ErrorMessages.coaching_call_required())

    try:
        call, transcript, agent_name = await load_call_for_analysis(call_id, params, deps)
        call_date = transcript.call_date or call.call_date
        duration = transcript.total_duration_formatted or call.total_duration_formatted
        agent_id = call.agent_user_id

        history = await load_objection_history(deps.repository, agent_id)

        with logfire.span("objection_analysis", call_id=call_id):
            try:
                analysis = await deps.llm.run_structured(
                    load_prompt("objection_system"),
                    render_prompt(
                        "objection_analysis",
                        agent_name=agent_name,
                        call_date=call_date,
                        duration=duration,
                        transcript=transcript.full_transcript,
                    ),
                    ObjectionAnalysis,
                    max_tokens=ANALYSIS_MAX_TOKENS,
                )
            except Exception as e:
                raise AnalysisServiceError(
                    f"Objection analysis failed: {e}",
                    user_message=ErrorMessages.coaching_analysis_failed(),
                ) from e

        if agent_id and analysis.objections_found:
            spawn_background_task(
                record_objections(deps.repository, analysis, agent_id, call_id),
                name=f"record_objections:{call_id}",
            )

        summary = await _summarize(deps, analysis, agent_name, call_date, history)

        return HandlerResult.ok(
            {
                "type": "objection_analysis",
                "call_id": call_id,
                "agent_name": agent_name,
                "agent_user_id": agent_id,
                "call_date": call_date,
                "duration": duration,
                "analysis": analysis.model_dump(),
                "summary": summary,
                "agent_history": history.model_dump() if history else None,
            }
        )
    except Exception as e:
        return fail_from(e, "analyze objections on this call")


async def _summarize(
    deps: HandlerDeps,
    analysis: ObjectionAnalysis,
    agent_name: str,
    call_date: str | None,
    history: AgentObjectionHistory | None,
) -> str | None:
    try:
        return await deps.llm.chat(
            load_prompt("objection_system"),
            render_prompt(
                "objection_summary",
                agent_name=agent_name,
                call_date=call_date,
                history_context=history_context(history),
                analysis_json=json.dumps(analysis.model_dump(), indent=2),
            ),
            max_tokens=OBJECTION_SUMMARY_MAX_TOKENS,
            temperature=PROSE_TEMPERATURE,
        )
    except Exception as e:
        logfire.warning("Objection summary failed", error=str(e))
        return None
