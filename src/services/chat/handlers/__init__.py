"""Dispatch table: one handler per intent."""

from src.models.chat_models import Intent
from src.services.chat.handlers import (
    agent_stats,
    coaching,
    general,
    get_transcript,
    list_calls,
    objection_analysis,
    search_calls,
    team_summary,
)
from src.services.chat.handlers.base import Handler, HandlerDeps

HANDLERS: dict[Intent, Handler] = {
    Intent.LIST_CALLS: list_calls.handle,
    Intent.AGENT_STATS: agent_stats.handle,
    Intent.TEAM_SUMMARY: team_summary.handle,
    Intent.GET_TRANSCRIPT: get_transcript.handle,
    Intent.SEARCH_CALLS: search_calls.handle,
    Intent.COACHING: coaching.handle,
    Intent.OBJECTION_ANALYSIS: objection_analysis.handle,
    Intent.GENERAL: general.handle,
}

_DATA_TYPES: dict[Intent, str] = {
    Intent.LIST_CALLS: "call_list",
    Intent.AGENT_STATS: "agent_stats",
    Intent.TEAM_SUMMARY: "team_summary",
    Intent.GET_TRANSCRIPT: "transcript",
    Intent.SEARCH_CALLS: "search_results",
    Intent.COACHING: "coaching",
    Intent.OBJECTION_ANALYSIS: "objection_analysis",
    Intent.GENERAL: "general",
}

_missing = [i.value for i in Intent if i not in HANDLERS or i not in _DATA_TYPES]
if _missing:
    raise RuntimeError(f"No handler registered for intents: {', '.join(_missing)}")


def get_handler(intent: Intent | str | None) -> Handler:
    """Handler for an intent; unknown intents fall back to GENERAL."""
    try:
        return HANDLERS[Intent(intent)]
    except ValueError:
        return HANDLERS[Intent.GENERAL]


def data_type_for(intent: Intent | str | None) -> str:
    try:
        return _DATA_TYPES[Intent(intent)]
    except ValueError:
        return _DATA_TYPES[Intent.GENERAL]


__all__ = ["HANDLERS", "Handler", "HandlerDeps", "data_type_for", "get_handler"]
