"""Render handler data as markdown replies.

Every intent except GENERAL has a deterministic template. Templates read
fields through fallbacks so partial or empty payloads still render.
"""

from typing import Any

import logfire

from src.constants import (
    CALL_LIST_DISPLAY_LIMIT,
    COACHING_CATEGORY_LABELS,
    GENERAL_RESPONSE_MAX_TOKENS,
    SEARCH_EXCERPT_CHARS,
    SEARCH_RESULTS_DISPLAY_LIMIT,
)
from src.models.chat_models import Intent
from src.services.llm_service import LLMService
from src.services.prompt_loader import load_prompt


STATIC_HELP_TEXT = (
    "I'm here to help you analyze sales calls and coach your team. Try asking me to "
    '"show calls for [agent name]" or "how is the team doing?"'
)


# =============================================================================
# Field helpers
# =============================================================================


def _num(value: Any, default: float = 0) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _text(value: Any, default: str = "N/A") -> str:
    if value is None or value == "":
        return default
    return str(value)


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def format_duration(seconds: Any) -> str:
    """``Xm Ys`` for a duration in seconds."""
    total = _num(seconds)
    minutes = int(total // 60)
    secs = int(round(total % 60))
    if secs == 60:
        minutes, secs = minutes + 1, 0
    return f"{minutes}m {secs}s"


def format_hours(minutes: Any) -> str:
    """``Xh Ym`` for a duration in minutes."""
    total = _num(minutes)
    hours = int(total // 60)
    mins = int(round(total % 60))
    if mins == 60:
        hours, mins = hours + 1, 0
    return f"{hours}h {mins}m"


def _pct(value: Any) -> str:
    return f"{round(_num(value))}%"


def _short_id(call_id: Any) -> str:
    text = _text(call_id)
    return f"{text[:8]}..." if len(text) > 8 else text


def truncate_text(text: Any, max_length: int) -> str:
    if not text:
        return ""
    text = str(text)
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


# =============================================================================
# Templates
# =============================================================================


def format_call_list(data: dict) -> str:
    agent_name = data.get("agent_name")
    start_date = _text(data.get("start_date"))
    end_date = _text(data.get("end_date"))
    calls = _list(data.get("calls"))
    all_agents = data.get("view_type") == "all_agents"

    if not calls:
        who = "the agents you can access" if all_agents else _text(agent_name, "this agent")
        return f"No calls found for {who} between {start_date} and {end_date}."

    if all_agents:
        heading = f"Here are recent calls across your agents from {start_date} to {end_date}:"
    else:
        heading = (
            f"Here are **{_text(agent_name, 'Unknown')}'s** calls from "
            f"{start_date} to {end_date}:"
        )
    lines = [heading, "", f"**Total calls:** {int(_num(data.get('call_count'), len(calls)))}", ""]

    entries = []
    for i, call in enumerate(calls[:CALL_LIST_DISPLAY_LIMIT], start=1):
        call = _dict(call)
        direction = "Inbound" if call.get("is_inbound_call") else "Outbound"
        turns = int(_num(call.get("total_turns")))
        who = f" - {call['agent_name']}" if all_agents and call.get("agent_name") else ""
        entries.append(
            f"{i}. **{_text(call.get('call_date'))}**{who} - "
            f"{_text(call.get('total_duration_formatted'))} ({direction}, {turns} turns)\n"
            f"   ID: `{_short_id(call.get('call_id'))}`"
        )
    response = "\n".join(lines) + "\n" + "\n\n".join(entries)

    if len(calls) > CALL_LIST_DISPLAY_LIMIT:
        response += f"\n\n*...and {len(calls) - CALL_LIST_DISPLAY_LIMIT} more calls*"
    response += "\n\nWant to see the transcript for any of these calls?"
    return response


def format_agent_stats(data: dict) -> str:
    agent_name = _text(data.get("agent_name"), "Unknown")
    performance = data.get("performance")
    if not isinstance(performance, dict) or not performance:
        return _text(data.get("message"), f"No performance data found for {agent_name}.")

    rows = [
        f"## {agent_name}'s Performance Summary",
        f"*{_text(data.get('start_date'))} to {_text(data.get('end_date'))}*",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Total Calls | {int(_num(performance.get('total_calls')))} |",
        f"| Avg Duration | {format_duration(performance.get('avg_duration_seconds'))} |",
        f"| Talk Ratio | Agent {_pct(performance.get('avg_agent_talk_percentage'))} / "
        f"Customer {_pct(performance.get('avg_customer_talk_percentage'))} |",
        f"| Avg Turns | {round(_num(performance.get('avg_turns_per_call')))} |",
        f"| Inbound Calls | {int(_num(performance.get('inbound_calls')))} |",
        f"| Outbound Calls | {int(_num(performance.get('outbound_calls')))} |",
    ]

    daily = _list(data.get("daily_calls"))
    if daily:
        rows += ["", "**Daily activity:**"]
        for day in daily:
            day = _dict(day)
            rows.append(
                f"- {_text(day.get('call_date'))}: {int(_num(day.get('call_count')))} calls"
            )

    rows += ["", "Would you like to see their calls or search for specific patterns?"]
    return "\n".join(rows)


def format_team_summary(data: dict) -> str:
    department = _text(data.get("department"), "Team")
    summary = data.get("summary")
    if not isinstance(summary, dict) or not summary:
        return _text(data.get("message"), f"No team data found for {department}.")

    if data.get("is_floor_wide"):
        title = "Floor-wide Summary"
    elif data.get("team_name"):
        title = f"{data['team_name']} Team Summary"
    else:
        title = f"{department} Team Summary"

    rows = [
        f"## {title}",
        f"*{_text(data.get('start_date'))} to {_text(data.get('end_date'))}*",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Active Agents | {int(_num(summary.get('total_agents')))} |",
        f"| Total Calls | {int(_num(summary.get('total_calls')))} |",
        f"| Avg Calls per Agent | {_num(summary.get('avg_calls_per_agent')):.1f} |",
        f"| Avg Call Duration | {format_duration(summary.get('avg_duration_seconds'))} |",
        f"| Avg Agent Talk % | {_pct(summary.get('avg_agent_talk_percentage'))} |",
        f"| Total Talk Time | {format_hours(summary.get('total_duration_minutes'))} |",
    ]

    top_name = summary.get("top_performer_name")
    if top_name:
        top_calls = int(_num(summary.get("top_performer_calls")))
        rows += ["", f"**Top Performer:** {top_name} with {top_calls} calls"]

    rows += ["", "Want to dive deeper into any agent's performance?"]
    return "\n".join(rows)


def format_transcript(data: dict) -> str:
    talk_ratio = _dict(data.get("talk_ratio"))
    rows = [
        "## Call Transcript",
        "",
        "| Detail | Value |",
        "|--------|-------|",
        f"| Agent | {_text(data.get('agent_name'), 'Unknown')} |",
        f"| Date | {_text(data.get('call_date'))} |",
        f"| Duration | {_text(data.get('duration'))} |",
        f"| Type | {'Inbound' if data.get('is_inbound') else 'Outbound'} |",
    ]
    if talk_ratio:
        rows.append(
            f"| Talk Ratio | Agent {_pct(talk_ratio.get('agent'))} / "
            f"Customer {_pct(talk_ratio.get('customer'))} |"
        )
    rows.append(f"| Total Turns | {int(_num(data.get('total_turns')))} |")
    response = "\n".join(rows)

    if data.get("transcript_text"):
        response += f"\n\n### Transcript\n\n{data['transcript_text']}"
    elif _list(data.get("turns")):
        turns = []
        for turn in data["turns"]:
            turn = _dict(turn)
            stamp = f" [{turn['timestamp_start']}]" if turn.get("timestamp_start") else ""
            turns.append(
                f"**{_text(turn.get('speaker'), 'Unknown')}**{stamp}:\n{_text(turn.get('text'), '')}"
            )
        response += "\n\n### Transcript\n\n" + "\n\n".join(turns)
    else:
        response += "\n\n*No transcript turns are available for this call.*"
    return response


def _bullets(title: str, items: list, numbered: bool = False) -> list[str]:
    if not items:
        return []
    rows = ["", f"### {title}", ""]
    for i, item in enumerate(items, start=1):
        rows.append(f"{i}. {item}" if numbered else f"- {item}")
    return rows


def format_coaching(data: dict) -> str:
    if data.get("summary"):
        return str(data["summary"])

    agent_name = _text(data.get("agent_name"), "Unknown")
    call_date = _text(data.get("call_date"))
    analysis = data.get("analysis")
    if not isinstance(analysis, dict) or not analysis:
        return f"Coaching analysis for {agent_name}'s call on {call_date} is not available."

    overall = analysis.get("overall_score")
    rows = [
        f"## Coaching Feedback for {agent_name}",
        f"*Call: {call_date} ({_text(data.get('duration'))})*",
        "",
        f"### Overall Score: {_num(overall):.2f}" if overall is not None else "### Overall Score: N/A",
        f"**Performance Level:** {_text(analysis.get('performance_level'), 'Unknown')}",
        "",
        "### Score Breakdown",
        "",
        "| Category | Score |",
        "|----------|-------|",
    ]
    for key, score in _dict(analysis.get("scores")).items():
        label = COACHING_CATEGORY_LABELS.get(key, key)
        rows.append(f"| {label} | {_text(score)}/5 |")

    rows += _bullets("Strengths", _list(analysis.get("strengths")))
    rows += _bullets("Areas for Improvement", _list(analysis.get("improvements")))
    rows += _bullets("Action Items", _list(analysis.get("action_items")), numbered=True)

    flags = _dict(analysis.get("red_flags"))
    critical = _list(flags.get("critical"))
    high = _list(flags.get("high"))
    if critical or high:
        rows += ["", "### Flags Requiring Attention", ""]
        if critical:
            rows.append("**Critical:**")
            rows += [f"- {flag}" for flag in critical]
        if high:
            rows.append("**High Priority:**")
            rows += [f"- {flag}" for flag in high]

    return "\n".join(rows)


def format_objection_analysis(data: dict) -> str:
    if data.get("summary"):
        return str(data["summary"])

    agent_name = _text(data.get("agent_name"), "Unknown")
    call_date = _text(data.get("call_date"))
    analysis = data.get("analysis")
    if not isinstance(analysis, dict) or not analysis:
        return f"Objection analysis for {agent_name}'s call on {call_date} is not available."

    objections = _list(analysis.get("objections_found"))
    if not objections:
        note = analysis.get("no_objections_note") or "No customer objections were detected on this call."
        return f"## Objection Handling for {agent_name}\n*Call: {call_date}*\n\n{note}"

    total = int(_num(analysis.get("total_objections"), len(objections)))
    resolved = int(_num(analysis.get("resolved_count")))
    score = analysis.get("overall_objection_handling_score")
    rows = [
        f"## Objection Handling for {agent_name}",
        f"*Call: {call_date}*",
        "",
        f"**Objections:** {total} ({resolved} resolved)",
        f"**Handling Score:** {_num(score):.1f}/5" if score is not None else "**Handling Score:** N/A",
        "",
    ]
    for i, objection in enumerate(objections, start=1):
        objection = _dict(objection)
        status = "resolved" if objection.get("was_resolved") else "unresolved"
        rows.append(
            f"{i}. **{_text(objection.get('objection_type'), 'other')}** "
            f"({status}, {_num(objection.get('response_quality')):.0f}/5)"
        )
        if objection.get("objection_text"):
            rows.append(f'   > "{truncate_text(objection["objection_text"], SEARCH_EXCERPT_CHARS)}"')
        if objection.get("improvement_suggestion"):
            rows.append(f"   Try: {objection['improvement_suggestion']}")

    opportunity = _dict(analysis.get("biggest_opportunity"))
    if opportunity.get("description"):
        rows += ["", f"**Biggest opportunity:** {opportunity['description']}"]
    return "\n".join(rows)


def format_search_results(data: dict) -> str:
    query = _text(data.get("query") or data.get("search_query"), "")
    results = _list(data.get("results"))
    count = int(_num(data.get("result_count"), len(results)))
    if count == 0 or not results:
        return _text(data.get("message"), f'No calls found matching "{query}".')

    plural = "s" if count > 1 else ""
    response = (
        f'## Search Results for "{query}"\n\n'
        f"Found **{count}** matching call{plural} ({_text(data.get('search_type'), 'semantic')} search)\n\n"
    )
    entries = []
    for i, result in enumerate(results[:SEARCH_RESULTS_DISPLAY_LIMIT], start=1):
        result = _dict(result)
        similarity = result.get("similarity")
        match = f" ({round(_num(similarity) * 100)}% match)" if similarity else ""
        excerpt = truncate_text(result.get("chunk_text"), SEARCH_EXCERPT_CHARS)
        entries.append(
            f"### {i}. {_text(result.get('call_date'))} - "
            f"{_text(result.get('agent_name'), 'Unknown')}{match}\n\n"
            f'> "{excerpt}"\n\n'
            f"Call ID: `{_short_id(result.get('call_id'))}`"
        )
    response += "\n\n---\n\n".join(entries)

    if count > SEARCH_RESULTS_DISPLAY_LIMIT:
        response += f"\n\n*...and {count - SEARCH_RESULTS_DISPLAY_LIMIT} more results*"
    response += "\n\nWant to see the full transcript for any of these calls?"
    return response


_TEMPLATES = {
    Intent.LIST_CALLS: format_call_list,
    Intent.AGENT_STATS: format_agent_stats,
    Intent.TEAM_SUMMARY: format_team_summary,
    Intent.GET_TRANSCRIPT: format_transcript,
    Intent.SEARCH_CALLS: format_search_results,
    Intent.COACHING: format_coaching,
    Intent.OBJECTION_ANALYSIS: format_objection_analysis,
}


class ResponseFormatter:
    """Turns handler data into the reply text."""

    def __init__(self, llm_service: LLMService):
        self.llm_service = llm_service

    async def format(
        self, intent: Intent, data: dict[str, Any] | None, original_message: str
    ) -> str:
        data = data or {}

        template = _TEMPLATES.get(intent)
        if template is not None:
            return template(data)

        if data.get("response"):
            return str(data["response"])
        return await self._general_reply(original_message)

    async def _general_reply(self, message: str) -> str:
        try:
            reply = await self.llm_service.chat(
                load_prompt("general_system"),
                message,
                max_tokens=GENERAL_RESPONSE_MAX_TOKENS,
            )
        except Exception as e:
            logfire.warning("General reply failed, using help text", error=str(e))
            return STATIC_HELP_TEXT
        return reply.strip() or STATIC_HELP_TEXT
