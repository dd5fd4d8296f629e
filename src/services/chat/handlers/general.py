"""GENERAL: greetings, help, and the "show agents" shortcut."""

import re

from src.models.chat_models import HandlerParams, HandlerResult
from src.services.chat.handlers.base import HandlerDeps, fail_from

_LIST_AGENTS_RE = re.compile(
    r"\b(list|show)\s+(all\s+)?(the\s+)?agents\b|\bwho\s+are\s+the\s+agents\b",
    re.IGNORECASE,
)


def wants_agent_list(message: str) -> bool:
    return bool(_LIST_AGENTS_RE.search(message or ""))


async def handle(params: HandlerParams, message: str, deps: HandlerDeps) -> HandlerResult:
    if not wants_agent_list(message):
        return HandlerResult.ok({"type": "general"})

    try:
        scope = params.data_scope
        if params.caller.is_admin:
            agents = await deps.repository.list_agents()
        elif scope.is_empty:
            agents = []
        else:
            agents = await deps.repository.list_agents(scope.allowed_agent_ids)

        if not agents:
            return HandlerResult.ok(
                {
                    "type": "general",
                    "agents": [],
                    "response": "I couldn't find any active agents you have access to.",
                }
            )

        lines = [
            f"- **{a.first_name}** ({a.department or 'No dept'})" for a in agents
        ]
        return HandlerResult.ok(
            {
                "type": "general",
                "agents": [a.model_dump() for a in agents],
                "response": "Here are the active agents:\n\n" + "\n".join(lines),
            }
        )
    except Exception as e:
        return fail_from(e, "list agents")
