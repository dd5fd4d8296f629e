"""AGENT_STATS: performance aggregate and daily breakdown for one agent."""

from src.models.chat_models import HandlerParams, HandlerResult
from src.services.chat.errors import ErrorMessages
from src.services.chat.handlers.base import (
    HandlerDeps,
    fail_from,
    resolve_date_range,
    resolve_target_agent,
)


async def handle(params: HandlerParams, message: str, deps: HandlerDeps) -> HandlerResult:
    try:
        agent_id, agent_name = await resolve_target_agent(params, deps, required=True)
        agent_name = agent_name or "Unknown"
        start_date, end_date = resolve_date_range(params)

        base = {
            "type": "agent_stats",
            "agent_name": agent_name,
            "agent_user_id": agent_id,
            "start_date": start_date,
            "end_date": end_date,
        }

        performance = await deps.repository.get_agent_performance(
            agent_id, start_date, end_date
        )
        if performance is None or performance.total_calls == 0:
            return HandlerResult.ok(
                {
                    **base,
                    "performance": None,
                    "daily_calls": [],
                    "message": ErrorMessages.no_agent_stats(
                        agent_name, start_date, end_date
                    ),
                }
            )

        daily = await deps.repository.get_agent_daily_calls(agent_id, start_date, end_date)
        return HandlerResult.ok(
            {
                **base,
                "performance": performance.model_dump(),
                "daily_calls": [d.model_dump() for d in daily],
            }
        )
    except Exception as e:
        return fail_from(e, "fetch agent stats")
