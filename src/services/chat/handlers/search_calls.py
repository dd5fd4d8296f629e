"""SEARCH_CALLS: semantic search over transcript chunks, with a keyword fallback."""

import logfire

from src.models.call_models import SearchResult
from src.models.chat_models import HandlerParams, HandlerResult
from src.services.chat.errors import ErrorMessages
from src.services.chat.handlers.base import (
    HandlerDeps,
    fail_from,
    resolve_date_range,
    resolve_target_agent,
)


async def handle(params: HandlerParams, message: str, deps: HandlerDeps) -> HandlerResult:
    query = (params.search_query or "").strip()
    if not query:
        return HandlerResult.fail(ErrorMessages.search_query_required())

    try:
        agent_id, agent_name = await resolve_target_agent(params, deps, required=False)
        start_date, end_date = resolve_date_range(params)
        settings = deps.settings
        limit = params.limit or settings.search_result_limit
        scope_ids = _scope_agent_ids(params, agent_id)

        results: list[SearchResult] = []
        search_type = "semantic"
        embedding = await deps.embedder.embed_query(query)
        if embedding:
            results = await deps.repository.semantic_search_calls(
                embedding,
                agent_user_id=agent_id,
                agent_ids=scope_ids,
                start_date=start_date,
                end_date=end_date,
                limit=limit,
                similarity_threshold=settings.search_similarity_threshold,
            )
            results = _within_scope(results, params)

        if not results:
            search_type = "text"
            results = await deps.repository.text_search_calls(
                query,
                agent_user_id=agent_id,
                agent_ids=scope_ids,
                start_date=start_date,
                end_date=end_date,
                limit=limit,
            )
            results = _within_scope(results, params)

        await _fill_agent_names(results, deps)

        logfire.info(
            "Call search completed",
            search_type=search_type,
            result_count=len(results),
            agent_user_id=agent_id,
        )

        data = {
            "type": "search_results",
            "query": query,
            "search_type": search_type,
            "agent_name": agent_name,
            "agent_user_id": agent_id,
            "start_date": start_date,
            "end_date": end_date,
            "result_count": len(results),
            "results": [r.model_dump() for r in results],
        }
        if not results:
            data["message"] = ErrorMessages.no_search_results(query)
        return HandlerResult.ok(data)
    except Exception as e:
        return fail_from(e, "search calls")


def _scope_agent_ids(params: HandlerParams, agent_id: str | None) -> list[str] | None:
    """Agent ids the search queries are limited to; None means unrestricted."""
    if params.caller.is_admin or agent_id:
        return None
    return sorted(params.data_scope.allowed_agent_ids)


def _within_scope(results: list[SearchResult], params: HandlerParams) -> list[SearchResult]:
    if params.caller.is_admin:
        return results
    return [r for r in results if params.data_scope.allows(r.agent_user_id)]


async def _fill_agent_names(results: list[SearchResult], deps: HandlerDeps) -> None:
    missing = {r.agent_user_id for r in results if r.agent_user_id and not r.agent_name}
    if not missing:
        return
    names = await deps.repository.get_agent_names_by_ids(missing)
    for result in results:
        if not result.agent_name and result.agent_user_id:
            result.agent_name = names.get(result.agent_user_id)
