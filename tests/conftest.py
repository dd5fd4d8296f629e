"""Shared pytest fixtures and configuration.

Fixture Categories:
1. Settings / logging: mock_settings, mock_logfire
2. Supabase: make_query_builder, mock_supabase_client
3. Callers and scopes: admin_caller, manager_caller, agent_caller, roster, *_scope
4. Collaborators: mock_repository, mock_llm, structured_reply, mock_embedder,
   handler_deps, make_params
5. Sample rows: sample_call, sample_transcript, sample_coaching_payload, ...
"""

import os
from contextlib import contextmanager
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

# Required settings must exist before any module calls get_settings()
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("PYDANTIC_AI_GATEWAY_API_KEY", "paig_test_key")
# Suppress warnings when logfire isn't configured
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")

from src.config import Settings  # noqa: E402
from src.db.repository import CoachingRepository  # noqa: E402
from src.models.auth_models import (  # noqa: E402
    AgentRoster,
    CallerIdentity,
    DataAccessScope,
)
from src.models.call_models import (  # noqa: E402
    Agent,
    CallMetadata,
    CallTranscript,
    ResolvedAgent,
)
from src.models.chat_models import HandlerParams  # noqa: E402
from src.services.agent_resolver import AgentResolver  # noqa: E402
from src.services.chat.handlers.base import HandlerDeps  # noqa: E402
from src.services.embedding_service import EmbeddingService  # noqa: E402
from src.services.llm_service import LLMService  # noqa: E402

TEAM_A = "team-a"
TEAM_B = "team-b"


# =============================================================================
# Settings / logging
# =============================================================================


@pytest.fixture
def mock_settings():
    """Settings with test credentials and default pipeline limits."""
    return Settings(
        supabase_url="https://test.supabase.co",
        supabase_service_key="test-service-key",
        pydantic_ai_gateway_api_key="paig_test_key",
        default_model="gateway/anthropic:claude-sonnet-4-0",
        fallback_model="gateway/anthropic:claude-3-5-haiku-latest",
        env="local",
        logfire_token=None,
    )


@pytest.fixture
def mock_logfire(monkeypatch):
    """
    Replace logfire in the modules that log, so tests can assert on calls.

    ``span`` is a real context manager so ``with logfire.span(...)`` works.
    """

    @contextmanager
    def mock_span(*args, **kwargs):
        yield MagicMock()

    mock_logfire_module = MagicMock()
    mock_logfire_module.info = Mock()
    mock_logfire_module.debug = Mock()
    mock_logfire_module.warning = Mock()
    mock_logfire_module.error = Mock()
    mock_logfire_module.span = mock_span

    for module in (
        "src.db.repository",
        "src.db.query_executor",
        "src.services.scope_resolver",
        "src.services.agent_resolver",
        "src.services.intent_classifier",
        "src.services.chat.errors",
        "src.services.chat.orchestrator",
        "src.services.chat.formatter",
        "src.services.chat.handlers.list_calls",
        "src.services.chat.handlers.search_calls",
        "src.services.chat.handlers.coaching",
        "src.services.chat.handlers.objection_analysis",
        "src.services.background_tasks",
        "src.services.dashboard_service",
        "src.middleware.correlation_id",
    ):
        monkeypatch.setattr(f"{module}.logfire", mock_logfire_module)

    return mock_logfire_module


# =============================================================================
# Supabase
# =============================================================================


def make_query_builder(data=None):
    """
    PostgREST-style builder mock.

    Every filter/ordering call returns the builder itself and ``execute``
    is awaitable, so any chain ``table().select().eq()...execute()`` works.
    """
    builder = MagicMock()
    for method in (
        "select",
        "eq",
        "in_",
        "gte",
        "lte",
        "ilike",
        "is_",
        "order",
        "limit",
    ):
        getattr(builder, method).return_value = builder
    builder.not_ = builder
    builder.execute = AsyncMock(return_value=MagicMock(data=data if data is not None else []))
    return builder


@pytest.fixture
def mock_supabase_client():
    """Async Supabase client mock; configure ``table``/``rpc`` per test."""
    client = MagicMock()
    client.table.return_value = make_query_builder()
    client.rpc.return_value = make_query_builder()
    client.auth = MagicMock()
    client.auth.get_user = AsyncMock()
    return client


@pytest.fixture
def query_builder():
    """Factory for PostgREST-style builder mocks returning ``data``."""
    return make_query_builder


# =============================================================================
# Callers and scopes
# =============================================================================


@pytest.fixture
def admin_caller():
    return CallerIdentity(id="user-admin", email="admin@example.com", role="admin")


@pytest.fixture
def manager_caller():
    return CallerIdentity(
        id="user-manager", email="manager@example.com", role="manager", team_id=TEAM_A
    )


@pytest.fixture
def agent_caller():
    return CallerIdentity(
        id="user-agent",
        email="agent@example.com",
        role="agent",
        team_id=TEAM_A,
        linked_agent_id="agent-1",
    )


@pytest.fixture
def roster():
    """Four agents: two on team A (Sarah, Mike), two on team B (Sara, Dana)."""
    return AgentRoster(
        all_agent_ids=("agent-1", "agent-2", "agent-3", "agent-4"),
        team_members={TEAM_A: ("agent-1", "agent-2"), TEAM_B: ("agent-3", "agent-4")},
        team_names={TEAM_A: "Alpha", TEAM_B: "Bravo"},
    )


@pytest.fixture
def team_scope():
    return DataAccessScope(
        allowed_agent_ids=frozenset({"agent-1", "agent-2"}),
        is_team_scope=True,
        team_id=TEAM_A,
        team_name="Alpha",
    )


@pytest.fixture
def floor_scope():
    return DataAccessScope(
        allowed_agent_ids=frozenset({"agent-1", "agent-2", "agent-3", "agent-4"}),
        is_floor_wide=True,
        team_id=TEAM_A,
        team_name="Alpha",
    )


@pytest.fixture
def agent_scope():
    return DataAccessScope(allowed_agent_ids=frozenset({"agent-1"}))


@pytest.fixture
def empty_scope():
    return DataAccessScope()


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def sample_agents():
    return {
        "agent-1": Agent(agent_user_id="agent-1", first_name="Sarah", department="Agent"),
        "agent-2": Agent(agent_user_id="agent-2", first_name="Mike", department="Agent"),
        "agent-3": Agent(agent_user_id="agent-3", first_name="Sara", department="Agent"),
        "agent-4": Agent(agent_user_id="agent-4", first_name="Dana", department=None),
    }


@pytest.fixture
def mock_repository(roster, sample_agents):
    """
    Repository mock with async methods and empty defaults.

    ``resolve_agent_name`` knows "Sarah" (agent-1, team A) and "Sara"
    (agent-3, team B) so scoped resolution can be exercised.
    """
    repo = MagicMock(spec=CoachingRepository)

    async def resolve_agent_name(name):
        matches = {
            "sarah": [
                ResolvedAgent(agent_user_id="agent-1", first_name="Sarah", similarity_score=1.0),
                ResolvedAgent(agent_user_id="agent-3", first_name="Sara", similarity_score=0.8),
            ],
            "sara": [
                ResolvedAgent(agent_user_id="agent-3", first_name="Sara", similarity_score=1.0),
                ResolvedAgent(agent_user_id="agent-1", first_name="Sarah", similarity_score=0.8),
            ],
            "dana": [
                ResolvedAgent(agent_user_id="agent-4", first_name="Dana", similarity_score=1.0),
            ],
        }
        return matches.get(name.lower(), [])

    async def get_agent_by_id(agent_id):
        return sample_agents.get(agent_id)

    async def get_agent_names_by_ids(agent_ids):
        return {
            a: sample_agents[a].first_name for a in agent_ids if a in sample_agents
        }

    repo.get_agent_roster = AsyncMock(return_value=roster)
    repo.resolve_agent_name = AsyncMock(side_effect=resolve_agent_name)
    repo.get_agent_by_id = AsyncMock(side_effect=get_agent_by_id)
    repo.get_agent_names_by_ids = AsyncMock(side_effect=get_agent_names_by_ids)
    repo.list_agents = AsyncMock(return_value=list(sample_agents.values()))
    repo.get_agent_calls = AsyncMock(return_value=[])
    repo.get_recent_calls = AsyncMock(return_value=[])
    repo.get_agent_performance = AsyncMock(return_value=None)
    repo.get_agent_daily_calls = AsyncMock(return_value=[])
    repo.get_team_summary = AsyncMock(return_value=None)
    repo.get_call_by_id = AsyncMock(return_value=None)
    repo.get_call_transcript = AsyncMock(return_value=None)
    repo.get_call_turns = AsyncMock(return_value=[])
    repo.semantic_search_calls = AsyncMock(return_value=[])
    repo.text_search_calls = AsyncMock(return_value=[])
    repo.record_objection = AsyncMock(return_value={"id": "obj-1"})
    repo.get_agent_objection_stats = AsyncMock(return_value=[])
    repo.get_agent_weak_areas = AsyncMock(return_value=[])
    repo.get_agent_strong_areas = AsyncMock(return_value=[])
    repo.get_user_profile = AsyncMock(return_value=None)
    repo.get_agent_overview_metrics = AsyncMock(return_value=None)
    repo.get_objection_summary = AsyncMock(return_value={})
    repo.get_goals_progress = AsyncMock(return_value=[])
    return repo


def _structured(payload):
    """Fake ``run_structured`` that validates ``payload`` as the requested type."""

    async def _run(system_prompt, user_prompt, output_type, **kwargs):
        return output_type.model_validate(payload)

    return _run


@pytest.fixture
def mock_llm():
    llm = MagicMock(spec=LLMService)
    llm.chat = AsyncMock(return_value="LLM reply")
    llm.run_structured = AsyncMock(side_effect=_structured({}))
    return llm


@pytest.fixture
def structured_reply():
    """Build a ``run_structured`` side effect returning ``payload`` as the requested type."""
    return _structured


@pytest.fixture
def mock_embedder():
    embedder = MagicMock(spec=EmbeddingService)
    embedder.embed_query = AsyncMock(return_value=[0.1] * 8)
    return embedder


@pytest.fixture
def handler_deps(mock_repository, mock_llm, mock_embedder, mock_settings):
    return HandlerDeps(
        repository=mock_repository,
        llm=mock_llm,
        agent_resolver=AgentResolver(mock_repository),
        embedder=mock_embedder,
        settings=mock_settings,
    )


@pytest.fixture
def make_params():
    """Build HandlerParams for a caller and scope."""

    def _make(caller, scope, **overrides):
        return HandlerParams(data_scope=scope, caller=caller, **overrides)

    return _make


# =============================================================================
# Sample rows
# =============================================================================


@pytest.fixture
def sample_call():
    return CallMetadata(
        call_id="call-12345678-abcd",
        agent_user_id="agent-1",
        call_date="2025-01-15",
        total_duration_seconds=754,
        total_duration_formatted="12:34",
        total_turns=4,
        agent_talk_percentage=55.4,
        customer_talk_percentage=44.6,
        is_inbound_call=True,
        full_transcript="Agent: Hello, thanks for calling.\nCustomer: Hi, it's too expensive.",
    )


@pytest.fixture
def sample_transcript():
    return CallTranscript(
        call_id="call-12345678-abcd",
        agent_user_id="agent-1",
        agent_name="Sarah",
        call_date="2025-01-15",
        full_transcript=(
            "Agent: Hello, thanks for calling.\n"
            "Customer: Hi, I'm worried it's too expensive.\n"
            "Agent: I understand. Let me walk you through the options.\n"
            "Customer: Okay, that sounds good."
        ),
        total_duration_formatted="12:34",
    )


@pytest.fixture
def sample_coaching_payload():
    """Coaching LLM output with red_flags and notable_moments missing."""
    return {
        "scores": {
            "opening_rapport": 4,
            "needs_discovery": 3,
            "product_presentation": 4,
            "objection_handling": 2,
            "compliance_disclosures": 5,
            "closing_enrollment": 3,
        },
        "strengths": ["Warm greeting"],
        "improvements": ["Probe deeper on budget"],
        "action_items": ["Ask two discovery questions before pitching"],
    }


@pytest.fixture
def sample_objection_payload():
    return {
        "objections_found": [
            {
                "objection_type": "price",
                "objection_text": "It's too expensive",
                "customer_sentiment": "moderate",
                "agent_response": "Let me walk you through the options",
                "response_quality": 4,
                "techniques_used": ["acknowledge"],
                "was_resolved": True,
                "improvement_suggestion": "Quantify the value",
                "snippet": {
                    "objection_text": "I'm worried it's too expensive",
                    "rebuttal_text": "I understand. Let me walk you through the options.",
                },
            }
        ],
        "overall_objection_handling_score": 4,
        "patterns": {"agent_tendencies": ["Acknowledges first"]},
    }


# =============================================================================
# HTTP
# =============================================================================


@pytest.fixture
def test_client(mock_supabase_client):
    """
    TestClient without running the lifespan.

    ``app.state.supabase`` is the mock client; dependency overrides set by a
    test are cleared afterwards.
    """
    from fastapi.testclient import TestClient

    from src.main import app

    app.state.supabase = mock_supabase_client
    yield TestClient(app)
    app.dependency_overrides.clear()
