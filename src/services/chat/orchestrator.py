"""Chat pipeline orchestration.

One message moves through fixed stages::

    RECEIVED -> CLASSIFIED -> SCOPED -> DISPATCHED -> FORMATTED -> RESPONDED

and can drop into ERRORED from any of them. ``ChatOrchestrator.process``
never raises: every failure becomes a ``ChatResponse`` with
``success=False`` and a user-safe ``response``.
"""

import logging
import time
from enum import Enum

import logfire

from src.config import Settings, get_settings
from src.db.repository import CoachingRepository
from src.models.auth_models import CallerIdentity, DataAccessScope
from src.models.chat_models import (
    ChatContext,
    ChatResponse,
    HandlerParams,
    Intent,
    IntentClassification,
)
from src.services.agent_resolver import AgentResolver
from src.services.chat.errors import (
    ErrorCategory,
    ErrorMessages,
    build_error_message,
    category_message,
)
from src.services.chat.formatter import ResponseFormatter
from src.services.chat.handlers import data_type_for, get_handler
from src.services.chat.handlers.base import HandlerDeps
from src.services.embedding_service import EmbeddingService, get_embedding_service
from src.services.input_sanitizer import sanitize_user_input, validate_message
from src.services.intent_classifier import IntentClassifier
from src.services.llm_service import LLMService, get_llm_service
from src.services.scope_resolver import ScopeResolver

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    RECEIVED = "RECEIVED"
    CLASSIFIED = "CLASSIFIED"
    SCOPED = "SCOPED"
    DISPATCHED = "DISPATCHED"
    FORMATTED = "FORMATTED"
    RESPONDED = "RESPONDED"
    ERRORED = "ERRORED"


class ChatOrchestrator:
    """Run a chat message through classification, scoping, dispatch and formatting.

    Collaborators are injected; anything not supplied is built from the
    repository and the LLM service so tests can swap in mocks at any seam.

    Example:
        >>> orchestrator = ChatOrchestrator(repository)
        >>> response = await orchestrator.process("show Sarah's calls", caller)
    """

    def __init__(
        self,
        repository: CoachingRepository,
        llm_service: LLMService | None = None,
        embedding_service: EmbeddingService | None = None,
        settings: Settings | None = None,
        classifier: IntentClassifier | None = None,
        scope_resolver: ScopeResolver | None = None,
        formatter: ResponseFormatter | None = None,
        agent_resolver: AgentResolver | None = None,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.llm_service = llm_service or get_llm_service()
        self.embedding_service = embedding_service or get_embedding_service()
        self.classifier = classifier or IntentClassifier(self.llm_service)
        self.scope_resolver = scope_resolver or ScopeResolver(repository)
        self.formatter = formatter or ResponseFormatter(self.llm_service)
        self.agent_resolver = agent_resolver or AgentResolver(repository)

    def _deps(self) -> HandlerDeps:
        return HandlerDeps(
            repository=self.repository,
            llm=self.llm_service,
            agent_resolver=self.agent_resolver,
            embedder=self.embedding_service,
            settings=self.settings,
        )

    async def process(
        self,
        message: str,
        caller: CallerIdentity,
        context: ChatContext | None = None,
        data_scope: DataAccessScope | None = None,
    ) -> ChatResponse:
        """
        Answer one chat message.

        Args:
            message: Raw user message
            caller: Verified identity of the caller
            context: Optional UI context (selected agent, call, department)
            data_scope: Precomputed scope; built from the roster when omitted

        Returns:
            ChatResponse, never raises
        """
        started = time.perf_counter()
        intent = Intent.GENERAL
        stage = PipelineStage.RECEIVED
        self._log_stage(stage, caller, message_length=len(message or ""))

        with logfire.span("chat_pipeline", user_id=caller.id, role=caller.role):
            try:
                validation = validate_message(message, self.settings.max_message_length)
                if not validation.is_valid:
                    return self._error_response(
                        intent,
                        category_message(ErrorCategory.VALIDATION),
                        caller,
                        reason=validation.error_code,
                    )
                text = sanitize_user_input(message, self.settings.max_message_length)

                classification = await self.classifier.classify(text)
                intent = classification.intent
                stage = PipelineStage.CLASSIFIED
                self._log_stage(
                    stage, caller, intent=intent.value, confidence=classification.confidence
                )

                scope = data_scope or await self.scope_resolver.build_scope(caller, text)
                stage = PipelineStage.SCOPED
                self._log_stage(
                    stage,
                    caller,
                    allowed_count=len(scope.allowed_agent_ids),
                    is_floor_wide=scope.is_floor_wide,
                )

                params = self._build_params(classification, context, scope, caller)
                handler = get_handler(intent)
                result = await handler(params, text, self._deps())
                stage = PipelineStage.DISPATCHED
                self._log_stage(stage, caller, intent=intent.value, success=result.success)

                if not result.success:
                    return self._error_response(
                        intent, result.error or ErrorMessages.generic_error(), caller
                    )

                data = dict(result.data or {})
                data.setdefault("type", data_type_for(intent))
                response_text = await self.formatter.format(intent, data, text)
                stage = PipelineStage.FORMATTED
                self._log_stage(stage, caller, response_length=len(response_text))

                stage = PipelineStage.RESPONDED
                self._log_stage(
                    stage,
                    caller,
                    intent=intent.value,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                )
                return ChatResponse(
                    success=True, response=response_text, data=data, intent=intent
                )
            except Exception as e:
                logger.error(f"Chat pipeline failed at {stage.value}: {e}")
                return self._error_response(
                    intent,
                    build_error_message(e, "process your message"),
                    caller,
                    failed_stage=stage.value,
                )

    def _build_params(
        self,
        classification: IntentClassification,
        context: ChatContext | None,
        scope: DataAccessScope,
        caller: CallerIdentity,
    ) -> HandlerParams:
        context = context or ChatContext()
        # A name in the message beats the agent selected in the UI
        agent_id = None if classification.agent_name else context.agent_user_id
        return HandlerParams(
            agent_id=agent_id,
            agent_name=classification.agent_name,
            days_back=classification.days_back,
            call_id=classification.call_id or context.call_id,
            search_query=classification.search_query,
            department=context.department,
            data_scope=scope,
            caller=caller,
        )

    def _error_response(
        self, intent: Intent, error: str, caller: CallerIdentity, **log_context
    ) -> ChatResponse:
        self._log_stage(PipelineStage.ERRORED, caller, intent=intent.value, **log_context)
        return ChatResponse(
            success=False, response=error, data=None, intent=intent, error=error
        )

    @staticmethod
    def _log_stage(stage: PipelineStage, caller: CallerIdentity, **context) -> None:
        if stage is PipelineStage.ERRORED:
            logfire.warning("Chat pipeline stage", stage=stage.value, user_id=caller.id, **context)
        else:
            logfire.info("Chat pipeline stage", stage=stage.value, user_id=caller.id, **context)


def get_chat_orchestrator(repository: CoachingRepository) -> ChatOrchestrator:
    """Get chat orchestrator instance for a repository."""
    return ChatOrchestrator(repository)
