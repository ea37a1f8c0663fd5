"""
Orchestrator: the multi-turn tool-calling loop.

This module sits between the caller and the transport. It receives an
immutable initial request, validates it against the target model, and then
drives a bounded back-and-forth with the model, running locally registered
tool callbacks on the model's behalf until the model answers without
requesting a tool.

Data flow:
    RequestSnapshot (caller)
            ↓
    stream gate → CapabilityValidator
            ↓
    TurnExecutor.send()  ←→  ToolDispatcher (while the model asks for tools)
            ↓
    ResponseDocument → caller

State machine:
    VALIDATING → EXECUTING_TURN → (DISPATCHING_TOOLS → EXECUTING_TURN) → DONE
    FAILED is reachable from every state.

Design decisions:
- Every run owns its ConversationState, ToolRegistry and turn counter. An
  Orchestrator instance can serve many runs; they share nothing mutable.
- The next request is rebuilt from the *initial* request plus the current
  history, so sampling options and tools stay fixed for the whole run.
- The reasoning side channel of assistant replies is stripped before the
  reply enters the history. It is for display only and must never be
  replayed to the model.
- A missing tool_calls list is authoritative over the finish_reason label.
  A "tool_calls" finish reason without calls is logged and the document is
  returned as the final answer.
  TODO: revisit once the upstream contract for finish_reason is confirmed;
  until then the mismatch is tolerated in both directions.
- max_turns bounds the loop so buggy or adversarial tool behaviour cannot
  keep it running. The default of 4 leaves room for one clarifying tool
  round-trip plus a final answer.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict

from deepchat.llm.capabilities import CapabilityReport, CapabilityValidator
from deepchat.llm.conversation import ConversationState
from deepchat.llm.dispatcher import ToolDispatcher
from deepchat.llm.errors import (
    CapabilityError,
    MalformedResponse,
    MalformedToolCall,
    RemoteError,
    TurnLimitExceeded,
    UnsupportedFeature,
)
from deepchat.llm.executor import TurnExecutor
from deepchat.llm.models import Message, ResponseDocument
from deepchat.llm.request import RequestSnapshot
from deepchat.llm.transport import Transport
from deepchat.tools.base import ToolRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 4

TOOL_CALLS_FINISH_REASON = "tool_calls"


class OrchestratorState(str, Enum):
    """Lifecycle of one orchestration run."""

    VALIDATING = "validating"
    EXECUTING_TURN = "executing_turn"
    DISPATCHING_TOOLS = "dispatching_tools"
    DONE = "done"
    FAILED = "failed"


class OrchestrationResult(BaseModel):
    """Final document of a run plus the history that produced it."""

    response: ResponseDocument
    messages: tuple[Message, ...]
    turns: int
    capabilities: CapabilityReport | None = None

    model_config = ConfigDict(frozen=True)


class OrchestrationRun:
    """
    A single pass through the loop for one initial request.

    Created by Orchestrator.start(); not reusable. Exposes its state, the
    conversation and the number of turns executed so far.
    """

    def __init__(
        self,
        initial_request: RequestSnapshot,
        executor: TurnExecutor,
        validator: CapabilityValidator,
        max_turns: int,
    ):
        self._initial = initial_request
        self._executor = executor
        self._validator = validator
        self._max_turns = max_turns

        self.state = OrchestratorState.VALIDATING
        self.turns = 0
        self.conversation = ConversationState()
        self.capabilities: CapabilityReport | None = None
        self._dispatcher: ToolDispatcher | None = None
        self._started = False

    def _transition(self, state: OrchestratorState) -> None:
        logger.debug(f"Orchestrator state: {self.state.value} -> {state.value}")
        self.state = state

    async def execute(self) -> OrchestrationResult:
        """
        Run the loop to completion.

        Returns:
            OrchestrationResult with the final ResponseDocument

        Raises:
            OrchestrationError: Any failure; the run ends in FAILED
            RuntimeError: If this run was already executed
        """
        if self._started:
            raise RuntimeError("An OrchestrationRun can only be executed once")
        self._started = True

        try:
            self._validate()
            document = await self._loop()
        except Exception:
            self._transition(OrchestratorState.FAILED)
            raise

        return OrchestrationResult(
            response=document,
            messages=self.conversation.messages,
            turns=self.turns,
            capabilities=self.capabilities,
        )

    def _validate(self) -> None:
        request = self._initial
        # Each turn needs a complete, non-incremental response
        if request.stream:
            raise UnsupportedFeature("stream", request.model)

        self.capabilities = self._validator.validate(request.model, request)

        try:
            self.conversation = ConversationState(request.messages)
        except ValueError as e:
            raise MalformedToolCall(f"Invalid seed history: {e}", cause=e) from e

        try:
            registry = ToolRegistry(request.tools)
        except ValueError as e:
            raise CapabilityError(f"Invalid tool definitions: {e}", cause=e) from e
        self._dispatcher = ToolDispatcher(registry)

    async def _loop(self) -> ResponseDocument:
        request = self._initial
        turn = 0

        while True:
            turn += 1
            if turn > self._max_turns:
                raise TurnLimitExceeded(self._max_turns)

            self._transition(OrchestratorState.EXECUTING_TURN)
            logger.info(f"Turn {turn}/{self._max_turns}: sending {len(request.messages)} messages to {request.model}")
            document = await self._executor.send(request)
            self.turns = turn

            if document.error is not None:
                raise RemoteError(document.error)

            choice = document.first_choice()
            if choice is None:
                raise MalformedResponse(
                    "Response is missing the 'choices' array or its first choice",
                    payload=document.model_dump(),
                )
            if choice.message is None:
                raise MalformedResponse(
                    "Response is missing the 'message' object in its first choice",
                    payload=document.model_dump(),
                )

            self.conversation.append_assistant(choice.message)

            tool_calls = choice.message.tool_calls or []
            if not tool_calls:
                if choice.finish_reason == TOOL_CALLS_FINISH_REASON:
                    logger.warning(
                        "finish_reason is 'tool_calls' but the message carries no tool calls; "
                        f"returning the response as final (id={document.id})"
                    )
                self._transition(OrchestratorState.DONE)
                return document

            if choice.finish_reason != TOOL_CALLS_FINISH_REASON:
                logger.warning(
                    f"Response contains tool calls but finish_reason is {choice.finish_reason!r}; "
                    "processing tool calls anyway"
                )

            self._transition(OrchestratorState.DISPATCHING_TOOLS)
            for call in tool_calls:
                self.conversation.append(await self._dispatcher.dispatch_one(call))

            request = self._initial.with_messages(self.conversation.messages)


class Orchestrator:
    """
    Drives tool-calling conversations to a final answer.

    Each call to run() is independent: it validates the request, seeds a
    fresh conversation from the request's messages and loops until the
    model stops asking for tools or max_turns is hit.

    Args:
        transport: Network collaborator used for every turn
        max_turns: Safety bound on turns per run (default: 4)
        validator: Capability validator (default: built-in model table)

    Raises:
        ValueError: If max_turns is smaller than 1
    """

    def __init__(
        self,
        transport: Transport,
        max_turns: int = DEFAULT_MAX_TURNS,
        validator: CapabilityValidator | None = None,
    ):
        if max_turns < 1:
            raise ValueError(f"max_turns must be at least 1, got {max_turns}")
        self._executor = TurnExecutor(transport)
        self._max_turns = max_turns
        self._validator = validator or CapabilityValidator()

    @property
    def max_turns(self) -> int:
        return self._max_turns

    def start(self, initial_request: RequestSnapshot) -> OrchestrationRun:
        """Create a run for `initial_request` without executing it."""
        return OrchestrationRun(
            initial_request,
            executor=self._executor,
            validator=self._validator,
            max_turns=self._max_turns,
        )

    async def run(self, initial_request: RequestSnapshot) -> ResponseDocument:
        """
        Run the conversation and return the final turn's document unchanged.

        Raises:
            CapabilityError: The request does not fit the target model, asks for
                             streaming, or defines two tools with one name
            TransportError: The network exchange failed
            RemoteError: The service returned an error payload
            MalformedResponse: The envelope lacked a choice or message
            MalformedToolCall: A tool call was structurally invalid, or a seed
                               tool message answers no earlier tool call
            UnknownTool: The model called an unregistered tool
            ToolExecutionError: A tool callback failed
            TurnLimitExceeded: No final answer within max_turns
        """
        result = await self.run_with_history(initial_request)
        return result.response

    async def run_with_history(self, initial_request: RequestSnapshot) -> OrchestrationResult:
        """Like run(), but also returns the final conversation and turn count."""
        return await self.start(initial_request).execute()
