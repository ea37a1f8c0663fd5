"""
Chat-completion orchestration layer.

Drives tool-calling conversations with the DeepSeek chat-completion API:

    RequestSnapshot (caller)
            ↓
    Orchestrator.run(request)
            ↓  validate capabilities, then loop:
    TurnExecutor → Transport (LiteLLM, backoff on 429/503)
            ↓
    ToolDispatcher → ToolRegistry callbacks (while the model asks for tools)
            ↓
    ResponseDocument → caller

Key responsibilities:
- Reject requests the target model cannot serve before any network call
- Keep an append-only conversation history per run, free of reasoning output
- Run tool callbacks in the order the model requested them
- Bound the loop with an explicit turn limit
- Surface every failure as an OrchestrationError subclass
"""

from deepchat.llm.capabilities import (
    CapabilityReport,
    CapabilityValidator,
    ModelCapabilities,
    MODEL_CAPABILITIES,
)
from deepchat.llm.conversation import ConversationState
from deepchat.llm.dispatcher import ToolDispatcher
from deepchat.llm.errors import (
    CapabilityError,
    ConfigurationError,
    ClientError,
    MalformedResponse,
    MalformedToolCall,
    OrchestrationError,
    RemoteError,
    RequestCancelled,
    RequestTimeout,
    ServerError,
    ToolExecutionError,
    TransientError,
    TransportError,
    TurnLimitExceeded,
    UnknownTool,
    UnsupportedFeature,
)
from deepchat.llm.executor import TurnExecutor
from deepchat.llm.models import (
    Choice,
    FunctionCall,
    Message,
    ResponseDocument,
    Role,
    ToolCallRequest,
    Usage,
)
from deepchat.llm.orchestrator import (
    DEFAULT_MAX_TURNS,
    OrchestrationResult,
    OrchestrationRun,
    Orchestrator,
    OrchestratorState,
)
from deepchat.llm.request import RequestSnapshot, ResponseFormat, StreamOptions
from deepchat.llm.tokens import TokenEstimator
from deepchat.llm.transport import LiteLLMTransport, RetryPolicy, Transport

__all__ = [
    "CapabilityError",
    "ConfigurationError",
    "CapabilityReport",
    "CapabilityValidator",
    "Choice",
    "ClientError",
    "ConversationState",
    "DEFAULT_MAX_TURNS",
    "FunctionCall",
    "LiteLLMTransport",
    "MODEL_CAPABILITIES",
    "MalformedResponse",
    "MalformedToolCall",
    "Message",
    "ModelCapabilities",
    "OrchestrationError",
    "OrchestrationResult",
    "OrchestrationRun",
    "Orchestrator",
    "OrchestratorState",
    "RemoteError",
    "RequestCancelled",
    "RequestSnapshot",
    "RequestTimeout",
    "ResponseDocument",
    "ResponseFormat",
    "RetryPolicy",
    "Role",
    "ServerError",
    "StreamOptions",
    "TokenEstimator",
    "ToolCallRequest",
    "ToolDispatcher",
    "ToolExecutionError",
    "TransientError",
    "Transport",
    "TransportError",
    "TurnExecutor",
    "TurnLimitExceeded",
    "UnknownTool",
    "UnsupportedFeature",
    "Usage",
]
