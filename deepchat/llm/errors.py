"""
Error taxonomy for the orchestration layer.

Every failure an orchestration run can surface derives from OrchestrationError,
so callers can catch the whole family with one except clause and still branch
on the concrete type when they need to:

    OrchestrationError
    ├── ConfigurationError       client settings are incomplete, e.g. no API key
    ├── CapabilityError          pre-flight, caller must fix the request
    │   └── UnsupportedFeature   a feature the target model does not offer
    ├── TransportError           network/transport level, already retried
    │   ├── ClientError          4xx
    │   ├── TransientError       429/503 after retries ran out
    │   ├── ServerError          other 5xx
    │   ├── RequestCancelled     cancel_check() returned True
    │   └── RequestTimeout       timeout_seconds elapsed
    ├── RemoteError              the service returned an "error" payload
    ├── MalformedResponse        envelope lacks required fields / bad body
    ├── MalformedToolCall        structurally invalid tool invocation
    ├── UnknownTool              model named a tool nobody registered
    ├── ToolExecutionError       callback raised or returned nothing
    └── TurnLimitExceeded        loop safety bound hit
"""

from __future__ import annotations

from typing import Any


class OrchestrationError(Exception):
    """Base class for every error raised by an orchestration run."""

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


# ---------------------------------------------------------------------------
# Pre-flight
# ---------------------------------------------------------------------------

class ConfigurationError(OrchestrationError):
    """The client is missing configuration it needs, such as an API key."""


class CapabilityError(OrchestrationError):
    """The request asks for something the target model cannot do."""


class UnsupportedFeature(CapabilityError):
    """A specific request feature is not supported by the target model."""

    def __init__(self, feature: str, model: str | None = None, detail: str | None = None):
        target = f"model '{model}'" if model else "this orchestrator"
        message = f"Feature '{feature}' is not supported by {target}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.feature = feature
        self.model = model


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class TransportError(OrchestrationError):
    """The network exchange failed. Retries, if any, already happened."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, cause=cause)
        self.status_code = status_code


class ClientError(TransportError):
    """The service rejected the request (4xx)."""


class TransientError(TransportError):
    """Rate limiting or overload (429/503) that outlasted the backoff schedule."""


class ServerError(TransportError):
    """The service failed internally (5xx other than 503)."""


class RequestCancelled(TransportError):
    """The caller's cancellation predicate fired before or between attempts."""


class RequestTimeout(TransportError):
    """The request did not finish within its timeout budget."""


# ---------------------------------------------------------------------------
# Response and tool-call shape
# ---------------------------------------------------------------------------

class RemoteError(OrchestrationError):
    """The service answered with an application-level error payload."""

    def __init__(self, payload: Any):
        super().__init__(f"Remote service returned an error: {payload}")
        self.payload = payload


class MalformedResponse(OrchestrationError):
    """The response envelope is missing required parts or cannot be parsed."""

    def __init__(self, message: str, payload: Any = None, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.payload = payload


class MalformedToolCall(OrchestrationError):
    """The model's tool invocation is structurally invalid."""

    def __init__(self, message: str, tool_call: Any = None, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.tool_call = tool_call


class UnknownTool(OrchestrationError):
    """The model referenced a tool that is not in the registry."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool call name referenced by model: {name}")
        self.name = name


class ToolExecutionError(OrchestrationError):
    """A tool callback raised, or returned an empty result."""

    def __init__(self, name: str, cause: BaseException | None = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Error executing tool '{name}'{detail}", cause=cause)
        self.name = name


class TurnLimitExceeded(OrchestrationError):
    """The conversation did not reach a final answer within max_turns."""

    def __init__(self, max_turns: int):
        super().__init__(
            f"Exceeded maximum of {max_turns} turns without a final answer"
        )
        self.max_turns = max_turns
