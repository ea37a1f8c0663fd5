"""
Per-model capability rules.

Capability mismatches are configuration errors. They are detected here,
before any network round-trip, instead of surfacing later as a remote 400.

The rule table is static. The reasoning tier ignores sampling parameters
(accepted, reported and logged as a warning) and rejects tools, forced tool
choice, JSON output mode and log probabilities outright. Other models,
including unknown ones, carry no extra restriction.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field

from deepchat.llm.errors import CapabilityError, UnsupportedFeature
from deepchat.llm.request import RequestSnapshot

logger = logging.getLogger(__name__)

SAMPLING_PARAMETERS = ("temperature", "top_p", "presence_penalty", "frequency_penalty")

# tool_choice values that stay allowed even when tools are not supported
PASSIVE_TOOL_CHOICES = frozenset({"auto", "none"})


class ModelCapabilities(BaseModel):
    """What a model tier accepts."""

    sampling: bool = Field(default=True, description="Sampling parameters take effect")
    tools: bool = Field(default=True, description="Function calling")
    tool_choice: bool = Field(default=True, description="tool_choice beyond auto/none")
    json_output: bool = Field(default=True, description='response_format "json_object"')
    logprobs: bool = Field(default=True, description="logprobs / top_logprobs")

    model_config = ConfigDict(frozen=True)


UNRESTRICTED = ModelCapabilities()

REASONING_TIER = ModelCapabilities(
    sampling=False,
    tools=False,
    tool_choice=False,
    json_output=False,
    logprobs=False,
)

MODEL_CAPABILITIES: dict[str, ModelCapabilities] = {
    "deepseek-chat": UNRESTRICTED,
    "deepseek-reasoner": REASONING_TIER,
}


class CapabilityReport(BaseModel):
    """Outcome of a successful validation."""

    model: str
    ignored_parameters: list[str] = Field(
        default_factory=list,
        description="Parameters that were set but have no effect on this model",
    )


def _base_model_id(model_id: str) -> str:
    # "deepseek/deepseek-reasoner" -> "deepseek-reasoner"
    return model_id.rsplit("/", 1)[-1]


class CapabilityValidator:
    """
    Validates a request against the target model's capability tier.

    Args:
        table: Model id → capabilities. Defaults to MODEL_CAPABILITIES.
    """

    def __init__(self, table: dict[str, ModelCapabilities] | None = None):
        self._table = dict(MODEL_CAPABILITIES if table is None else table)

    def capabilities_for(self, model_id: str) -> ModelCapabilities:
        return self._table.get(_base_model_id(model_id), UNRESTRICTED)

    def validate(self, model_id: str, request: RequestSnapshot) -> CapabilityReport:
        """
        Check `request` against the rules for `model_id`.

        Returns:
            CapabilityReport listing parameters the model will ignore

        Raises:
            CapabilityError: If the model id is blank
            UnsupportedFeature: If the request uses a feature the model rejects
        """
        if not model_id or not model_id.strip():
            raise CapabilityError("Model id cannot be empty")

        caps = self.capabilities_for(model_id)
        report = CapabilityReport(model=model_id)

        if not caps.sampling:
            for param in SAMPLING_PARAMETERS:
                if getattr(request, param) is not None:
                    logger.warning(f"Parameter '{param}' is ignored by model '{model_id}'")
                    report.ignored_parameters.append(param)

        if not caps.tools and request.tools:
            raise UnsupportedFeature("tools", model_id)

        choice = request.tool_choice
        if not caps.tool_choice and choice is not None:
            if not isinstance(choice, str) or choice not in PASSIVE_TOOL_CHOICES:
                raise UnsupportedFeature(
                    "tool_choice", model_id, detail=f"only 'auto' or 'none' are allowed, got {choice!r}"
                )

        if (
            not caps.json_output
            and request.response_format is not None
            and request.response_format.type == "json_object"
        ):
            raise UnsupportedFeature("response_format", model_id, detail="json_object")

        if not caps.logprobs and (request.logprobs is True or request.top_logprobs is not None):
            raise UnsupportedFeature("logprobs", model_id)

        return report
