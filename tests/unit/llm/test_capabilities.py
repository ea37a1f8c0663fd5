"""
Unit tests for per-model capability validation.
"""

import logging

import pytest

from deepchat.llm.capabilities import (
    MODEL_CAPABILITIES,
    REASONING_TIER,
    UNRESTRICTED,
    CapabilityValidator,
    ModelCapabilities,
)
from deepchat.llm.errors import CapabilityError, UnsupportedFeature
from deepchat.llm.request import RequestSnapshot, ResponseFormat
from deepchat.tools.base import ToolDefinition


def _request(model: str = "deepseek-reasoner", **options) -> RequestSnapshot:
    return RequestSnapshot(model=model, **options).add_user_message("9.11 or 9.8, which is larger?")


def _tool() -> ToolDefinition:
    return ToolDefinition(name="get_weather", description="Weather lookup")


@pytest.fixture
def validator():
    return CapabilityValidator()


class TestCapabilityTable:

    def test_chat_model_is_unrestricted(self, validator):
        assert validator.capabilities_for("deepseek-chat") == UNRESTRICTED

    def test_reasoner_is_restricted(self, validator):
        assert validator.capabilities_for("deepseek-reasoner") == REASONING_TIER

    def test_unknown_model_is_unrestricted(self, validator):
        assert validator.capabilities_for("some-future-model") == UNRESTRICTED

    def test_provider_prefix_is_ignored(self, validator):
        assert validator.capabilities_for("deepseek/deepseek-reasoner") == REASONING_TIER

    def test_custom_table(self):
        validator = CapabilityValidator({"locked": ModelCapabilities(tools=False)})
        with pytest.raises(UnsupportedFeature):
            validator.validate("locked", _request("locked").add_tool(_tool()))
        # Custom tables replace the defaults entirely
        assert validator.capabilities_for("deepseek-reasoner") == UNRESTRICTED

    def test_default_table_is_not_mutated(self):
        validator = CapabilityValidator()
        validator._table["deepseek-chat"] = REASONING_TIER
        assert MODEL_CAPABILITIES["deepseek-chat"] == UNRESTRICTED


class TestReasonerRules:

    @pytest.mark.parametrize("param", ["temperature", "top_p", "presence_penalty", "frequency_penalty"])
    def test_sampling_parameters_are_ignored_with_warning(self, validator, caplog, param):
        request = _request(**{param: 0.5})

        with caplog.at_level(logging.WARNING, logger="deepchat.llm.capabilities"):
            report = validator.validate("deepseek-reasoner", request)

        assert report.ignored_parameters == [param]
        assert param in caplog.text

    def test_tools_rejected(self, validator):
        with pytest.raises(UnsupportedFeature) as exc_info:
            validator.validate("deepseek-reasoner", _request().add_tool(_tool()))
        assert exc_info.value.feature == "tools"
        assert exc_info.value.model == "deepseek-reasoner"

    @pytest.mark.parametrize("choice", ["auto", "none"])
    def test_passive_tool_choice_allowed(self, validator, choice):
        report = validator.validate("deepseek-reasoner", _request(tool_choice=choice))
        assert report.ignored_parameters == []

    @pytest.mark.parametrize(
        "choice",
        ["required", {"type": "function", "function": {"name": "get_weather"}}],
    )
    def test_forcing_tool_choice_rejected(self, validator, choice):
        with pytest.raises(UnsupportedFeature) as exc_info:
            validator.validate("deepseek-reasoner", _request(tool_choice=choice))
        assert exc_info.value.feature == "tool_choice"

    def test_json_output_rejected(self, validator):
        request = _request(response_format=ResponseFormat.json_object())
        with pytest.raises(UnsupportedFeature) as exc_info:
            validator.validate("deepseek-reasoner", request)
        assert exc_info.value.feature == "response_format"

    def test_text_output_allowed(self, validator):
        validator.validate("deepseek-reasoner", _request(response_format=ResponseFormat.text()))

    @pytest.mark.parametrize("options", [{"logprobs": True}, {"top_logprobs": 5}])
    def test_logprobs_rejected(self, validator, options):
        with pytest.raises(UnsupportedFeature) as exc_info:
            validator.validate("deepseek-reasoner", _request(**options))
        assert exc_info.value.feature == "logprobs"

    def test_logprobs_false_allowed(self, validator):
        validator.validate("deepseek-reasoner", _request(logprobs=False))


class TestChatRules:

    def test_everything_allowed(self, validator):
        request = _request(
            "deepseek-chat",
            temperature=0.3,
            tool_choice="required",
            response_format=ResponseFormat.json_object(),
            logprobs=True,
            top_logprobs=3,
        ).add_tool(_tool())

        report = validator.validate("deepseek-chat", request)

        assert report.model == "deepseek-chat"
        assert report.ignored_parameters == []


class TestBlankModel:

    @pytest.mark.parametrize("model_id", ["", "   "])
    def test_blank_model_id_rejected(self, validator, model_id):
        with pytest.raises(CapabilityError, match="empty"):
            validator.validate(model_id, _request("deepseek-chat"))
