"""
Client facade: settings in, orchestrated chat completions out.

    client = DeepSeekClient()
    request = (
        client.new_request()
        .add_system_message("You can call get_weather if needed.")
        .add_user_message("What's the weather in Berlin?")
        .add_tool(weather_tool)
    )
    response = await client.chat(request)
    print(response.assistant_message())
"""

from __future__ import annotations

from deepchat.account import AccountClient, ModelList, UserBalance
from deepchat.config.settings import ClientSettings, RetrySettings, Settings, get_settings
from deepchat.llm.errors import ConfigurationError
from deepchat.llm.models import ResponseDocument
from deepchat.llm.orchestrator import OrchestrationResult, Orchestrator
from deepchat.llm.request import RequestSnapshot
from deepchat.llm.transport import LiteLLMTransport, RetryPolicy, Transport


def build_transport(client: ClientSettings, retry: RetrySettings) -> LiteLLMTransport:
    """Create the default LiteLLM-backed transport from settings."""
    return LiteLLMTransport(
        api_key=client.api_key,
        base_url=client.base_url or None,
        provider=client.provider,
        retry=RetryPolicy(
            max_attempts=retry.max_attempts,
            backoff_base_ms=retry.backoff_base_ms,
            backoff_max_ms=retry.backoff_max_ms,
        ),
    )


class DeepSeekClient:
    """
    Entry point for orchestrated chat completions and the account
    endpoints (model list and balance).

    Args:
        settings: Application settings (default: global settings)
        transport: Custom transport, e.g. a test double (default: LiteLLMTransport)
        account: Custom account client (default: AccountClient from settings)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: Transport | None = None,
        account: AccountClient | None = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport or build_transport(self.settings.client, self.settings.retry)
        self._account = account
        self._orchestrator = Orchestrator(self._transport, max_turns=self.settings.client.max_turns)

    @property
    def max_turns(self) -> int:
        return self._orchestrator.max_turns

    def new_request(self, model: str | None = None) -> RequestSnapshot:
        """Start an empty request for `model` (default: the configured model)."""
        return RequestSnapshot(
            model=model or self.settings.client.model,
            timeout_seconds=self.settings.client.timeout_seconds,
        )

    def _check_api_key(self) -> None:
        # Only the built-in transport needs a key
        if isinstance(self._transport, LiteLLMTransport) and not self.settings.client.api_key:
            raise ConfigurationError("API key not configured. Set DEEPSEEK_API_KEY in your environment.")

    async def chat(self, request: RequestSnapshot) -> ResponseDocument:
        """Run `request` through the orchestrator and return the final document."""
        self._check_api_key()
        return await self._orchestrator.run(request)

    async def chat_with_history(self, request: RequestSnapshot) -> OrchestrationResult:
        """Like chat(), but also returns the conversation and turn count."""
        self._check_api_key()
        return await self._orchestrator.run_with_history(request)

    def _account_client(self) -> AccountClient:
        if self._account is not None:
            return self._account
        if not self.settings.client.api_key:
            raise ConfigurationError("API key not configured. Set DEEPSEEK_API_KEY in your environment.")
        return AccountClient(
            api_key=self.settings.client.api_key,
            base_url=self.settings.client.base_url or None,
            timeout_seconds=self.settings.client.timeout_seconds or 30.0,
        )

    async def list_models(self) -> ModelList:
        """List the models available to the configured account."""
        return await self._account_client().list_models()

    async def get_balance(self) -> UserBalance:
        """Fetch the configured account's balance."""
        return await self._account_client().get_balance()
