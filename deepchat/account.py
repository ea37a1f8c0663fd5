"""
Account endpoints: available models and account balance.

These are plain GET calls outside the chat-completion path, so they go
straight through httpx instead of litellm:

    GET /models        -> ModelList
    GET /user/balance  -> UserBalance

Failures map to the same error taxonomy as chat turns.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from deepchat.llm.errors import MalformedResponse, RemoteError, RequestTimeout, TransportError
from deepchat.llm.transport import classify_status

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.deepseek.com"

T = TypeVar("T", bound=BaseModel)


class ModelInfo(BaseModel):
    """One entry of the model list."""

    id: str = Field(description="Model id, e.g. 'deepseek-chat'")
    object: str | None = Field(None, description='Object type, "model"')
    owned_by: str | None = Field(None, description="Organization that owns the model")

    model_config = ConfigDict(frozen=True, extra="ignore")


class ModelList(BaseModel):
    """Response of GET /models."""

    object: str | None = Field(None, description='Object type, "list"')
    data: list[ModelInfo] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore")

    def ids(self) -> list[str]:
        return [model.id for model in self.data]


class BalanceInfo(BaseModel):
    """Balance in one currency. Amounts are decimal strings, as sent by the API."""

    currency: str | None = Field(None, description='"CNY" or "USD"')
    total_balance: str | None = Field(None, description="Granted plus topped-up balance")
    granted_balance: str | None = Field(None, description="Balance granted, including expired grants not yet used")
    topped_up_balance: str | None = Field(None, description="Balance topped up by the account owner")

    model_config = ConfigDict(frozen=True, extra="ignore")


class UserBalance(BaseModel):
    """Response of GET /user/balance."""

    is_available: bool = Field(default=False, description="Whether the balance covers API calls")
    balance_infos: list[BalanceInfo] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore")

    def for_currency(self, currency: str) -> BalanceInfo | None:
        for info in self.balance_infos:
            if info.currency == currency:
                return info
        return None


class AccountClient:
    """
    Async client for the account endpoints.

    Args:
        api_key: API key, sent as a bearer token
        base_url: API base URL
        timeout_seconds: Timeout for one request
        http_transport: Custom httpx transport, e.g. httpx.MockTransport in tests
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout_seconds: float = 30.0,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._http_transport = http_transport

    async def list_models(self) -> ModelList:
        """List the models available to this account."""
        return self._parse(ModelList, await self._get("/models"))

    async def get_balance(self) -> UserBalance:
        """Fetch the account balance."""
        return self._parse(UserBalance, await self._get("/user/balance"))

    async def _get(self, path: str) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }
        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout_seconds,
            transport=self._http_transport,
        ) as client:
            try:
                response = await client.get(path, headers=headers)
            except httpx.TimeoutException as e:
                raise RequestTimeout(f"GET {path} timed out after {self._timeout_seconds}s", cause=e) from e
            except httpx.HTTPError as e:
                raise TransportError(f"GET {path} failed: {e}", cause=e) from e

        logger.debug(f"GET {path} -> HTTP {response.status_code}")
        if response.status_code >= 400:
            raise classify_status(response.status_code, response.text)

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponse(f"GET {path} returned invalid JSON: {e}", payload=response.text, cause=e) from e
        if not isinstance(body, dict):
            raise MalformedResponse(f"GET {path} must return a JSON object, got {type(body).__name__}", payload=body)
        if body.get("error"):
            raise RemoteError(body["error"])
        return body

    @staticmethod
    def _parse(model: type[T], body: dict[str, Any]) -> T:
        try:
            return model.model_validate(body)
        except ValidationError as e:
            raise MalformedResponse(
                f"Response does not match {model.__name__}: {e}", payload=body, cause=e
            ) from e
