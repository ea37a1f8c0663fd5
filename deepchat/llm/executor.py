"""
Turn executor: one request snapshot in, one typed ResponseDocument out.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from deepchat.llm.errors import MalformedResponse, OrchestrationError, TransportError
from deepchat.llm.models import ResponseDocument
from deepchat.llm.request import RequestSnapshot
from deepchat.llm.transport import RawResponse, Transport

logger = logging.getLogger(__name__)


class TurnExecutor:
    """
    Sends a snapshot through the transport and parses what comes back.

    Parsing covers the body only (decodable JSON object that fits the typed
    envelope). Whether the envelope holds an error, a first choice and a
    message is the orchestrator's call.

    The snapshot's capture hooks fire here: on_success with every parsed
    document, on_error with every error raised by this turn.
    """

    def __init__(self, transport: Transport):
        self._transport = transport

    async def send(self, request: RequestSnapshot) -> ResponseDocument:
        """
        Execute one turn.

        Raises:
            TransportError: Transport failures, already retried where applicable
            MalformedResponse: The body is not a JSON object or does not fit the envelope
        """
        try:
            try:
                raw = await self._transport.execute(request)
            except OrchestrationError:
                raise
            except Exception as e:
                raise TransportError(f"Transport call failed: {e}", cause=e) from e
            document = self.parse(raw)
        except OrchestrationError as e:
            if request.on_error is not None:
                request.on_error(e)
            raise

        if request.on_success is not None:
            request.on_success(document)
        return document

    @staticmethod
    def parse(raw: RawResponse) -> ResponseDocument:
        """Decode and validate a raw response body."""
        body: Any = raw
        if isinstance(body, bytes):
            try:
                body = body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedResponse(f"Response body is not valid UTF-8: {e}", cause=e) from e
        if isinstance(body, str):
            try:
                body = json.loads(body)
            except json.JSONDecodeError as e:
                raise MalformedResponse(f"Response body is not valid JSON: {e}", payload=raw, cause=e) from e
        if not isinstance(body, dict):
            raise MalformedResponse(
                f"Response body must be a JSON object, got {type(body).__name__}", payload=raw
            )

        try:
            return ResponseDocument.model_validate(body)
        except ValidationError as e:
            logger.debug(f"Response failed validation: {e}")
            raise MalformedResponse(f"Response does not match the expected envelope: {e}", payload=body, cause=e) from e
