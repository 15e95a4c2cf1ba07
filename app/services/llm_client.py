"""Thin Bedrock client wrapper for feedback generation."""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional

from fastapi.concurrency import run_in_threadpool

from app.config.settings import BedrockConfig
from app.services.aws import create_boto3_client

logger = logging.getLogger(__name__)


class LlmInvocationError(RuntimeError):
    """Raised when the Bedrock invocation fails or returns nothing."""


def _decode_bedrock_api_key(secret_value: Optional[str]) -> tuple[str, str] | None:
    """Decode the BEDROCK_API_KEY secret into access/secret key components."""

    if not secret_value:
        return None

    try:
        decoded_bytes = base64.b64decode(secret_value.strip(), validate=True)
    except ValueError:
        decoded_bytes = secret_value.encode("utf-8", "ignore")

    filtered = "".join(chr(b) for b in decoded_bytes if 31 < b < 127)
    if ":" not in filtered:
        return None
    access_key, secret_key = filtered.split(":", 1)
    return access_key, secret_key


def create_bedrock_runtime(config: BedrockConfig) -> Any:
    """Build a ``bedrock-runtime`` client honouring the optional API key secret."""

    api_key_tuple = None
    if config.api_key:
        api_key_tuple = _decode_bedrock_api_key(config.api_key.get_secret_value())

    return create_boto3_client(
        "bedrock-runtime",
        region_name=config.region,
        aws_access_key_id=api_key_tuple[0] if api_key_tuple else None,
        aws_secret_access_key=api_key_tuple[1] if api_key_tuple else None,
    )


class BedrockLlmClient:
    """Invoke an Amazon Bedrock model with a single user prompt."""

    def __init__(self, client: Any, config: BedrockConfig) -> None:
        self._client = client
        self._config = config

    @property
    def max_tokens(self) -> int:
        return self._config.max_tokens

    async def invoke(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Run a Bedrock ``converse`` call and return the aggregate text output."""

        inference_cfg = {
            "maxTokens": max_tokens or self._config.max_tokens,
            "temperature": self._config.temperature,
            "topP": self._config.top_p,
        }
        request: dict[str, Any] = {
            "modelId": self._config.model_id,
            "messages": [{"role": "user", "content": [{"text": prompt}]}],
            "inferenceConfig": inference_cfg,
        }
        if system_prompt:
            request["system"] = [{"text": system_prompt}]

        def _call() -> str:
            response = self._client.converse(**request)
            content_blocks = (
                response.get("output", {})
                .get("message", {})
                .get("content", [])
            )
            texts = [block.get("text", "") for block in content_blocks if block.get("text")]
            return "\n".join(texts).strip()

        try:
            result = await run_in_threadpool(_call)
        except Exception as exc:
            raise LlmInvocationError(str(exc)) from exc

        if not result:
            raise LlmInvocationError("Bedrock returned an empty response.")
        return result


__all__ = ["BedrockLlmClient", "LlmInvocationError", "create_bedrock_runtime"]
