from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

import litellm

from common import llm
from parley.config import ChatConfig

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I couldn't process your request."


class ErrorKind(str, Enum):
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    UPSTREAM_STATUS = "upstream_status"
    PARSE = "parse"


class GatewayError(Exception):
    def __init__(self, kind: ErrorKind, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail


class Gateway(Protocol):
    async def send(self, messages: list[dict]) -> str: ...


CompletionFn = Callable[..., Awaitable[Any]]


def classify_error(exc: BaseException) -> ErrorKind:
    # litellm.Timeout and APIConnectionError both carry a status_code, check them first.
    if isinstance(exc, (litellm.Timeout, asyncio.TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(exc, litellm.APIConnectionError):
        return ErrorKind.TRANSPORT
    if getattr(exc, "status_code", None) is not None:
        return ErrorKind.UPSTREAM_STATUS
    return ErrorKind.TRANSPORT


def extract_reply(response: Any) -> str:
    try:
        message = response.choices[0].message
    except (AttributeError, IndexError, KeyError, TypeError) as e:
        raise GatewayError(ErrorKind.PARSE, f"malformed completion response: {e}") from e
    if message is None:
        raise GatewayError(ErrorKind.PARSE, "completion choice carries no message")

    content = getattr(message, "content", None)
    if isinstance(content, str) and content.strip():
        return content
    return FALLBACK_REPLY


class CompletionGateway:
    def __init__(self, config: ChatConfig, completion_fn: CompletionFn | None = None):
        self.config = config
        self._completion_fn = completion_fn or llm.acompletion

    async def send(self, messages: list[dict]) -> str:
        try:
            response = await self._completion_fn(
                model=self.config.model,
                messages=messages,
                api_base=self.config.api_base,
                api_key=self.config.api_key,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                timeout=self.config.timeout,
            )
        except GatewayError:
            raise
        except Exception as e:
            kind = classify_error(e)
            logger.debug(f"Completion call failed ({kind.value}): {e}")
            raise GatewayError(kind, str(e)) from e
        return extract_reply(response)
