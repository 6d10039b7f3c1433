import warnings
from typing import Any

import litellm
from litellm import acompletion as litellm_acompletion

warnings.filterwarnings("ignore", message="Pydantic serializer warnings")
litellm.drop_params = True


async def acompletion(
    model: str,
    messages: list[dict],
    api_base: str | None = None,
    api_key: str | None = None,
    temperature: float | None = None,
    max_tokens: int | None = None,
    timeout: float | None = None,
    **kwargs,
) -> Any:
    params: dict[str, Any] = {
        "model": model,
        "messages": messages,
        "stream": False,
        **kwargs,
    }

    if api_base:
        params["api_base"] = api_base
    if api_key:
        params["api_key"] = api_key
    if temperature is not None:
        params["temperature"] = temperature
    if max_tokens is not None:
        params["max_tokens"] = max_tokens
    if timeout is not None:
        params["timeout"] = timeout

    return await litellm_acompletion(**params)
