"""LiteLLM completion call used by the oracle.

One prompt in, one text answer out, with the raw response kept so the
caller can book token usage.
"""

import logging
from typing import Any, Optional

import litellm

litellm.set_verbose = False
logging.getLogger("LiteLLM").setLevel(logging.WARNING)


async def get_completion_async(
    model: str,
    prompt: str,
    max_tokens: int = 4096,
    temperature: float = 0.3,
    api_key: Optional[str] = None,
    timeout: Optional[float] = None,
) -> tuple[str, Any]:
    """
    Single-turn completion through any LiteLLM provider.

    Args:
        model: LiteLLM model id, e.g. "gemini/gemini-2.0-flash-lite"
        prompt: Sent as the only user message
        max_tokens: Response token cap
        temperature: Sampling temperature
        api_key: Provider key; LiteLLM reads the provider env var when omitted
        timeout: Request timeout in seconds

    Returns:
        (text, response); text is "" when the provider returns no content
    """
    request: dict[str, Any] = {
        "model": model,
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": max_tokens,
        "temperature": temperature,
    }
    if api_key:
        request["api_key"] = api_key
    if timeout:
        request["timeout"] = timeout

    response = await litellm.acompletion(**request)
    return response.choices[0].message.content or "", response
