"""Async Ollama client used by the narrator."""
import asyncio
import logging
from typing import Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


def _merge_fields(response: str, thinking: str) -> str:
    """Merge Ollama response and thinking into a single parseable text.

    1. Both fields populated: thinking is wrapped in <think> tags and prepended.
    2. Only thinking populated: returned as-is so parsers see the content.
    3. Only response populated: returned unchanged.
    """
    r = (response or "").strip()
    t = (thinking or "").strip()
    if not t:
        return r
    if not r:
        return t
    return f"<think>{t}</think>\n{r}"


class LLMClient:
    """Ollama chat client (local or cloud) with bounded request concurrency."""

    def __init__(
        self,
        host: str,
        model: str,
        api_key: str = "",
        timeout: float = 60.0,
        max_concurrency: int = 2,
        think: bool = False,
    ):
        self.host = host.rstrip("/")
        self.default_model = model
        self.api_key = api_key
        self.timeout = timeout
        self.think = think
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._client: Optional[httpx.AsyncClient] = None

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.host,
                timeout=self.timeout,
                headers=self._get_headers(),
            )
        return self._client

    async def chat_async(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 256,
        think: Optional[bool] = None,
    ) -> Dict:
        """Send a chat completion request.

        Returns dict with 'response', 'thinking', 'merged' (normalized for
        parsing), 'eval_count' and 'eval_duration'. Transport and HTTP errors
        propagate as httpx exceptions. A reply that is not a chat object
        raises ValueError.
        """
        payload = {
            "model": model or self.default_model,
            "messages": messages,
            "options": {"temperature": temperature, "num_predict": max_tokens},
            "think": self.think if think is None else think,
            "stream": False,
        }
        async with self._semaphore:
            resp = await self._http().post("/api/chat", json=payload)
            resp.raise_for_status()

        data = resp.json()
        if not isinstance(data, dict) or not isinstance(data.get("message"), dict):
            raise ValueError(f"Malformed chat reply: {str(data)[:200]}")
        msg = data["message"]
        response = msg.get("content") or ""
        thinking = msg.get("thinking") or ""
        return {
            "response": response,
            "thinking": thinking,
            "merged": _merge_fields(response, thinking),
            "eval_count": data.get("eval_count", 0),
            "eval_duration": data.get("eval_duration", 0),
        }

    async def is_available(self) -> bool:
        """Check if Ollama is reachable."""
        try:
            resp = await self._http().get("/api/tags", timeout=5.0)
            return resp.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
