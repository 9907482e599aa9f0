import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from services.profile_engine.errors import (
    CollaboratorRequestError,
    CollaboratorUnavailableError,
    MalformedResponseError,
)
from src.core.config import LLMSettings, llm_settings

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = {429}


def _is_transient_status(status_code: int) -> bool:
    return status_code in TRANSIENT_STATUS_CODES or status_code >= 500


class LLMClient:
    """
    Chat-completion client used as the text-generation collaborator.

    Timeouts, transport failures, 429 and 5xx responses are retried with
    exponential backoff. Other 4xx responses and unusable bodies fail
    immediately.
    """

    def __init__(
        self,
        settings: Optional[LLMSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        wait=None,
    ):
        self.settings = settings or llm_settings
        self.transport = transport
        self.wait = wait or wait_exponential(multiplier=1, min=2, max=10)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    def _payload(self, prompt: str, system_prompt: Optional[str]) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return {
            "model": self.settings.model,
            "messages": messages,
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
        }

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.settings.base_url.rstrip('/')}/chat/completions"
        async with httpx.AsyncClient(timeout=self.settings.timeout_seconds, transport=self.transport) as client:
            try:
                response = await client.post(url, headers=self._headers(), json=payload)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if _is_transient_status(status):
                    raise CollaboratorUnavailableError(f"Text generation service returned {status}") from e
                logger.error(f"Text generation request rejected: {status} - {e.response.text}")
                raise CollaboratorRequestError(f"Text generation request rejected with {status}") from e
            except httpx.TimeoutException as e:
                raise CollaboratorUnavailableError("Text generation request timed out") from e
            except httpx.TransportError as e:
                raise CollaboratorUnavailableError(f"Text generation transport error: {e}") from e

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError("Text generation response was not JSON") from e

    @staticmethod
    def _content(body: Dict[str, Any]) -> str:
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError("Text generation response had no message content") from e
        if not isinstance(content, str) or not content.strip():
            raise MalformedResponseError("Text generation response content was empty")
        return content

    async def complete(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        payload = self._payload(prompt, system_prompt)

        @retry(
            stop=stop_after_attempt(self.settings.max_attempts),
            wait=self.wait,
            retry=retry_if_exception_type(CollaboratorUnavailableError),
            reraise=True,
        )
        async def _request() -> Dict[str, Any]:
            attempt = _request.retry.statistics.get("attempt_number", 1)
            logger.debug(f"Text generation request attempt {attempt}")
            return await self._post(payload)

        try:
            body = await _request()
        except CollaboratorUnavailableError as e:
            logger.error(f"Text generation unavailable after {self.settings.max_attempts} attempts: {e}")
            raise
        return self._content(body)
