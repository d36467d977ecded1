"""
Model invocation with ordered fallback across model identifiers.

Each candidate is a ModelProvider. ModelInvoker tries them once each in
priority order and returns the first text it gets back.
"""

import asyncio
import base64
import io
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

import requests
from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from ecolens.core.config import Settings
from ecolens.core.errors import InvalidImageError, ModelUnavailableError

logger = logging.getLogger(__name__)

# Pillow format name -> media types it may be declared as
_MEDIA_TYPES_BY_FORMAT = {
    "JPEG": {"image/jpeg", "image/jpg", "image/pjpeg"},
    "PNG": {"image/png"},
    "WEBP": {"image/webp"},
    "GIF": {"image/gif"},
    "HEIF": {"image/heic", "image/heif"},
}


class ProviderError(Exception):
    """A single candidate failed; the next one may still succeed."""


class ProviderRateLimited(ProviderError):
    """The candidate refused the request because of rate limiting."""


class ModelProvider:
    """Capability interface: prompt (+ optional image) in, text out."""

    name: str = "model"

    async def generate(
        self,
        prompt: str,
        image: Optional[bytes] = None,
        mime_type: str = "image/jpeg"
    ) -> str:
        raise NotImplementedError


class GeminiProvider(ModelProvider):
    """Calls the Gemini REST `generateContent` endpoint for one model id."""

    def __init__(
        self,
        model_id: str,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 30.0
    ):
        self.name = model_id
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _build_body(self, prompt: str, image: Optional[bytes], mime_type: str) -> dict:
        parts: List[dict] = [{"text": prompt}]
        if image is not None:
            parts.append({
                "inline_data": {
                    "mime_type": mime_type,
                    "data": base64.b64encode(image).decode("ascii"),
                }
            })
        return {"contents": [{"parts": parts}]}

    def _post(self, body: dict) -> str:
        url = f"{self.base_url}/models/{self.name}:generateContent"
        # Runs in threadpool workers; requests.post opens a fresh Session per call
        try:
            response = requests.post(
                url,
                params={"key": self.api_key},
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(f"network error: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        error = data.get("error") if isinstance(data, dict) else None
        if response.status_code == 429 or (
            error and (error.get("code") == 429 or error.get("status") == "RESOURCE_EXHAUSTED")
        ):
            raise ProviderRateLimited((error or {}).get("message", "rate limited"))
        if error or response.status_code >= 400:
            message = (error or {}).get("message") or f"HTTP {response.status_code}"
            raise ProviderError(message)

        try:
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            # Blocked or empty generations carry no text part
            return "{}"

    async def generate(
        self,
        prompt: str,
        image: Optional[bytes] = None,
        mime_type: str = "image/jpeg"
    ) -> str:
        body = self._build_body(prompt, image, mime_type)
        return await run_in_threadpool(self._post, body)


def validate_image(image: bytes, mime_type: str) -> None:
    """
    Check that `image` decodes to the declared media type.

    Raises:
        InvalidImageError: If the bytes are not an image or the format differs
    """
    try:
        with Image.open(io.BytesIO(image)) as img:
            detected = img.format
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise InvalidImageError.mismatch(mime_type, None, e)

    allowed = _MEDIA_TYPES_BY_FORMAT.get(detected or "", set())
    if mime_type.lower() not in allowed:
        raise InvalidImageError.mismatch(mime_type, detected)


class ModelInvoker:
    """
    Ordered fallback over model providers.

    - rate-limited candidate: wait `cooldown_seconds`, then move on
    - any other failure or timeout: log and move on
    - first success is returned; no candidate is tried twice
    """

    def __init__(
        self,
        providers: Sequence[ModelProvider],
        cooldown_seconds: float = 1.5,
        timeout_seconds: Optional[float] = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        if not providers:
            raise ValueError("At least one model provider is required")
        self.providers = list(providers)
        self.cooldown_seconds = cooldown_seconds
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep

    async def invoke(
        self,
        prompt: str,
        image: Optional[bytes] = None,
        mime_type: str = "image/jpeg"
    ) -> str:
        """
        Send the prompt (and image) to the first provider that answers.

        Raises:
            ValueError: If the prompt is empty
            InvalidImageError: If the image does not match `mime_type`
            ModelUnavailableError: If every candidate fails
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt must not be empty")
        if image is not None:
            validate_image(image, mime_type)

        failures: Dict[str, str] = {}
        last_index = len(self.providers) - 1

        for index, provider in enumerate(self.providers):
            try:
                logger.debug(f"Invoking model {provider.name} ({index + 1}/{last_index + 1})")
                text = await asyncio.wait_for(
                    provider.generate(prompt, image, mime_type),
                    timeout=self.timeout_seconds,
                )
                logger.info(f"Model {provider.name} responded")
                return text

            except ProviderRateLimited as e:
                logger.warning(f"Model {provider.name} rate limited: {e}")
                failures[provider.name] = f"rate limited: {e}"
                if index < last_index:
                    await self._sleep(self.cooldown_seconds)

            except asyncio.TimeoutError:
                logger.warning(f"Model {provider.name} timed out after {self.timeout_seconds}s")
                failures[provider.name] = "timeout"

            except Exception as e:
                logger.warning(f"Model {provider.name} failed: {e}")
                failures[provider.name] = str(e) or e.__class__.__name__

        logger.error(f"All model candidates failed: {failures}")
        raise ModelUnavailableError.from_attempts(failures)


def build_model_invoker(settings: Settings) -> ModelInvoker:
    """Create the invoker from the configured candidate list."""
    providers = [
        GeminiProvider(
            model_id=model_id,
            api_key=settings.GEMINI_API_KEY,
            base_url=settings.GEMINI_BASE_URL,
            timeout=settings.MODEL_TIMEOUT_SECONDS,
        )
        for model_id in settings.MODEL_CANDIDATES
    ]
    return ModelInvoker(
        providers,
        cooldown_seconds=settings.MODEL_RATE_LIMIT_COOLDOWN_SECONDS,
        timeout_seconds=settings.MODEL_TIMEOUT_SECONDS,
    )
