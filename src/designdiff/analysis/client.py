from __future__ import annotations

import logging
import re
from typing import Any, Literal, NotRequired, TypedDict

import orjson
import sentry_sdk
from pydantic import ValidationError
from urllib3 import BaseHTTPResponse, HTTPConnectionPool, Retry, connection_from_url
from urllib3.exceptions import HTTPError

from designdiff.conf import Settings
from designdiff.image_diff.codec import ImageSource, as_data_uri, encode_data_uri
from designdiff.image_diff.types import DiffResult

from .prompts import SYSTEM_PROMPT, USER_PROMPT
from .types import AnalysisResult

logger = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"
MAX_TOKENS = 6000
TEMPERATURE = 0.1
ANALYSIS_RETRIES = 0

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class AnalysisError(Exception):
    pass


class MissingCredentials(AnalysisError):
    def __init__(self) -> None:
        super().__init__("No API key configured for the analysis service")


class AnalysisRequestFailed(AnalysisError):
    def __init__(self, message: str, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class InvalidAnalysisResponse(AnalysisError):
    pass


class ImageUrl(TypedDict):
    url: str
    detail: Literal["low", "high", "auto"]


class ContentPart(TypedDict):
    type: Literal["text", "image_url"]
    text: NotRequired[str]
    image_url: NotRequired[ImageUrl]


class ChatMessage(TypedDict):
    role: Literal["system", "user"]
    content: str | list[ContentPart]


class ChatCompletionRequest(TypedDict):
    model: str
    messages: list[ChatMessage]
    max_tokens: int
    temperature: float


@sentry_sdk.tracing.trace
def make_chat_completion_request(
    connection_pool: HTTPConnectionPool,
    body: ChatCompletionRequest,
    api_key: str,
    timeout: int | float | None = None,
    retries: int | None | Retry = None,
) -> BaseHTTPResponse:
    headers = {
        "content-type": "application/json;charset=utf-8",
        "authorization": f"Bearer {api_key}",
    }
    options: dict[str, Any] = {}
    if timeout:
        options["timeout"] = timeout
    if retries is not None:
        options["retries"] = retries

    return connection_pool.urlopen(
        "POST",
        CHAT_COMPLETIONS_PATH,
        body=orjson.dumps(body),
        headers=headers,
        **options,
    )


def extract_json(content: str) -> str:
    """Strip an optional markdown code fence around a JSON reply."""
    text = content.strip()
    match = _FENCE_RE.search(text)
    if match:
        return match.group(1).strip()
    return text


def parse_analysis(content: str) -> AnalysisResult:
    try:
        return AnalysisResult.model_validate(orjson.loads(extract_json(content)))
    except orjson.JSONDecodeError as e:
        raise InvalidAnalysisResponse("analysis reply is not valid JSON") from e
    except ValidationError as e:
        raise InvalidAnalysisResponse(f"analysis reply does not match the schema: {e}") from e


def _error_message(response: BaseHTTPResponse) -> str:
    try:
        payload = orjson.loads(response.data)
        message = payload["error"]["message"]
    except (orjson.JSONDecodeError, KeyError, TypeError):
        return f"HTTP {response.status}"
    return str(message)


def _image_part(url: str) -> ContentPart:
    return {"type": "image_url", "image_url": {"url": url, "detail": "high"}}


class AnalysisClient:
    """
    Sends the before, after and diff images to a chat-completion endpoint in one multimodal
    request and validates the JSON it returns.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        connection_pool: HTTPConnectionPool | None = None,
    ) -> None:
        self.settings = settings or Settings.from_env()
        self.connection_pool = connection_pool or connection_from_url(
            self.settings.openai_url,
            timeout=self.settings.analysis_timeout,
            retries=ANALYSIS_RETRIES,
            maxsize=10,
        )

    def build_request(self, before: str, after: str, diff: str) -> ChatCompletionRequest:
        return {
            "model": self.settings.openai_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": USER_PROMPT},
                        _image_part(before),
                        _image_part(after),
                        _image_part(diff),
                    ],
                },
            ],
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }

    def analyze(
        self,
        before: ImageSource,
        after: ImageSource,
        diff: DiffResult | ImageSource,
    ) -> AnalysisResult:
        api_key = self.settings.openai_api_key
        if not api_key:
            raise MissingCredentials()

        diff_uri = (
            encode_data_uri(diff.diff_image) if isinstance(diff, DiffResult) else as_data_uri(diff)
        )
        body = self.build_request(as_data_uri(before), as_data_uri(after), diff_uri)

        try:
            response = make_chat_completion_request(
                self.connection_pool,
                body,
                api_key=api_key,
                timeout=self.settings.analysis_timeout,
                retries=ANALYSIS_RETRIES,
            )
        except HTTPError as e:
            logger.exception("Analysis request failed")
            raise AnalysisRequestFailed(f"Network error: {e}") from e

        if response.status < 200 or response.status >= 300:
            logger.error(
                "Analysis service returned an error",
                extra={"status_code": response.status, "model": self.settings.openai_model},
            )
            raise AnalysisRequestFailed(_error_message(response), status=response.status)

        try:
            content = orjson.loads(response.data)["choices"][0]["message"]["content"]
        except (orjson.JSONDecodeError, KeyError, IndexError, TypeError) as e:
            raise InvalidAnalysisResponse("analysis service returned an unexpected payload") from e
        if not isinstance(content, str) or not content.strip():
            raise InvalidAnalysisResponse("analysis service returned an empty reply")

        result = parse_analysis(content)
        logger.info(
            "Analysis complete",
            extra={
                "annotations": len(result.change_annotations),
                "tasks": len(result.actionable_tasks),
            },
        )
        return result
