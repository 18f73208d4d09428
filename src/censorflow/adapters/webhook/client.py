"""HTTP client for a generic moderation service."""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from censorflow.adapters.http_resilience import ResilientClient
from censorflow.config.http_resilience import POLL_METHOD, SUBMIT_METHOD
from censorflow.config.webhook import WebhookProviderConfig
from censorflow.domain.errors import CallbackInvalidError, ErrorCategory, ProviderError
from censorflow.domain.model import Mode, ResourceType
from censorflow.domain.ports import CallbackData, Capability, QueryResponse, SubmitResponse

from .schema import ErrorResponse, ModerationRequest, ModerationResponse, raw_payload
from .translator import WebhookTranslator, build_scene_map, parse_review_result

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from censorflow.config.http_resilience import ResilienceConfig
    from censorflow.domain.ports import Provider, SubmitRequest
    from censorflow.domain.violation import SceneCapability, Translator, UnifiedScene

log = getLogger(__name__)

MODERATIONS_PATH = "/v1/moderations"
SIGNATURE_HEADER = "X-Signature"
MAX_TEXT_LENGTH = 10000


def sign_payload(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class WebhookModerationProvider:
    """Submits content to ``POST /v1/moderations`` and polls ``GET /v1/moderations/{id}``.

    The service answers either with a finished verdict (sync) or with a pending task id
    that is resolved by polling or by a signed callback.
    """

    def __init__(
        self,
        config: WebhookProviderConfig,
        *,
        client: ResilientClient | None = None,
    ) -> None:
        self.config = config
        self._scene_map = build_scene_map(config.name)
        self._translator = WebhookTranslator(config.name)
        self._client = client or ResilientClient(self._resilience_with_auth())

    def _resilience_with_auth(self) -> ResilienceConfig:
        headers = dict(self.config.resilience.default_headers or {})
        headers.setdefault("Authorization", f"Bearer {self.config.api_key}")
        return replace(
            self.config.resilience,
            base_url=self.config.resilience.base_url or self.config.base_url,
            default_headers=headers,
        )

    @property
    def name(self) -> str:
        return self.config.name

    async def aclose(self) -> None:
        await self._client.aclose()

    def capabilities(self) -> Sequence[Capability]:
        return [
            Capability(resource_type=ResourceType.TEXT, modes=(Mode.SYNC, Mode.ASYNC)),
            Capability(resource_type=ResourceType.IMAGE, modes=(Mode.SYNC, Mode.ASYNC)),
            Capability(resource_type=ResourceType.VIDEO, modes=(Mode.ASYNC,)),
        ]

    def scene_capability(self) -> SceneCapability:
        return self._scene_map.capability(
            max_text_length=MAX_TEXT_LENGTH, sync_supported=True, async_supported=True
        )

    def translate_scenes(
        self, scenes: Sequence[UnifiedScene], resource_type: ResourceType
    ) -> list[str]:
        return self._scene_map.translate(scenes, resource_type)

    def translator(self) -> Translator | None:
        return self._translator

    async def submit(self, request: SubmitRequest) -> SubmitResponse:
        resource = request.resource
        payload = ModerationRequest(
            resource_id=resource.resource_id,
            type=str(resource.type),
            text=resource.content_text or None,
            url=resource.content_url or None,
            scenes=self.translate_scenes(request.scenes, resource.type),
            biz_type=str(request.biz.biz_type),
            biz_id=request.biz.biz_id,
            submitter_id=request.biz.submitter_id or None,
            trace_id=request.biz.trace_id or None,
            timeout=request.timeout,
        )
        response = await self._perform(
            SUBMIT_METHOD, MODERATIONS_PATH, json=payload.model_dump(mode="json", exclude_none=True)
        )

        result = parse_review_result(response, self.name)
        if result is None:
            return SubmitResponse(mode=Mode.ASYNC, task_id=response.id, raw=raw_payload(response))
        return SubmitResponse(
            mode=Mode.SYNC, task_id=response.id, immediate=result, raw=raw_payload(response)
        )

    async def query(self, task_id: str) -> QueryResponse:
        response = await self._perform(POLL_METHOD, f"{MODERATIONS_PATH}/{task_id}")
        result = parse_review_result(response, self.name)
        return QueryResponse(done=result is not None, result=result, raw=raw_payload(response))

    async def verify_callback(self, headers: Mapping[str, str], body: bytes) -> None:
        secret = self.config.callback_secret
        if not secret:
            raise CallbackInvalidError("no callback secret configured")

        lowered = {key.lower(): value for key, value in headers.items()}
        signature = lowered.get(SIGNATURE_HEADER.lower(), "")
        if not signature:
            raise CallbackInvalidError(f"missing {SIGNATURE_HEADER} header")
        if not hmac.compare_digest(signature, sign_payload(secret, body)):
            raise CallbackInvalidError("signature mismatch")

    async def parse_callback(self, body: bytes) -> CallbackData:
        try:
            response = ModerationResponse.model_validate_json(body)
        except PydanticValidationError as exc:
            raise CallbackInvalidError(f"malformed callback payload: {exc}") from exc

        result = parse_review_result(response, self.name)
        return CallbackData(
            task_id=response.id,
            done=result is not None,
            result=result,
            raw=raw_payload(response),
        )

    async def _perform(self, method: str, url: str, **kwargs: Any) -> ModerationResponse:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise ProviderError(
                self.name,
                "timeout",
                str(exc) or "request timed out",
                category=ErrorCategory.TIMEOUT,
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderError(
                self.name,
                "network",
                str(exc) or type(exc).__name__,
                category=ErrorCategory.NETWORK,
            ) from exc

        payload = _json_or_none(response)
        if response.is_error:
            raise self._http_error(response, payload)

        try:
            return ModerationResponse.model_validate(payload)
        except PydanticValidationError as exc:
            log.error(f"Unexpected {self.name} response payload: {exc}")
            raise ProviderError(
                self.name,
                "invalid_response",
                "unexpected moderation response payload",
                status_code=response.status_code,
                raw=payload,
            ) from exc

    def _http_error(self, response: httpx.Response, payload: object) -> ProviderError:
        code, message = f"http_{response.status_code}", response.reason_phrase
        if isinstance(payload, dict) and isinstance(payload.get("error"), (dict, str)):
            detail = ErrorResponse.model_validate(payload).error
            code, message = detail.code, detail.message or message
        log.error(f"{self.name} API error {response.status_code}/{code}: {message}")
        return ProviderError(
            self.name, code, message, status_code=response.status_code, raw=payload
        )


def _json_or_none(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError:
        return None


if TYPE_CHECKING:
    _provider_check: Provider = WebhookModerationProvider(
        WebhookProviderConfig.from_environment()
    )
