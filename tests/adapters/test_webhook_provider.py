from __future__ import annotations

import asyncio
import json
from collections.abc import Callable  # noqa: TC003

import httpx
import pytest

from censorflow.adapters.http_resilience import ResilienceConfig, ResilientClient
from censorflow.adapters.webhook import (
    MODERATIONS_PATH,
    SIGNATURE_HEADER,
    WebhookModerationProvider,
    sign_payload,
)
from censorflow.config.webhook import WebhookProviderConfig
from censorflow.domain.errors import CallbackInvalidError, ErrorCategory, ProviderError
from censorflow.domain.model import BizContext, BizType, Decision, Mode, Resource, ResourceType
from censorflow.domain.ports import Provider, SubmitRequest
from censorflow.domain.violation import UnifiedScene

_SECRET = "s3cret"

type Handler = Callable[[httpx.Request], httpx.Response]


def _config(callback_secret: str | None = _SECRET) -> WebhookProviderConfig:
    return WebhookProviderConfig(
        base_url="https://moderation.test",
        api_key="key-1",
        resilience=ResilienceConfig(name="webhook"),
        callback_secret=callback_secret,
    )


def _provider(handler: Handler, callback_secret: str | None = _SECRET) -> WebhookModerationProvider:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    client = ResilientClient(ResilienceConfig(name="webhook"))
    client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
        base_url="https://moderation.test", transport=httpx.MockTransport(async_handler)
    )
    return WebhookModerationProvider(_config(callback_secret), client=client)


def _request(text: str = "buy now") -> SubmitRequest:
    return SubmitRequest(
        resource=Resource(resource_id="r1", type=ResourceType.TEXT, content_text=text),
        biz=BizContext(biz_type=BizType.COMMENT, biz_id="c-1", trace_id="trace-1"),
        scenes=(UnifiedScene.ADS, UnifiedScene.HARASSMENT, UnifiedScene.ABUSE),
    )


_COMPLETED = {
    "id": "task-1",
    "status": "completed",
    "result": {
        "decision": "BLOCK",
        "confidence": 1.7,
        "labels": [
            {
                "label": "ad",
                "score": 0.92,
                "keywords": ["buy"],
                "positions": [{"startPos": 0, "endPos": 3}],
            }
        ],
    },
}


def test_webhook_provider_capabilities() -> None:
    provider = WebhookModerationProvider(_config())

    assert isinstance(provider, Provider)
    assert provider.name == "webhook"
    video = next(c for c in provider.capabilities() if c.resource_type == ResourceType.VIDEO)
    assert video.modes == (Mode.ASYNC,)
    assert provider.scene_capability().max_text_length == 10000
    assert provider.translate_scenes(
        [UnifiedScene.HARASSMENT, UnifiedScene.ABUSE, UnifiedScene.MOAN], ResourceType.TEXT
    ) == ["abuse"]


def test_api_key_is_sent_as_bearer_token() -> None:
    provider = WebhookModerationProvider(_config())

    config = provider._client.config  # noqa: SLF001  # type: ignore[reportPrivateUsage]

    assert config.default_headers is not None
    assert config.default_headers["Authorization"] == "Bearer key-1"
    assert config.base_url == "https://moderation.test"


def test_submit_returns_immediate_verdict() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_COMPLETED)

    response = asyncio.run(_provider(handler).submit(_request()))

    assert seen[0].method == "POST"
    assert seen[0].url.path == MODERATIONS_PATH
    assert seen[0].extensions["timeout"]["read"] == 10.0
    body = json.loads(seen[0].content)
    assert body["text"] == "buy now"
    assert body["scenes"] == ["ad", "abuse"]
    assert body["trace_id"] == "trace-1"
    assert "url" not in body
    assert response.mode == Mode.SYNC
    assert response.task_id == "task-1"
    assert response.immediate is not None
    assert response.immediate.decision == Decision.BLOCK
    assert response.immediate.confidence == 1.0
    reason = response.immediate.reasons[0]
    assert reason.code == "ad"
    assert reason.raw == {
        "score": 0.92,
        "keywords": ["buy"],
        "positions": [{"startPos": 0, "endPos": 3}],
    }


def test_pending_submission_is_async() -> None:
    provider = _provider(lambda _: httpx.Response(202, json={"id": "task-9", "status": "pending"}))

    response = asyncio.run(provider.submit(_request()))

    assert response.mode == Mode.ASYNC
    assert response.task_id == "task-9"
    assert response.immediate is None
    assert response.raw == {"id": "task-9", "status": "pending"}


def test_query_maps_failed_task_to_error_decision() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.path == f"{MODERATIONS_PATH}/task-3"
        assert request.extensions["timeout"]["read"] == 5.0
        return httpx.Response(200, json={"id": "task-3", "status": "failed", "error": "bad file"})

    response = asyncio.run(_provider(handler).query("task-3"))

    assert response.done
    assert response.result is not None
    assert response.result.decision == Decision.ERROR
    assert response.result.reasons[0].code == "provider_failed"
    assert response.result.reasons[0].message == "bad file"


def test_query_of_pending_task_is_not_done() -> None:
    provider = _provider(lambda _: httpx.Response(200, json={"id": "t", "status": "pending"}))

    response = asyncio.run(provider.query("t"))

    assert not response.done
    assert response.result is None


def test_http_error_payload_becomes_provider_error() -> None:
    provider = _provider(
        lambda _: httpx.Response(429, json={"error": {"code": "E42", "message": "slow down"}})
    )

    with pytest.raises(ProviderError, match=r"\[429/E42\]: slow down") as excinfo:
        asyncio.run(provider.submit(_request()))

    assert excinfo.value.error_category == ErrorCategory.RATE_LIMIT
    assert excinfo.value.retryable


def test_http_error_without_json_uses_status() -> None:
    provider = _provider(lambda _: httpx.Response(401, text="nope"))

    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(provider.submit(_request()))

    assert excinfo.value.code == "http_401"
    assert excinfo.value.error_category == ErrorCategory.AUTH
    assert not excinfo.value.retryable


def test_unexpected_payload_is_rejected() -> None:
    provider = _provider(lambda _: httpx.Response(200, json={"unexpected": True}))

    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(provider.submit(_request()))

    assert excinfo.value.code == "invalid_response"


@pytest.mark.parametrize(
    ("exc_type", "category"),
    [
        (httpx.ReadTimeout, ErrorCategory.TIMEOUT),
        (httpx.ConnectError, ErrorCategory.NETWORK),
    ],
)
def test_transport_failures_are_categorised(
    exc_type: type[httpx.TransportError], category: ErrorCategory
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type("boom", request=request)

    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(_provider(handler).submit(_request()))

    assert excinfo.value.error_category == category
    assert excinfo.value.retryable


def test_callback_signature_is_verified() -> None:
    provider = _provider(lambda _: httpx.Response(500))
    body = json.dumps(_COMPLETED).encode()

    asyncio.run(
        provider.verify_callback({SIGNATURE_HEADER.lower(): sign_payload(_SECRET, body)}, body)
    )

    with pytest.raises(CallbackInvalidError, match="missing"):
        asyncio.run(provider.verify_callback({}, body))
    with pytest.raises(CallbackInvalidError, match="mismatch"):
        asyncio.run(provider.verify_callback({SIGNATURE_HEADER: "deadbeef"}, body))


def test_callback_requires_configured_secret() -> None:
    provider = _provider(lambda _: httpx.Response(500), callback_secret=None)

    with pytest.raises(CallbackInvalidError, match="no callback secret"):
        asyncio.run(provider.verify_callback({SIGNATURE_HEADER: "x"}, b"{}"))


def test_parse_callback() -> None:
    provider = _provider(lambda _: httpx.Response(500))

    data = asyncio.run(provider.parse_callback(json.dumps(_COMPLETED).encode()))

    assert data.task_id == "task-1"
    assert data.done
    assert data.result is not None
    assert data.result.decision == Decision.BLOCK

    with pytest.raises(CallbackInvalidError):
        asyncio.run(provider.parse_callback(b"{"))
