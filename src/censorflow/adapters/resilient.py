"""Retrying, API-logging decorator for any :class:`~censorflow.domain.ports.Provider`."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from censorflow.common.retry import RetryConfig, Retryer
from censorflow.domain.errors import ProviderError

from .api_logging import APILogEntry, APILogger, LoggingAPILogger, LogTimer, NopAPILogger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence

    from censorflow.domain.model import ResourceType
    from censorflow.domain.ports import (
        CallbackData,
        Capability,
        Provider,
        QueryResponse,
        SubmitRequest,
        SubmitResponse,
    )
    from censorflow.domain.violation import SceneCapability, Translator, UnifiedScene


@dataclass(slots=True, frozen=True)
class ResilientConfig:
    """``retry=None`` disables retries; ``logger=None`` uses :class:`LoggingAPILogger`."""

    retry: RetryConfig | None = field(default_factory=RetryConfig)
    logger: APILogger | None = None
    enable_logging: bool = True


class ResilientProvider:
    def __init__(
        self,
        provider: Provider,
        config: ResilientConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self.config = config or ResilientConfig()
        self._retryer = (
            Retryer(self.config.retry, sleep=sleep) if self.config.retry is not None else None
        )
        if not self.config.enable_logging:
            self._logger: APILogger = NopAPILogger()
        else:
            self._logger = self.config.logger or LoggingAPILogger()

    @property
    def name(self) -> str:
        return self._provider.name

    def unwrap(self) -> Provider:
        return self._provider

    def capabilities(self) -> Sequence[Capability]:
        return self._provider.capabilities()

    def scene_capability(self) -> SceneCapability:
        return self._provider.scene_capability()

    def translate_scenes(
        self, scenes: Sequence[UnifiedScene], resource_type: ResourceType
    ) -> list[str]:
        return self._provider.translate_scenes(scenes, resource_type)

    def translator(self) -> Translator | None:
        return self._provider.translator()

    async def submit(self, request: SubmitRequest) -> SubmitResponse:
        timer = (
            LogTimer(self.name, "submit")
            .resource(str(request.resource.type), request.resource.resource_id)
            .request(sanitize_request(request))
        )
        failures = 0

        async def attempt() -> SubmitResponse:
            nonlocal failures
            try:
                return await self._provider.submit(request)
            except Exception:
                failures += 1
                raise

        try:
            response = await self._call(attempt)
        except Exception as exc:
            self._logger.log(_failed(timer.retries(failures), exc))
            raise

        timer.task(response.task_id).retries(failures).response(sanitize_response(response))
        self._logger.log(timer.finish())
        return response

    async def query(self, task_id: str) -> QueryResponse:
        timer = LogTimer(self.name, "query").task(task_id)
        failures = 0

        async def attempt() -> QueryResponse:
            nonlocal failures
            try:
                return await self._provider.query(task_id)
            except Exception:
                failures += 1
                raise

        try:
            response = await self._call(attempt)
        except Exception as exc:
            self._logger.log(_failed(timer.retries(failures), exc))
            raise

        timer.retries(failures).entry.extra["done"] = response.done
        self._logger.log(timer.finish())
        return response

    async def verify_callback(self, headers: Mapping[str, str], body: bytes) -> None:
        await self._provider.verify_callback(headers, body)

    async def parse_callback(self, body: bytes) -> CallbackData:
        timer = LogTimer(self.name, "callback")
        try:
            data = await self._provider.parse_callback(body)
        except Exception as exc:
            self._logger.log(_failed(timer, exc))
            raise
        timer.task(data.task_id).entry.extra["done"] = data.done
        self._logger.log(timer.finish())
        return data

    async def _call[T](self, func: Callable[[], Awaitable[T]]) -> T:
        if self._retryer is None:
            return await func()
        return await self._retryer.call(func)


def _failed(timer: LogTimer, exc: BaseException) -> APILogEntry:
    if isinstance(exc, ProviderError):
        timer.error(exc.code, exc.message, exc.status_code)
    else:
        timer.error(type(exc).__name__, str(exc))
    return timer.finish()


def sanitize_request(request: SubmitRequest) -> dict[str, Any]:
    return {
        "resource_id": request.resource.resource_id,
        "resource_type": str(request.resource.type),
        "biz_type": str(request.biz.biz_type),
        "biz_id": request.biz.biz_id,
        "has_text": bool(request.resource.content_text),
        "has_url": bool(request.resource.content_url),
    }


def sanitize_response(response: SubmitResponse) -> dict[str, Any]:
    result: dict[str, Any] = {"mode": str(response.mode), "task_id": response.task_id}
    if response.immediate is not None:
        result["decision"] = str(response.immediate.decision)
        result["confidence"] = response.immediate.confidence
    return result


def wrap_with_resilience(provider: Provider) -> ResilientProvider:
    return ResilientProvider(provider, ResilientConfig())


def wrap_with_retry(provider: Provider, max_retries: int = 3) -> ResilientProvider:
    return ResilientProvider(
        provider,
        ResilientConfig(retry=RetryConfig(max_retries=max_retries), enable_logging=False),
    )


def wrap_with_logging(provider: Provider, logger: APILogger | None = None) -> ResilientProvider:
    return ResilientProvider(provider, ResilientConfig(retry=None, logger=logger))
