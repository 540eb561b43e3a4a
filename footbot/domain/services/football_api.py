"""
API-Football v3 client - live fixtures and per-fixture events.

Raw payloads are validated into the models in footbot.domain.fixtures here;
entries that fail validation are skipped with a warning.
"""
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from footbot.core.circuit_breaker import CircuitBreaker, get_football_api_circuit_breaker
from footbot.core.exceptions import FootballApiError, ServiceTimeoutError
from footbot.core.logging import get_logger
from footbot.domain.fixtures import Fixture, FixtureEvent

logger = get_logger(__name__)

API_BASE_URL = "https://v3.football.api-sports.io"
REQUEST_TIMEOUT_SECONDS = 15.0

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse_items(raw_items: Any, model: type[ModelT], operation: str) -> list[ModelT]:
    if not isinstance(raw_items, list):
        return []

    items: list[ModelT] = []
    for raw in raw_items:
        try:
            items.append(model.model_validate(raw))
        except ValidationError as e:
            logger.warning(
                "Skipping invalid API-Football item",
                extra_data={"operation": operation, "error": str(e)},
            )
    return items


class FootballApiClient:
    def __init__(
        self,
        api_key: str,
        timezone: str = "Europe/Prague",
        *,
        circuit_breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.timezone = timezone
        self._circuit_breaker = circuit_breaker or get_football_api_circuit_breaker()
        self._transport = transport

    async def _get(self, path: str, params: dict[str, Any]) -> Any:
        async def _request() -> Any:
            async with httpx.AsyncClient(
                base_url=API_BASE_URL,
                timeout=REQUEST_TIMEOUT_SECONDS,
                headers={"x-apisports-key": self.api_key},
                transport=self._transport,
            ) as client:
                try:
                    response = await client.get(path, params=params)
                except httpx.TimeoutException:
                    raise ServiceTimeoutError("api_football", REQUEST_TIMEOUT_SECONDS)
                except httpx.HTTPError as e:
                    raise FootballApiError(f"GET {path} failed: {e}")
                if response.status_code != 200:
                    raise FootballApiError.from_response(f"GET {path}", response)
                return response.json()

        data = await self._circuit_breaker.execute(_request)
        return data.get("response") if isinstance(data, dict) else None

    async def fetch_live_fixtures(self) -> list[Fixture]:
        raw = await self._get("/fixtures", {"live": "all", "timezone": self.timezone})
        return _parse_items(raw, Fixture, "fixtures")

    async def fetch_fixture_events(self, fixture_id: int) -> list[FixtureEvent]:
        raw = await self._get("/fixtures/events", {"fixture": fixture_id})
        return _parse_items(raw, FixtureEvent, "fixtures/events")
