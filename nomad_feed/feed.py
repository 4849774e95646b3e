"""Realtime weather/air-quality feed: cache, upstream fetch, synthetic fallback, merge."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union

try:
    import redis  # type: ignore
except ImportError:  # pragma: no cover - optional dependency
    redis = None

from nomad_feed import config
from nomad_feed.cache_store import InMemoryReadingCache, ReadingCache, RedisReadingCache
from nomad_feed.cities import CityCoordinate, resolve_city
from nomad_feed.data_sources import (
    SyntheticGenerator,
    UpstreamReadingSource,
    attempt_fetch,
    build_upstream_source,
)
from nomad_feed.domain import (
    AirQualityReading,
    CombinedReading,
    PartialFailure,
    Reading,
    ReadingKind,
    ReadingResult,
    ReadingSource,
    WeatherReading,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="feed")

BatchOutcome = Union[ReadingResult, PartialFailure]


@dataclass(frozen=True)
class KindPolicy:
    """Caching and pacing knobs for one reading kind."""
    ttl_seconds: float
    batch_size: int
    batch_delay_seconds: float


DEFAULT_POLICIES: Dict[ReadingKind, KindPolicy] = {
    ReadingKind.WEATHER: KindPolicy(ttl_seconds=300, batch_size=5, batch_delay_seconds=1.0),
    ReadingKind.AIR_QUALITY: KindPolicy(ttl_seconds=600, batch_size=3, batch_delay_seconds=1.5),
}


@dataclass
class _Lane:
    """Everything needed to produce one kind of reading."""
    kind: ReadingKind
    cache: ReadingCache
    policy: KindPolicy
    fetch: Optional[Callable[[CityCoordinate], Reading]]
    synthesize: Callable[[str], Reading]


class RealtimeFeed:
    """Serves per-city readings from cache, upstream, or the synthetic generator.

    Build one instance at startup and share it; each reading kind owns its
    cache, so concurrent weather and air-quality lookups never touch the same
    map.
    """

    def __init__(
        self,
        weather_cache: ReadingCache[WeatherReading],
        air_quality_cache: ReadingCache[AirQualityReading],
        upstream: Optional[UpstreamReadingSource] = None,
        synthetic: Optional[SyntheticGenerator] = None,
        policies: Optional[Dict[ReadingKind, KindPolicy]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.upstream = upstream
        self.synthetic = synthetic or SyntheticGenerator()
        self._sleep = sleep
        policies = {**DEFAULT_POLICIES, **(policies or {})}
        self._lanes: Dict[ReadingKind, _Lane] = {
            ReadingKind.WEATHER: _Lane(
                kind=ReadingKind.WEATHER,
                cache=weather_cache,
                policy=policies[ReadingKind.WEATHER],
                fetch=upstream.fetch_weather if upstream else None,
                synthesize=self.synthetic.weather,
            ),
            ReadingKind.AIR_QUALITY: _Lane(
                kind=ReadingKind.AIR_QUALITY,
                cache=air_quality_cache,
                policy=policies[ReadingKind.AIR_QUALITY],
                fetch=upstream.fetch_air_quality if upstream else None,
                synthesize=self.synthetic.air_quality,
            ),
        }

    @property
    def upstream_enabled(self) -> bool:
        return self.upstream is not None

    def cache_for(self, kind: ReadingKind | str) -> ReadingCache:
        return self._lanes[ReadingKind(kind)].cache

    def policy_for(self, kind: ReadingKind | str) -> KindPolicy:
        return self._lanes[ReadingKind(kind)].policy

    async def _produce(self, lane: _Lane, city: CityCoordinate) -> Tuple[Reading, ReadingSource]:
        """Fetch from upstream when configured; otherwise or on UpstreamError, synthesize."""
        if lane.fetch is None:
            logger.info(f"Using synthetic {lane.kind.value} data for {city.city_id} (no API key)")
        else:
            # requests is blocking; keep the event loop free while it runs
            result = await asyncio.to_thread(attempt_fetch, lane.fetch, city)
            if result.ok:
                return result.reading, ReadingSource.UPSTREAM
            logger.warning(
                f"Upstream {lane.kind.value} failed for {city.city_id}, using synthetic data: {result.error}",
                extra={"status_code": result.error.status_code if result.error else None},
            )
        return lane.synthesize(city.city_id), ReadingSource.SYNTHETIC

    async def get_reading(self, kind: ReadingKind | str, city_id: str) -> ReadingResult:
        """Return one reading for a city, with `cached` telling whether it came from the cache.

        Raises UnknownCityError for ids outside the coordinate table. Upstream
        failures never escape; whatever reading is produced is cached for the
        kind's TTL, synthetic ones included.
        """
        lane = self._lanes[ReadingKind(kind)]
        city = resolve_city(city_id)

        # cache backends may do blocking I/O (Redis); run them in a worker thread
        entry = await asyncio.to_thread(lane.cache.get_entry, city.city_id)
        if entry is not None:
            return ReadingResult(
                reading=entry.value,
                cached=True,
                source=ReadingSource.CACHE,
                cache_expiry=entry.expires_at_datetime(),
            )

        reading, source = await self._produce(lane, city)
        await asyncio.to_thread(lane.cache.put, city.city_id, reading, lane.policy.ttl_seconds)
        return ReadingResult(reading=reading, cached=False, source=source)

    async def get_weather(self, city_id: str) -> ReadingResult:
        return await self.get_reading(ReadingKind.WEATHER, city_id)

    async def get_air_quality(self, city_id: str) -> ReadingResult:
        return await self.get_reading(ReadingKind.AIR_QUALITY, city_id)

    async def get_environment(self, city_id: str) -> CombinedReading:
        """Fetch weather and air quality concurrently and merge them.

        An unknown city raises UnknownCityError before any work starts. If one
        kind fails anyway, the other is still returned and the failure is
        recorded in `errors`.
        """
        city = resolve_city(city_id)
        kinds = (ReadingKind.WEATHER, ReadingKind.AIR_QUALITY)
        outcomes = await asyncio.gather(
            *(self.get_reading(kind, city.city_id) for kind in kinds),
            return_exceptions=True,
        )
        return _merge(city, dict(zip(kinds, outcomes)))

    async def get_many(self, kind: ReadingKind | str, city_ids: Iterable[str]) -> Dict[str, BatchOutcome]:
        """Fetch one kind for several cities in paced batches.

        Batches run concurrently inside, with the kind's delay between batches
        to stay under the upstream rate limit. A failing city yields a
        PartialFailure for that city only.
        """
        lane = self._lanes[ReadingKind(kind)]
        ids = list(dict.fromkeys(city_ids))
        size = max(1, lane.policy.batch_size)
        results: Dict[str, BatchOutcome] = {}

        for start in range(0, len(ids), size):
            batch = ids[start:start + size]
            outcomes = await asyncio.gather(
                *(self.get_reading(lane.kind, city_id) for city_id in batch),
                return_exceptions=True,
            )
            for city_id, outcome in zip(batch, outcomes):
                if isinstance(outcome, Exception):
                    logger.warning(f"Batch {lane.kind.value} failed for {city_id}: {outcome}")
                    results[city_id] = PartialFailure.from_exception(lane.kind, outcome)
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    results[city_id] = outcome
            if start + size < len(ids) and lane.policy.batch_delay_seconds > 0:
                await self._sleep(lane.policy.batch_delay_seconds)

        return results

    async def get_environments(self, city_ids: Iterable[str]) -> Dict[str, Union[CombinedReading, PartialFailure]]:
        """Batch variant of get_environment; unknown ids map to a PartialFailure."""
        ids = list(dict.fromkeys(city_ids))
        out: Dict[str, Union[CombinedReading, PartialFailure]] = {}
        known: List[CityCoordinate] = []
        for city_id in ids:
            try:
                known.append(resolve_city(city_id))
            except LookupError as exc:
                out[city_id] = PartialFailure.from_exception(ReadingKind.WEATHER, exc)

        known_ids = [city.city_id for city in known]
        weather, air_quality = await asyncio.gather(
            self.get_many(ReadingKind.WEATHER, known_ids),
            self.get_many(ReadingKind.AIR_QUALITY, known_ids),
        )
        for city in known:
            out[city.city_id] = _merge(city, {
                ReadingKind.WEATHER: weather[city.city_id],
                ReadingKind.AIR_QUALITY: air_quality[city.city_id],
            })
        return {city_id: out[city_id] for city_id in ids}

    def cache_stats(self) -> Dict[str, Any]:
        return {lane.kind.response_key: lane.cache.stats() for lane in self._lanes.values()}

    def clear_caches(self) -> None:
        for lane in self._lanes.values():
            lane.cache.clear()
        logger.info("Cleared realtime reading caches")


def _merge(city: CityCoordinate, outcomes: Dict[ReadingKind, Any]) -> CombinedReading:
    """Combine per-kind outcomes (results, PartialFailures or exceptions) into one record."""
    readings: Dict[ReadingKind, ReadingResult] = {}
    errors: Dict[ReadingKind, PartialFailure] = {}
    for kind, outcome in outcomes.items():
        if isinstance(outcome, ReadingResult):
            readings[kind] = outcome
        elif isinstance(outcome, PartialFailure):
            errors[kind] = outcome
        elif isinstance(outcome, Exception):
            logger.error(f"{kind.value} reading failed for {city.city_id}: {outcome!r}")
            errors[kind] = PartialFailure.from_exception(kind, outcome)
        else:
            raise outcome

    weather = readings.get(ReadingKind.WEATHER)
    air = readings.get(ReadingKind.AIR_QUALITY)
    timestamps = [r.reading.updated_at for r in readings.values()]
    return CombinedReading(
        city_id=city.city_id,
        city_name=city.name,
        weather=weather.reading if weather else None,
        air_quality=air.reading if air else None,
        weather_cached=weather.cached if weather else False,
        air_quality_cached=air.cached if air else False,
        last_updated=max(timestamps) if timestamps else None,
        errors=errors,
    )


def _init_caches(settings: config.Settings) -> Tuple[ReadingCache, ReadingCache]:
    """Pick Redis-backed caches when configured and reachable, in-memory otherwise."""
    max_entries = settings.cache_max_entries
    logger.debug(
        f"Initializing reading caches: redis_url='{settings.cache_redis_url or 'None'}', "
        f"redis package present: {'yes' if redis else 'no'}"
    )
    if settings.cache_redis_url and redis:
        try:
            client = redis.Redis.from_url(settings.cache_redis_url)
            client.ping()
            logger.info("Using RedisReadingCache", extra={"redis_url": settings.cache_redis_url})
            prefix = settings.cache_redis_prefix
            return (
                RedisReadingCache(client, WeatherReading, name="weather", max_entries=max_entries, prefix=prefix),
                RedisReadingCache(client, AirQualityReading, name="air_quality", max_entries=max_entries,
                                  prefix=prefix),
            )
        except Exception as exc:  # pragma: no cover - defensive
            logger.warning("Falling back to InMemoryReadingCache (Redis unavailable)", extra={"error": str(exc)})
    return (
        InMemoryReadingCache(name="weather", max_entries=max_entries),
        InMemoryReadingCache(name="air_quality", max_entries=max_entries),
    )


def build_feed(settings: config.Settings | None = None) -> RealtimeFeed:
    """Construct the process-wide feed from configuration."""
    settings = settings or config.settings
    weather_cache, air_quality_cache = _init_caches(settings)
    policies = {
        ReadingKind.WEATHER: KindPolicy(
            ttl_seconds=settings.weather_ttl_seconds,
            batch_size=settings.weather_batch_size,
            batch_delay_seconds=settings.weather_batch_delay_seconds,
        ),
        ReadingKind.AIR_QUALITY: KindPolicy(
            ttl_seconds=settings.air_quality_ttl_seconds,
            batch_size=settings.air_quality_batch_size,
            batch_delay_seconds=settings.air_quality_batch_delay_seconds,
        ),
    }
    return RealtimeFeed(
        weather_cache=weather_cache,
        air_quality_cache=air_quality_cache,
        upstream=build_upstream_source(settings),
        policies=policies,
    )
