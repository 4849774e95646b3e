"""HTTP API for realtime city weather and air quality."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from nomad_feed.cities import KOREAN_CITIES
from nomad_feed.domain import CombinedReading, PartialFailure, ReadingKind, ReadingResult
from nomad_feed.errors import UnknownCityError
from nomad_feed.feed import RealtimeFeed
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="nomad_feed/api")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET",
    "Access-Control-Allow-Headers": "Content-Type",
}

MAX_BATCH_CITIES = 20

router = APIRouter()


def get_feed(request: Request) -> RealtimeFeed:
    """Return the feed built at startup."""
    return request.app.state.feed


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def _dump(model) -> Optional[Dict[str, Any]]:
    if model is None:
        return None
    return model.model_dump(mode="json", by_alias=True)


def _combined_payload(combined: CombinedReading) -> Dict[str, Any]:
    return {
        "cityId": combined.city_id,
        "cityName": combined.city_name,
        "weather": _dump(combined.weather),
        "airQuality": _dump(combined.air_quality),
        "lastUpdated": combined.last_updated.isoformat() if combined.last_updated else None,
    }


def _errors_payload(errors: Dict[ReadingKind, PartialFailure]) -> Dict[str, str]:
    return {kind.response_key: failure.message for kind, failure in errors.items()}


def _single_kind_payload(result: ReadingResult) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "success": True,
        "data": _dump(result.reading),
        "cached": result.cached,
        "source": result.source.value,
    }
    if result.cache_expiry is not None:
        body["cacheExpiry"] = result.cache_expiry.isoformat()
    return body


@router.get("/realtime/{city_id}")
async def get_realtime(city_id: str, feed: RealtimeFeed = Depends(get_feed)):
    """Weather and air quality for one city; 206 when only one kind is available."""
    try:
        combined = await feed.get_environment(city_id)
    except UnknownCityError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))
    except Exception as exc:
        logger.exception(f"Realtime route error for {city_id}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Unknown error")

    if combined.is_complete and not combined.is_partial:
        return JSONResponse({
            "success": True,
            "data": _combined_payload(combined),
            "cached": {
                "weather": combined.weather_cached,
                "airQuality": combined.air_quality_cached,
            },
        })

    logger.warning(f"Partial realtime data for {city_id}: {_errors_payload(combined.errors)}")
    return JSONResponse(
        {
            "success": False,
            "data": {
                "weather": _dump(combined.weather),
                "airQuality": _dump(combined.air_quality),
            },
            "errors": _errors_payload(combined.errors),
        },
        status_code=status.HTTP_206_PARTIAL_CONTENT,
    )


@router.get("/realtime")
async def get_realtime_batch(
    city_ids: str = Query(..., alias="cityIds", description="Comma-separated city ids"),
    feed: RealtimeFeed = Depends(get_feed),
):
    """Batch variant of /realtime/{cityId}, paced to respect upstream rate limits."""
    ids = [c.strip() for c in city_ids.split(",") if c.strip()]
    if not ids:
        return _error(status.HTTP_400_BAD_REQUEST, "No city ids given")
    if len(ids) > MAX_BATCH_CITIES:
        return _error(status.HTTP_400_BAD_REQUEST, f"Too many city ids; limit {MAX_BATCH_CITIES}")

    try:
        results = await feed.get_environments(ids)
    except Exception as exc:
        logger.exception("Batch realtime route error")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Unknown error")

    data: Dict[str, Any] = {}
    errors: Dict[str, Any] = {}
    for city_id, outcome in results.items():
        if isinstance(outcome, PartialFailure):
            data[city_id] = None
            errors[city_id] = outcome.message
            continue
        data[city_id] = _combined_payload(outcome)
        if outcome.is_partial:
            errors[city_id] = _errors_payload(outcome.errors)

    if errors:
        return JSONResponse(
            {"success": False, "data": data, "errors": errors},
            status_code=status.HTTP_206_PARTIAL_CONTENT,
        )
    return JSONResponse({"success": True, "data": data})


async def _single_kind(kind: ReadingKind, city_id: str, feed: RealtimeFeed) -> JSONResponse:
    try:
        result = await feed.get_reading(kind, city_id)
    except UnknownCityError as exc:
        # single-kind routes report lookup failures in the envelope, not the status
        return JSONResponse({"success": False, "error": str(exc)})
    except Exception as exc:
        logger.exception(f"{kind.value} route error for {city_id}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Unknown error")
    return JSONResponse(_single_kind_payload(result))


@router.get("/weather/{city_id}")
async def get_weather(city_id: str, feed: RealtimeFeed = Depends(get_feed)):
    """Current weather only."""
    return await _single_kind(ReadingKind.WEATHER, city_id, feed)


@router.get("/air-quality/{city_id}")
async def get_air_quality(city_id: str, feed: RealtimeFeed = Depends(get_feed)):
    """Current air quality only."""
    return await _single_kind(ReadingKind.AIR_QUALITY, city_id, feed)


@router.get("/cities")
def list_cities():
    """Static coordinate table for the supported cities."""
    return {
        "success": True,
        "data": [
            {
                "cityId": city.city_id,
                "name": city.name,
                "latitude": city.latitude,
                "longitude": city.longitude,
                "region": city.region,
            }
            for city in KOREAN_CITIES
        ],
    }


@router.get("/cache/stats")
def cache_stats(feed: RealtimeFeed = Depends(get_feed)):
    """Entry counts and expiry times for both reading caches."""
    return {"success": True, "upstreamEnabled": feed.upstream_enabled, "data": feed.cache_stats()}
