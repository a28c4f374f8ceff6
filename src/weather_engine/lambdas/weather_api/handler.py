import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from src.weather_engine.exceptions import (
    IncompleteDataError,
    InvalidInputError,
    NotFoundError,
)
from src.weather_engine.services.db_service_async import AsyncDBService
from src.weather_engine.services.logger_service import get_logger
from src.weather_engine.services.secrets_manager_service_async import (
    AsyncSecretsManagerService,
)
from src.weather_engine.services.weather_api_service_async import (
    WeatherApiService,
)
from src.weather_engine.utils.common import get_env_var, get_optional_env_var
from src.weather_engine.utils.validation import (
    optional_text,
    require_text,
    validate_coordinates,
    validate_days,
)

logger = get_logger(__name__)

InputParser = Callable[[Dict[str, Any]], Tuple[Any, ...]]


async def init_services() -> WeatherApiService:
    """Build the weather API service and make sure its tables exist.

    The database URL comes from `DATABASE_URL` when set, otherwise from the
    `db_url` key of the Secrets Manager secret named by `SECRET_NAME_DB`.

    Returns:
        WeatherApiService: Service backed by the configured database.

    Raises:
        EnvironmentError: If neither `DATABASE_URL` nor `SECRET_NAME_DB` is
            set.
        ValueError: If the secret has no usable `db_url`.
    """
    db_url = get_optional_env_var("DATABASE_URL")
    if db_url is None:
        secret_name_db = get_env_var("SECRET_NAME_DB")
        db_url = await AsyncSecretsManagerService().get_db_url(secret_name_db)

    db_service = AsyncDBService(db_url)
    await db_service.create_tables()

    logger.info("✅ Weather API services initialized successfully")
    return WeatherApiService(db_service)


def parse_event(event: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """Split an event into its operation name and input mapping.

    Raises:
        InvalidInputError: If the operation is missing or the input is not a
            mapping.
    """
    operation = event.get("operation")
    if not isinstance(operation, str) or not operation:
        raise InvalidInputError("operation must be a non-empty string")
    payload = event.get("input") or {}
    if not isinstance(payload, dict):
        raise InvalidInputError("input must be an object")
    return operation, payload


def parse_coordinates_input(payload: Dict[str, Any]) -> Tuple[float, float]:
    return validate_coordinates(
        payload.get("latitude"), payload.get("longitude")
    )


def parse_create_location_input(
    payload: Dict[str, Any]
) -> Tuple[str, str, float, float]:
    city = require_text("city", payload.get("city"))
    country = require_text("country", payload.get("country"))
    latitude, longitude = parse_coordinates_input(payload)
    return city, country, latitude, longitude


def parse_city_input(payload: Dict[str, Any]) -> Tuple[str, Optional[str]]:
    city = require_text("city", payload.get("city"))
    country = optional_text("country", payload.get("country"))
    return city, country


def parse_daily_forecast_input(
    payload: Dict[str, Any]
) -> Tuple[float, float, int]:
    latitude, longitude = parse_coordinates_input(payload)
    return latitude, longitude, validate_days(payload.get("days"))


def parse_search_input(payload: Dict[str, Any]) -> str:
    query = payload.get("query")
    if not isinstance(query, str) or not query:
        raise InvalidInputError("query must be a non-empty string")
    return query


def parse_search_input_args(payload: Dict[str, Any]) -> Tuple[str]:
    return (parse_search_input(payload),)


def parse_no_input(payload: Dict[str, Any]) -> Tuple[()]:
    return ()


# operation name -> (input parser, WeatherApiService method)
OPERATIONS: Dict[str, Tuple[InputParser, str]] = {
    "createLocation": (parse_create_location_input, "create_location"),
    "getCurrentWeather": (parse_coordinates_input, "get_current_weather"),
    "getWeatherByCity": (parse_city_input, "get_weather_by_city"),
    "getDailyForecast": (parse_daily_forecast_input, "get_daily_forecast"),
    "searchLocations": (parse_search_input_args, "search_locations"),
    "getWeatherConditions": (parse_no_input, "get_weather_conditions"),
}


async def run_operation(
    service: WeatherApiService, method_name: str, args: Tuple[Any, ...]
) -> Any:
    method: Callable[..., Awaitable[Any]] = getattr(service, method_name)
    return await method(*args)


def _response(status_code: int, body: Any) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "body": json.dumps(body, ensure_ascii=False, default=str),
    }


def healthcheck() -> Dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def async_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Asynchronous AWS Lambda handler entrypoint.

    The event names one operation and its input, e.g.
    `{"operation": "getDailyForecast", "input": {"latitude": 52.2,
    "longitude": 21.0, "days": 3}}`. Input is validated before the service
    is built.

    Args:
        event (Dict[str, Any]): Lambda event payload.
        context (Any): Lambda context object (unused here).

    Returns:
        Dict[str, Any]: Lambda proxy response with `statusCode` and JSON
        `body`. Invalid input maps to 400, unknown cities to 404, incomplete
        stored data to 422 and any other failure to 500.
    """
    try:
        operation, payload = parse_event(event)
        if operation == "healthcheck":
            return _response(200, healthcheck())

        entry = OPERATIONS.get(operation)
        if entry is None:
            raise InvalidInputError(f"Unknown operation: {operation}")
        parse, method_name = entry
        args = parse(payload)

        service = await init_services()
        try:
            result = await run_operation(service, method_name, args)
        finally:
            await service.db_service.dispose()

        logger.info(
            f"✅ {operation} completed",
            extra={"context": {"operation": operation, "input": payload}},
        )
        return _response(200, result)
    except InvalidInputError as e:
        logger.warning(
            f"⚠️ Invalid input: {e}",
            extra={"context": {"event": event}},
        )
        return _response(400, {"error": str(e)})
    except NotFoundError as e:
        return _response(404, {"error": str(e)})
    except IncompleteDataError as e:
        logger.error(f"❗ Incomplete data: {e}")
        return _response(422, {"error": str(e)})
    except Exception as e:
        logger.exception(f"🔥 Handler failed: {e}")
        return _response(500, {"error": str(e)})


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Synchronous Lambda entrypoint that bridges to the async handler.

    Args:
        event (Dict[str, Any]): Lambda event payload.
        context (Any): Lambda context object.

    Returns:
        Dict[str, Any]: Lambda proxy response as produced by `async_handler`.
    """
    return asyncio.run(async_handler(event, context))
