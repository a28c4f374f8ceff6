import logging
from typing import Dict, Iterable, List

from src.weather_engine.models import WeatherCondition
from src.weather_engine.services.db_service_async import AsyncDBService

logger = logging.getLogger(__name__)

DEFAULT_CONDITION_NAME = "Clear"
DEFAULT_CONDITION_DESCRIPTION = "Clear sky"
DEFAULT_CONDITION_ICON = "01d"


class ConditionRegistry:
    """Read-mostly access to the weather condition lookup table.

    Conditions are created lazily the first time a name is needed and are
    never updated or deleted.
    """

    def __init__(self, db_service: AsyncDBService) -> None:
        self.db_service = db_service

    async def get_or_create(
        self, name: str, description: str, icon_code: str
    ) -> WeatherCondition:
        existing = await self.db_service.get_condition_by_name(name)
        if existing is not None:
            return existing
        condition = await self.db_service.insert_or_get_condition(
            name, description, icon_code
        )
        logger.info(f"🆕 Weather condition '{name}' id={condition.id}")
        return condition

    async def get_or_create_default(self) -> WeatherCondition:
        return await self.get_or_create(
            DEFAULT_CONDITION_NAME,
            DEFAULT_CONDITION_DESCRIPTION,
            DEFAULT_CONDITION_ICON,
        )

    async def list(self) -> List[WeatherCondition]:
        """Return every condition in ascending id order."""
        return await self.db_service.list_conditions()

    async def by_ids(self, ids: Iterable[int]) -> Dict[int, WeatherCondition]:
        conditions = await self.db_service.get_conditions_by_ids(ids)
        return {c.id: c for c in conditions}
