from __future__ import annotations

import logging
import random
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from gatekeepr_common.errors import UpstreamUnavailable

from ..domain.ports import RawDataSourcePort
from ..http.client import HttpClient, api_url

logger = logging.getLogger(__name__)


class SourceDataClient(RawDataSourcePort):
    """Loads raw object attributes from the source system: GET {base}/{entityClass}/{objectId}."""

    def __init__(self, base_url: str, *, http: Optional[HttpClient] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.http = http or HttpClient()

    def load_object_data(self, object_id: str, entity_class: Optional[str]) -> Dict[str, Any]:
        path = f"{quote(entity_class or 'object', safe='')}/{quote(object_id, safe='')}"
        url = api_url(self.base_url, path)
        try:
            payload = self.http.get_json(url)
        except (requests.RequestException, ValueError) as e:
            raise UpstreamUnavailable(f"Source system call failed for {url}: {e}") from e

        if not isinstance(payload, dict):
            raise UpstreamUnavailable(f"Source system returned a non-object body for {object_id}")

        data = dict(payload)
        data.setdefault("objectId", object_id)
        if entity_class:
            data.setdefault("objectEntityClass", entity_class)
        return data


class SimulatedSourceDataClient(RawDataSourcePort):
    """
    Stand-in source system that fabricates plausible records.

    Used when no source URL is configured (local runs, demos). Vehicles get
    plate, brand, model, location, fuel type, mileage and status; other
    classes get a generic record.
    """

    BRANDS = ("Opel", "VW", "BMW", "Mercedes", "Ford")
    MODELS = ("Corsa", "Golf", "3er", "A-Klasse", "Focus")
    FUEL_TYPES = ("Diesel", "Benzin", "Elektro", "Hybrid")
    STATUSES = ("active", "inactive", "maintenance")

    def __init__(self, *, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def _plate(self) -> str:
        letters = "".join(chr(ord("A") + self._rng.randrange(26)) for _ in range(2))
        return f"{letters}-{self._rng.randint(100, 999)}"

    def load_object_data(self, object_id: str, entity_class: Optional[str]) -> Dict[str, Any]:
        logger.info("Simulating data fetch for objectId=%r, entityClass=%r", object_id, entity_class)

        data: Dict[str, Any] = {
            "objectId": object_id,
            "objectEntityClass": entity_class or "vehicle",
        }
        if (entity_class or "").lower() == "vehicle":
            data.update(
                licensePlate=self._plate(),
                brand=self._rng.choice(self.BRANDS),
                model=self._rng.choice(self.MODELS),
                location="DE",
                fuelType=self._rng.choice(self.FUEL_TYPES),
                mileage=5000 + self._rng.randrange(195_000),
                status=self._rng.choice(self.STATUSES),
            )
        else:
            data.update(
                name="Generic Object",
                description="Simulated data for unknown entity class",
                status="active",
            )
        return data
