"""
Gazetteer: static reference data for location and service matching.

Loads the bundled states/districts JSON once and exposes read-only
lookups. The service catalog and its synonym table live here too, so
the conversation driver and the rule-based extractor agree on what
"plumber" means.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from quickpost.config import get_settings
from quickpost.logging_config import get_logger

logger = get_logger(__name__)

BUNDLED_GAZETTEER = Path(__file__).resolve().parent.parent / "data" / "states_districts.json"

# Spoken/colloquial names → catalog service id
SERVICE_SYNONYMS: dict[str, str] = {
    "painter": "painting",
    "painting": "painting",
    "paint": "painting",
    "plumber": "plumbing",
    "plumbing": "plumbing",
    "electrician": "electrical",
    "electrical": "electrical",
    "electric": "electrical",
    "carpenter": "carpentry",
    "carpentry": "carpentry",
    "wood work": "carpentry",
    "woodwork": "carpentry",
    "mason": "masonry",
    "masonry": "masonry",
    "brick work": "masonry",
    "brickwork": "masonry",
    "cleaner": "cleaning",
    "cleaning": "cleaning",
    "housekeeping": "cleaning",
    "gardener": "gardening",
    "gardening": "gardening",
    "landscaping": "gardening",
    "appliance repair": "appliance_repair",
    "appliance technician": "appliance_repair",
    "ac repair": "ac_repair",
    "ac technician": "ac_repair",
    "security guard": "security",
    "security": "security",
    "watchman": "security",
    "driver": "driver",
    "chauffeur": "driver",
    "mechanic": "mechanic",
    "auto repair": "mechanic",
    "automobile repair": "mechanic",
    "pest control": "pest_control",
}


@dataclass(frozen=True)
class ServiceEntry:
    id: str
    name: str
    tamil_name: Optional[str] = None

    def terms(self) -> tuple[str, ...]:
        """Every lowercase string that identifies this service."""
        terms = [self.name.lower()]
        if self.tamil_name:
            terms.append(self.tamil_name)
        terms.extend(k for k, v in SERVICE_SYNONYMS.items() if v == self.id)
        return tuple(terms)


@dataclass(frozen=True)
class StateEntry:
    name: str
    districts: tuple[str, ...]
    tamil_name: Optional[str] = None


@dataclass(frozen=True)
class Gazetteer:
    states: tuple[StateEntry, ...]
    services: tuple[ServiceEntry, ...]

    def state_names(self) -> list[str]:
        return [s.name for s in self.states]

    def find_state(self, name: str) -> Optional[StateEntry]:
        wanted = name.strip().lower()
        for state in self.states:
            if state.name.lower() == wanted:
                return state
        return None

    def districts_for(self, state_name: str) -> list[str]:
        state = self.find_state(state_name)
        return list(state.districts) if state else []

    def all_districts(self) -> list[tuple[str, str]]:
        """(district, state) pairs across the whole gazetteer."""
        return [(d, s.name) for s in self.states for d in s.districts]

    def state_of_district(self, district: str) -> Optional[str]:
        wanted = district.strip().lower()
        for name, state in self.all_districts():
            if name.lower() == wanted:
                return state
        return None

    def service_by_id(self, service_id: str) -> Optional[ServiceEntry]:
        for service in self.services:
            if service.id == service_id:
                return service
        return None


def load_gazetteer(path: Path | str) -> Gazetteer:
    """Parse a states/districts JSON file into a Gazetteer."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))

    states = tuple(
        StateEntry(
            name=item["state"],
            districts=tuple(item.get("districts", [])),
            tamil_name=item.get("tamilName"),
        )
        for item in raw.get("states", [])
    )
    services = tuple(
        ServiceEntry(id=item["id"], name=item["name"], tamil_name=item.get("tamilName"))
        for item in raw.get("services", [])
    )

    logger.info(
        "gazetteer_loaded",
        path=str(path),
        states=len(states),
        districts=sum(len(s.districts) for s in states),
        services=len(services),
    )
    return Gazetteer(states=states, services=services)


@lru_cache(maxsize=1)
def get_gazetteer() -> Gazetteer:
    """Return the process-wide gazetteer, loaded on first use."""
    settings = get_settings()
    return load_gazetteer(settings.gazetteer_path or BUNDLED_GAZETTEER)


def normalize_service_name(service_name: str) -> str:
    """
    Map a free-form service name to its catalog id.

    Unknown names come back lowercased with spaces replaced by
    underscores so they still make a stable category key.
    """
    if not service_name:
        return ""
    lowered = service_name.strip().lower()
    if lowered in SERVICE_SYNONYMS:
        return SERVICE_SYNONYMS[lowered]
    for key, value in SERVICE_SYNONYMS.items():
        if key in lowered or lowered in key:
            return value
    return "_".join(lowered.split())
