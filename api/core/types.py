from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Literal, Optional

CreatorRole = Literal["actor", "director"]
OfferType = Literal["subscription", "rent", "buy"]

OFFER_TYPES = ("subscription", "rent", "buy")


@dataclass(slots=True)
class CandidateTitle:
    tmdb_id: int
    title: str
    release_date: Optional[str] = None
    poster_path: Optional[str] = None


@dataclass(slots=True, frozen=True)
class Contribution:
    creator_id: int
    role: CreatorRole
    name: str


@dataclass(slots=True, frozen=True)
class AvailabilityRecord:
    service_id: str
    name: str
    link: str
    type: OfferType

    def to_dict(self) -> Dict[str, str]:
        # Keys mirror what is stored in vod_availability_cache.availability_data
        return {
            "serviceId": self.service_id,
            "name": self.name,
            "link": self.link,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> Optional["AvailabilityRecord"]:
        service_id = raw.get("serviceId")
        offer_type = raw.get("type")
        if not service_id or offer_type not in OFFER_TYPES:
            return None
        return cls(
            service_id=str(service_id),
            name=str(raw.get("name") or service_id),
            link=str(raw.get("link") or ""),
            type=offer_type,
        )


@dataclass(slots=True)
class Filmography:
    creator_id: int
    name: str
    cast_credits: List[CandidateTitle] = field(default_factory=list)
    crew_credits: List[CandidateTitle] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class CreatorSummary:
    id: str
    name: str
    creator_role: CreatorRole
    avatar_url: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class RecommendationCreator:
    id: str
    name: str
    creator_role: CreatorRole
    is_favorite: bool


@dataclass(slots=True, frozen=True)
class RecommendationRecord:
    id: str
    external_movie_id: str
    media_type: str
    title: str
    year: Optional[int]
    creators: tuple[RecommendationCreator, ...]
    platforms: tuple[str, ...]
    poster_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["creators"] = [asdict(c) for c in self.creators]
        payload["platforms"] = list(self.platforms)
        return payload
