"""
The site document: the single root aggregate holding all site content.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Tuple, Type

from schoolsite.core.exceptions import ConfigurationError, ValidationError
from schoolsite.models.entities import (
    CalendarEvent,
    Download,
    Enrollment,
    FormSubmission,
    NewsItem,
    OuderwerkgroepActivity,
    PageConfig,
    PhotoAlbum,
    Record,
    SiteConfig,
    TeamMember,
)

logger = logging.getLogger(__name__)

# JSON key -> (attribute, record type) for every id-keyed collection
COLLECTIONS: Dict[str, Tuple[str, Type[Record]]] = {
    "news": ("news", NewsItem),
    "events": ("events", CalendarEvent),
    "albums": ("albums", PhotoAlbum),
    "team": ("team", TeamMember),
    "ouderwerkgroepActivities": ("activities", OuderwerkgroepActivity),
    "submissions": ("submissions", FormSubmission),
    "downloads": ("downloads", Download),
    "enrollments": ("enrollments", Enrollment),
    "pages": ("pages", PageConfig),
}

# Top-level fields that are not id-keyed collections
SCALAR_FIELDS: Dict[str, str] = {
    "config": "config",
    "heroImages": "hero_images",
}

FIELD_ORDER = (
    "config", "heroImages", "news", "events", "albums", "team",
    "ouderwerkgroepActivities", "submissions", "downloads", "enrollments", "pages",
)

# Keys written by earlier versions of the site
LEGACY_KEYS = {"ouderwerkgroep": "ouderwerkgroepActivities"}


def attribute_for(key: str) -> str:
    """Map a top-level JSON key to its SiteDocument attribute."""
    if key in COLLECTIONS:
        return COLLECTIONS[key][0]
    if key in SCALAR_FIELDS:
        return SCALAR_FIELDS[key]
    raise ConfigurationError("Unknown document field", config_key=key)


def record_type(collection: str) -> Type[Record]:
    if collection not in COLLECTIONS:
        raise ConfigurationError("Unknown document collection", config_key=collection)
    return COLLECTIONS[collection][1]


@dataclass(frozen=True)
class SiteDocument:
    """
    Site content and configuration.

    Instances are never mutated: every change produces a new document that
    shares the untouched collections with its predecessor.
    """
    config: SiteConfig = field(default_factory=SiteConfig)
    hero_images: Tuple[str, ...] = ()
    news: Tuple[NewsItem, ...] = ()
    events: Tuple[CalendarEvent, ...] = ()
    albums: Tuple[PhotoAlbum, ...] = ()
    team: Tuple[TeamMember, ...] = ()
    activities: Tuple[OuderwerkgroepActivity, ...] = ()
    submissions: Tuple[FormSubmission, ...] = ()
    downloads: Tuple[Download, ...] = ()
    enrollments: Tuple[Enrollment, ...] = ()
    pages: Tuple[PageConfig, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def get_field(self, key: str) -> Any:
        """Value of a top-level field by its JSON key."""
        return getattr(self, attribute_for(key))

    def with_field(self, key: str, value: Any) -> "SiteDocument":
        """New document with one top-level field replaced."""
        attr = attribute_for(key)
        if isinstance(value, list):
            value = tuple(value)
        return replace(self, **{attr: value})

    def find(self, collection: str, entity_id: str):
        """Entity by id, or None."""
        for entity in self.get_field(collection):
            if entity.id == entity_id:
                return entity
        return None

    def field_to_json(self, key: str) -> Any:
        value = self.get_field(key)
        if key == "config":
            return value.to_dict()
        if key == "heroImages":
            return list(value)
        return [entity.to_dict() for entity in value]

    def to_dict(self) -> Dict[str, Any]:
        out = {key: self.field_to_json(key) for key in FIELD_ORDER}
        for key, value in self.extra.items():
            out.setdefault(key, value)
        return out

    @classmethod
    def from_dict(cls, data: Any, strict: bool = True) -> "SiteDocument":
        """
        Build a document from JSON.

        Args:
            data: Parsed JSON object
            strict: Raise on the first invalid entity; when False, invalid
                    entities are logged and skipped

        Raises:
            ValidationError: Document is not an object, a field has the wrong
                shape, or (strict) an entity is invalid
        """
        if not isinstance(data, dict):
            raise ValidationError("Document must be a JSON object", field_value=type(data).__name__)

        data = {LEGACY_KEYS.get(k, k): v for k, v in data.items()}
        kwargs: Dict[str, Any] = {}

        if "config" in data:
            kwargs["config"] = SiteConfig.from_dict(data["config"])

        if "heroImages" in data:
            hero = data["heroImages"]
            if not isinstance(hero, list) or not all(isinstance(h, str) for h in hero):
                raise ValidationError("heroImages must be a list of strings", field_name="heroImages")
            kwargs["hero_images"] = tuple(hero)

        for key, (attr, entity_type) in COLLECTIONS.items():
            if key not in data:
                continue
            items = data[key]
            if not isinstance(items, list):
                raise ValidationError("Collection must be a list", field_name=key)
            parsed: List[Record] = []
            for item in items:
                try:
                    parsed.append(entity_type.from_dict(item))
                except ValidationError as e:
                    if strict:
                        raise
                    logger.warning(f"Skipping invalid {key} entry: {e}")
            kwargs[attr] = tuple(parsed)

        known = set(FIELD_ORDER)
        kwargs["extra"] = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs)
