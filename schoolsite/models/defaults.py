"""
Seed document and the never-regress-to-empty merge used on load.
"""
import logging
from typing import Any, Dict

from schoolsite.core.exceptions import ValidationError
from schoolsite.models.document import COLLECTIONS, LEGACY_KEYS, SiteDocument
from schoolsite.models.entities import SiteConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, str] = {
    "menuUrl": "https://order.hanssens.be/menu/O56/OUDE-VESTIGING",
    "homeHeroImage": "/images/hero/school-main.jpeg",
    "homeHeroPosition": "center center",
    "homeTitle": "Samen groeien,\nelk op zijn eigen ritme",
    "homeSubtitle": "Vrije Basisschool Sijsele",
    "aboutText": (
        "In VBS Sint-Maarten staat het kind centraal. Wij geloven in onderwijs dat niet "
        "alleen kennis overdraagt, maar ook werkt aan de totale persoonlijkheidsontwikkeling."
    ),
    "contactEmail": "info@vrijebasisschoolsijsele.be",
    "contactAddress": "Kloosterstraat 4a, 8340 Sijsele",
    "contactPhoneKloosterstraat": "050 36 32 25",
    "contactPhoneHovingenlaan": "050 36 09 71",
    "contactPhoneGSM": "0496 23 57 01",
}

DEFAULT_HERO_IMAGES = [
    "/images/hero/school-main.jpeg",
    "/images/hero/school-building.jpeg",
    "/images/hero/school-kids.jpeg",
]

# (id, name) in display order; slug equals id
SYSTEM_PAGES = [
    ("home", "Home"),
    ("about", "Onze School"),
    ("enroll", "Inschrijven"),
    ("news", "Nieuws"),
    ("calendar", "Agenda"),
    ("info", "Info"),
    ("ouderwerkgroep", "Ouderwerkgroep"),
    ("gallery", "Foto's"),
    ("contact", "Contact"),
]


def default_document_dict() -> Dict[str, Any]:
    """JSON form of the seed document."""
    doc: Dict[str, Any] = {
        "config": dict(DEFAULT_CONFIG),
        "heroImages": list(DEFAULT_HERO_IMAGES),
    }
    for key in COLLECTIONS:
        doc[key] = []
    doc["pages"] = [
        {"id": page_id, "name": name, "slug": page_id, "active": True, "order": order, "type": "system"}
        for order, (page_id, name) in enumerate(SYSTEM_PAGES)
    ]
    return doc


def default_document() -> SiteDocument:
    """The built-in seed document."""
    return SiteDocument.from_dict(default_document_dict())


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def merge_over_seed(seed: SiteDocument, raw: Any) -> SiteDocument:
    """
    Overlay a stored document on the seed, one field at a time.

    A field (or config key) that is present but empty in ``raw`` never
    replaces a non-empty seed value. Fields of the wrong shape are ignored
    and invalid entities are skipped, so the result is always a complete,
    valid document.

    Raises:
        ValidationError: ``raw`` is not a JSON object at all
    """
    if not isinstance(raw, dict):
        raise ValidationError("Stored document must be a JSON object", field_value=type(raw).__name__)

    merged = seed.to_dict()
    for key, value in raw.items():
        key = LEGACY_KEYS.get(key, key)

        if key == "config":
            if not isinstance(value, dict):
                logger.warning("Ignoring stored config: not an object")
                continue
            config = dict(merged["config"])
            known_keys = set(SiteConfig.json_keys())
            for config_key, config_value in value.items():
                if config_key in known_keys and config_value is not None and not isinstance(config_value, str):
                    logger.warning(f"Ignoring stored config.{config_key}: not a string")
                    continue
                if _is_empty(config_value) and not _is_empty(config.get(config_key)):
                    continue
                config[config_key] = config_value
            merged["config"] = config
            continue

        if (key in COLLECTIONS or key == "heroImages") and not isinstance(value, list):
            logger.warning(f"Ignoring stored {key}: not a list")
            continue

        if key == "heroImages":
            value = [image for image in value if isinstance(image, str)]

        if _is_empty(value) and not _is_empty(merged.get(key)):
            continue
        merged[key] = value

    try:
        return SiteDocument.from_dict(merged, strict=False)
    except ValidationError as e:
        logger.warning(f"Stored document unusable, keeping seed: {e}")
        return seed
