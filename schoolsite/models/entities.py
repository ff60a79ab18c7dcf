"""
Entity records of the site document.

Each record is a frozen dataclass whose attributes map to the camelCase JSON
field names used on the wire. Keys a record does not know about are kept in
``extra`` so a document read from storage is written back unchanged.
"""
from dataclasses import MISSING, dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union, get_args, get_origin

from schoolsite.core.exceptions import ValidationError


class EnrollmentStatus(str, Enum):
    """Administrator-set processing state of an enrollment."""
    NEW = "nieuw"
    IN_PROGRESS = "in_behandeling"
    FULFILLED = "gerealiseerd"
    NOT_FULFILLED = "niet_gerealiseerd"


class SubmissionStatus(str, Enum):
    """Read state of a contact form submission (only NEW -> READ)."""
    NEW = "Nieuw"
    READ = "Gelezen"


class PageType(str, Enum):
    SYSTEM = "system"
    CUSTOM = "custom"


NEWS_CATEGORIES = ("Algemeen", "Kleuter", "Lager")
EVENT_TYPES = ("Vakantie", "Activiteit", "Vrije Dag")


def wire(name: str, default: Any = MISSING, default_factory: Any = MISSING,
         required: bool = False, choices: Any = None):
    """
    Declare a record attribute and its JSON name.

    Args:
        name: camelCase key in the JSON document
        default: Default value when the key is absent
        default_factory: Factory for mutable defaults
        required: Key must be present and non-empty
        choices: Enum class or tuple of allowed values
    """
    metadata = {"json": name, "required": required, "choices": choices}
    if default_factory is not MISSING:
        return field(default_factory=default_factory, metadata=metadata)
    return field(default=default, metadata=metadata)


def _is_list_of_str(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def _scalar_type(annotation: Any) -> Tuple[Any, bool]:
    """(type, None allowed) for a field annotation."""
    if get_origin(annotation) is Union:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        return args[0], True
    return annotation, False


def _has_type(value: Any, expected: Any) -> bool:
    # bool is an int subclass; keep the two apart
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if expected in (str, bool):
        return isinstance(value, expected)
    return True


@dataclass(frozen=True)
class Record:
    """Base for all document records: JSON mapping and validation."""

    extra: Dict[str, Any] = field(default_factory=dict, kw_only=True, compare=False, repr=False)

    # Attributes holding lists of image/location strings
    LIST_FIELDS: ClassVar[Tuple[str, ...]] = ()
    # Records whose undeclared keys are content rather than typos
    OPEN_KEYS: ClassVar[bool] = False

    @classmethod
    def _wire_fields(cls):
        return [f for f in fields(cls) if f.name != "extra"]

    @classmethod
    def json_keys(cls) -> Tuple[str, ...]:
        return tuple(f.metadata["json"] for f in cls._wire_fields())

    @classmethod
    def from_dict(cls, data: Any):
        """
        Build a record from its JSON form.

        Raises:
            ValidationError: Not an object, a required key missing or empty,
                a value outside its allowed set, a list field of the
                wrong shape or a scalar of the wrong type
        """
        if not isinstance(data, dict):
            raise ValidationError(f"{cls.__name__} must be a JSON object", field_value=data)

        kwargs: Dict[str, Any] = {}
        for f in cls._wire_fields():
            key = f.metadata["json"]
            if key not in data:
                if f.metadata["required"] or (f.default is MISSING and f.default_factory is MISSING):
                    raise ValidationError(
                        f"{cls.__name__} is missing a required field", field_name=key
                    )
                continue

            value = data[key]
            if f.metadata["required"] and (value is None or value == ""):
                raise ValidationError(f"{cls.__name__} field may not be empty", field_name=key)

            choices = f.metadata["choices"]
            if isinstance(choices, type) and issubclass(choices, Enum):
                try:
                    value = choices(value)
                except ValueError:
                    raise ValidationError(
                        f"Invalid {cls.__name__} value", field_name=key, field_value=value
                    ) from None
            elif choices and value not in choices:
                raise ValidationError(
                    f"Invalid {cls.__name__} value", field_name=key, field_value=value
                )

            if f.name in cls.LIST_FIELDS and value is not None:
                if not _is_list_of_str(value):
                    raise ValidationError(
                        f"{cls.__name__} field must be a list of strings",
                        field_name=key,
                        field_value=value,
                    )
                value = list(value)
            elif not isinstance(choices, type):
                expected, nullable = _scalar_type(f.type)
                if value is None and not nullable:
                    # null for a defaulted field means "not set"
                    continue
                if value is not None and not _has_type(value, expected):
                    raise ValidationError(
                        f"{cls.__name__} field must be of type {expected.__name__}",
                        field_name=key,
                        field_value=value,
                    )

            kwargs[f.name] = value

        known = set(cls.json_keys())
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(**kwargs, extra=extra)

    def to_dict(self) -> Dict[str, Any]:
        """JSON form: known fields first, unset optionals omitted, then extra keys."""
        out: Dict[str, Any] = {}
        for f in self._wire_fields():
            value = getattr(self, f.name)
            if value is None and f.default is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, list):
                value = list(value)
            out[f.metadata["json"]] = value
        for key, value in self.extra.items():
            out.setdefault(key, value)
        return out

    @classmethod
    def wire_key(cls, name: str) -> str:
        """JSON key for an attribute name; JSON keys map to themselves."""
        for f in cls._wire_fields():
            if name == f.name:
                return f.metadata["json"]
        return name

    def patched(self, patch: Dict[str, Any]):
        """
        Return a new record with JSON-keyed changes applied and re-validated.

        Raises:
            ValidationError: The patch names a key the record does not have,
                changes the id, or produces an invalid record
        """
        current = self.to_dict()
        if not self.OPEN_KEYS:
            unknown = sorted(set(patch) - set(self.json_keys()) - set(self.extra))
            if unknown:
                raise ValidationError(
                    f"{type(self).__name__} has no field named {unknown[0]!r}",
                    details={"unknown": unknown},
                    field_name=unknown[0],
                )
        if "id" in patch and "id" in current and patch["id"] != current["id"]:
            raise ValidationError("Entity id is immutable", field_name="id", field_value=patch["id"])
        return type(self).from_dict({**current, **patch})


@dataclass(frozen=True)
class SiteConfig(Record):
    """Site-wide settings. Singleton, always present."""
    menu_url: str = wire("menuUrl", "")
    home_hero_image: str = wire("homeHeroImage", "")
    home_hero_position: str = wire("homeHeroPosition", "center center")
    home_title: str = wire("homeTitle", "")
    home_subtitle: str = wire("homeSubtitle", "")
    about_text: str = wire("aboutText", "")
    contact_email: str = wire("contactEmail", "")
    contact_address: str = wire("contactAddress", "")
    contact_phone_kloosterstraat: str = wire("contactPhoneKloosterstraat", "")
    contact_phone_hovingenlaan: str = wire("contactPhoneHovingenlaan", "")
    contact_phone_gsm: str = wire("contactPhoneGSM", "")


@dataclass(frozen=True)
class NewsItem(Record):
    id: str = wire("id", required=True)
    title: str = wire("title", required=True)
    content: str = wire("content", "")
    date: str = wire("date", "")
    image_url: str = wire("imageUrl", "")
    category: str = wire("category", "Algemeen", choices=NEWS_CATEGORIES)
    # Past this date the item drops out of public listings
    expiry_date: Optional[str] = wire("expiryDate", None)


@dataclass(frozen=True)
class CalendarEvent(Record):
    LIST_FIELDS: ClassVar[Tuple[str, ...]] = ("grades",)

    id: str = wire("id", required=True)
    title: str = wire("title", required=True)
    date: str = wire("date", required=True)
    type: str = wire("type", "Activiteit", choices=EVENT_TYPES)
    grades: List[str] = wire("grades", default_factory=lambda: ["All"])
    description: Optional[str] = wire("description", None)


@dataclass(frozen=True)
class PhotoAlbum(Record):
    LIST_FIELDS: ClassVar[Tuple[str, ...]] = ("images",)

    id: str = wire("id", required=True)
    title: str = wire("title", required=True)
    location: str = wire("location", "Algemeen")
    cover_image: str = wire("coverImage", "")
    images: List[str] = wire("images", default_factory=list)
    expiry_date: Optional[str] = wire("expiryDate", None)
    created_date: Optional[str] = wire("createdDate", None)


@dataclass(frozen=True)
class TeamMember(Record):
    id: str = wire("id", required=True)
    role: str = wire("role", required=True)
    image_url: str = wire("imageUrl", "")
    group: str = wire("group", "")


@dataclass(frozen=True)
class OuderwerkgroepActivity(Record):
    LIST_FIELDS: ClassVar[Tuple[str, ...]] = ("images",)

    id: str = wire("id", required=True)
    title: str = wire("title", required=True)
    description: str = wire("description", "")
    images: List[str] = wire("images", default_factory=list)

    @classmethod
    def from_dict(cls, data: Any):
        # Older documents stored a single "image" string per activity
        if isinstance(data, dict) and "images" not in data and isinstance(data.get("image"), str):
            data = dict(data)
            image = data.pop("image")
            data["images"] = [image] if image else []
        return super().from_dict(data)


@dataclass(frozen=True)
class FormSubmission(Record):
    id: str = wire("id", required=True)
    name: str = wire("name", required=True)
    date: str = wire("date", "")
    type: str = wire("type", "Contact")
    email: Optional[str] = wire("email", None)
    details: str = wire("details", "")
    status: SubmissionStatus = wire("status", SubmissionStatus.NEW, choices=SubmissionStatus)


@dataclass(frozen=True)
class Download(Record):
    id: str = wire("id", required=True)
    title: str = wire("title", required=True)
    # Stored reference returned by the upload collaborator
    filename: str = wire("filename", required=True)
    original_name: str = wire("originalName", "")
    upload_date: str = wire("uploadDate", "")


@dataclass(frozen=True)
class Enrollment(Record):
    """
    An enrollment form. Only the bookkeeping fields are typed; every form
    answer (child, parents, medical, language questionnaire) travels in
    ``extra`` exactly as submitted.
    """
    OPEN_KEYS: ClassVar[bool] = True

    id: str = wire("id", required=True)
    submitted_at: str = wire("submittedAt", "")
    status: EnrollmentStatus = wire("status", EnrollmentStatus.NEW, choices=EnrollmentStatus)

    @property
    def answers(self) -> Dict[str, Any]:
        return dict(self.extra)


@dataclass(frozen=True)
class PageConfig(Record):
    LIST_FIELDS: ClassVar[Tuple[str, ...]] = ("page_images",)

    id: str = wire("id", required=True)
    name: str = wire("name", required=True)
    slug: str = wire("slug", required=True)
    active: bool = wire("active", True)
    order: int = wire("order", 0)
    type: PageType = wire("type", PageType.CUSTOM, choices=PageType)
    content: Optional[str] = wire("content", None)
    page_images: Optional[List[str]] = wire("pageImages", None)

    @property
    def is_system(self) -> bool:
        return self.type is PageType.SYSTEM
