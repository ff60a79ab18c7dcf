"""
Document operations.

Every change to the site document is one of four commands. ``apply_operation``
turns (document, operation) into a new document without touching the old one
and rejects invalid operations before anything changes.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Union

from schoolsite.core.exceptions import RejectedOperationError, ValidationError
from schoolsite.models.document import COLLECTIONS, SCALAR_FIELDS, SiteDocument, record_type
from schoolsite.models.entities import FormSubmission, PageConfig, PageType, SiteConfig, SubmissionStatus

# Keys an administrator may change on a system page
SYSTEM_PAGE_MUTABLE_KEYS = frozenset({"active", "order"})


@dataclass(frozen=True)
class Insert:
    """Append a new entity to a collection."""
    collection: str
    entity: Dict[str, Any]


@dataclass(frozen=True)
class Update:
    """Merge a partial change into the entity with the given id."""
    collection: str
    entity_id: str
    patch: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Delete:
    """Remove the entity with the given id."""
    collection: str
    entity_id: str


@dataclass(frozen=True)
class ReplaceField:
    """Replace a whole top-level field."""
    field_name: str
    value: Any


Operation = Union[Insert, Update, Delete, ReplaceField]


def touched_field(op: Operation) -> str:
    """Top-level document field an operation changes."""
    if isinstance(op, ReplaceField):
        return op.field_name
    return op.collection


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise RejectedOperationError("Unknown collection", collection=collection)


def _index_of(items, collection: str, entity_id: str) -> int:
    for index, entity in enumerate(items):
        if entity.id == entity_id:
            return index
    raise RejectedOperationError("No entity with this id", collection=collection, entity_id=entity_id)


def _check_unique_slugs(pages) -> None:
    seen = set()
    for page in pages:
        if page.slug in seen:
            raise ValidationError("Page slug already in use", field_name="slug", field_value=page.slug)
        seen.add(page.slug)


def _apply_insert(document: SiteDocument, op: Insert) -> SiteDocument:
    entity = record_type(op.collection).from_dict(op.entity)
    items = document.get_field(op.collection)
    if any(existing.id == entity.id for existing in items):
        raise ValidationError("Entity id already exists", field_name="id", field_value=entity.id)
    if isinstance(entity, PageConfig) and entity.is_system:
        raise RejectedOperationError("System pages cannot be created", collection="pages", entity_id=entity.id)
    if isinstance(entity, PageConfig):
        _check_unique_slugs(items + (entity,))
    return document.with_field(op.collection, items + (entity,))


def _apply_update(document: SiteDocument, op: Update) -> SiteDocument:
    items = document.get_field(op.collection)
    index = _index_of(items, op.collection, op.entity_id)
    current = items[index]
    if isinstance(current, PageConfig) and current.is_system:
        locked = set(op.patch) - SYSTEM_PAGE_MUTABLE_KEYS
        if locked:
            raise RejectedOperationError(
                "System pages only allow toggling and reordering",
                details={"keys": sorted(locked)},
                collection="pages",
                entity_id=op.entity_id,
            )
    updated = current.patched(op.patch)
    if (isinstance(current, FormSubmission) and current.status is SubmissionStatus.READ
            and updated.status is SubmissionStatus.NEW):
        raise RejectedOperationError(
            "A read submission cannot become unread", collection="submissions", entity_id=op.entity_id
        )
    new_items = items[:index] + (updated,) + items[index + 1:]
    if isinstance(updated, PageConfig):
        _check_unique_slugs(new_items)
    return document.with_field(op.collection, new_items)


def _apply_delete(document: SiteDocument, op: Delete) -> SiteDocument:
    items = document.get_field(op.collection)
    index = _index_of(items, op.collection, op.entity_id)
    if isinstance(items[index], PageConfig) and items[index].is_system:
        raise RejectedOperationError("System pages cannot be deleted", collection="pages", entity_id=op.entity_id)
    return document.with_field(op.collection, items[:index] + items[index + 1:])


def _check_system_pages_kept(document: SiteDocument, new_pages) -> None:
    incoming = {page.id: page for page in new_pages}
    for page in document.pages:
        if not page.is_system:
            continue
        replacement = incoming.get(page.id)
        if replacement is None:
            raise RejectedOperationError("System pages cannot be deleted", collection="pages", entity_id=page.id)
        if replacement.type is not PageType.SYSTEM or replacement.slug != page.slug:
            raise RejectedOperationError(
                "System page identity and slug are fixed", collection="pages", entity_id=page.id
            )
        before, after = page.to_dict(), replacement.to_dict()
        changed = sorted(
            key for key in set(before) | set(after)
            if key not in SYSTEM_PAGE_MUTABLE_KEYS and before.get(key) != after.get(key)
        )
        if changed:
            raise RejectedOperationError(
                "System pages only allow toggling and reordering",
                details={"keys": changed},
                collection="pages",
                entity_id=page.id,
            )
    system_ids = {page.id for page in document.pages if page.is_system}
    for page in new_pages:
        if page.is_system and page.id not in system_ids:
            raise RejectedOperationError("System pages cannot be created", collection="pages", entity_id=page.id)


def _apply_replace(document: SiteDocument, op: ReplaceField) -> SiteDocument:
    name = op.field_name
    if name == "config":
        return document.with_field(name, SiteConfig.from_dict(op.value))
    if name == "heroImages":
        if not isinstance(op.value, list) or not all(isinstance(v, str) for v in op.value):
            raise ValidationError("heroImages must be a list of strings", field_name=name)
        return document.with_field(name, list(op.value))
    if name not in COLLECTIONS:
        raise RejectedOperationError("Unknown document field", collection=name)
    if not isinstance(op.value, list):
        raise ValidationError("Collection must be a list", field_name=name)

    entity_type = record_type(name)
    parsed = [entity_type.from_dict(item) for item in op.value]
    ids = [entity.id for entity in parsed]
    if len(ids) != len(set(ids)):
        raise ValidationError("Duplicate entity ids", field_name=name)
    if name == "pages":
        _check_system_pages_kept(document, parsed)
        _check_unique_slugs(parsed)
    return document.with_field(name, parsed)


def apply_operation(document: SiteDocument, op: Operation) -> SiteDocument:
    """
    Apply one operation and return the resulting document.

    Args:
        document: Current document (left unchanged)
        op: Insert, Update, Delete or ReplaceField

    Returns:
        New document

    Raises:
        ValidationError: The resulting entity or field is invalid
        RejectedOperationError: The operation is not allowed
    """
    if isinstance(op, ReplaceField):
        if op.field_name not in SCALAR_FIELDS and op.field_name not in COLLECTIONS:
            raise RejectedOperationError("Unknown document field", collection=op.field_name)
        return _apply_replace(document, op)

    _check_collection(op.collection)
    if isinstance(op, Insert):
        return _apply_insert(document, op)
    if isinstance(op, Update):
        return _apply_update(document, op)
    if isinstance(op, Delete):
        return _apply_delete(document, op)
    raise TypeError(f"Unsupported operation: {op!r}")
