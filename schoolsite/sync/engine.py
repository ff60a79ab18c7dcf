"""
Local-first sync engine for the site document.

The engine owns the in-memory document. Every change goes through one
protocol:

1. apply the operation to the in-memory document (no I/O, no rollback later)
2. send it to the remote adapter when one is configured; failures are
   recorded, never raised
3. write the whole document to the Durable Local Cache; a failure here is
   the only error a mutation raises
4. notify subscribers

Loading degrades from remote to local cache to the seed document and never
raises.
"""
import copy
import json
import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

from schoolsite.client.site_api_client import ENTITY_ENDPOINTS, FIELD_ENDPOINTS, SiteApiClient
from schoolsite.core.config import CACHE_KEY, PERSIST_DEBOUNCE_SECONDS, is_remote_configured
from schoolsite.core.exceptions import (
    LocalPersistError,
    PersistenceError,
    RejectedOperationError,
    RemoteStoreError,
    SchoolSiteError,
    ValidationError,
)
from schoolsite.models.defaults import default_document, merge_over_seed
from schoolsite.models.document import COLLECTIONS, SiteDocument, record_type
from schoolsite.models.entities import (
    EnrollmentStatus,
    PageType,
    Record,
    SiteConfig,
    SubmissionStatus,
)
from schoolsite.storage.base import DocumentStore
from schoolsite.sync.debounce import Debouncer
from schoolsite.sync.notifier import ChangeNotifier, Listener, Subscription
from schoolsite.sync.operations import (
    Delete,
    Insert,
    Operation,
    ReplaceField,
    Update,
    apply_operation,
    touched_field,
)
from schoolsite.utils.ids import custom_page_id, new_id, slugify

logger = logging.getLogger(__name__)

# Field name published when the whole document was (re)loaded
DOCUMENT_RELOADED = "*"


class LoadSource(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"
    DEFAULTS = "defaults"


@dataclass
class LoadResult:
    """Where load() got the document from, plus any non-fatal warning."""
    source: LoadSource
    warning: Optional[str] = None


class SaveStatus(str, Enum):
    SAVED = "saved"
    SAVED_LOCALLY = "saved_locally"
    LOCAL_ONLY = "local_only"


_MESSAGES = {
    SaveStatus.SAVED: "Saved",
    SaveStatus.SAVED_LOCALLY: "Saved locally (server unreachable)",
    SaveStatus.LOCAL_ONLY: "Saved locally",
}


@dataclass
class MutationResult:
    """Outcome of a mutation that reached the local cache."""
    status: SaveStatus
    operation: Optional[Operation] = None
    entity: Optional[Record] = None
    remote_error: Optional[RemoteStoreError] = None

    @property
    def remote_synced(self) -> bool:
        return self.status is SaveStatus.SAVED

    @property
    def message(self) -> str:
        return _MESSAGES[self.status]


def _today() -> str:
    return date.today().isoformat()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class SyncEngine:
    """
    Owner of the site document and its synchronization.

    Whether a remote adapter exists is decided once, here: pass a client to
    sync with a server, or None to run disconnected with the local cache as
    the only store.

    Attributes:
        remote: Remote adapter client or None
        cache: Durable Local Cache
        cache_key: Key of the document in the cache
        last_remote_error: Most recent remote failure, if any
        last_persist_error: Most recent failed cache write, cleared by the
            next successful one
    """

    def __init__(
        self,
        remote: Optional[SiteApiClient] = None,
        cache: Optional[DocumentStore] = None,
        cache_key: str = CACHE_KEY,
        seed_factory: Callable[[], SiteDocument] = default_document,
        debounce_seconds: float = PERSIST_DEBOUNCE_SECONDS,
    ):
        if cache is None:
            from schoolsite.storage.sql_store import LocalCache
            cache = LocalCache()
        self.remote = remote
        self.cache = cache
        self.cache_key = cache_key
        self._seed_factory = seed_factory
        self._document = seed_factory()
        self._lock = threading.RLock()
        self._notifier = ChangeNotifier()
        self._staged: Set[str] = set()
        self._debouncer = Debouncer(self.flush, debounce_seconds)
        self.last_remote_error: Optional[RemoteStoreError] = None
        self.last_persist_error: Optional[LocalPersistError] = None

    @classmethod
    def from_config(cls, cache: Optional[DocumentStore] = None) -> "SyncEngine":
        """Engine wired from environment settings."""
        remote = SiteApiClient() if is_remote_configured() else None
        return cls(remote=remote, cache=cache)

    @property
    def remote_configured(self) -> bool:
        return self.remote is not None

    @property
    def document(self) -> SiteDocument:
        """A private copy of the current document."""
        with self._lock:
            return copy.deepcopy(self._document)

    def export(self) -> Dict[str, Any]:
        """JSON form of the current document."""
        with self._lock:
            return self._document.to_dict()

    def subscribe(self, listener: Listener) -> Subscription:
        """
        Register for change notifications.

        Args:
            listener: Called with the changed top-level field name, or "*"
                      after a load

        Returns:
            Subscription whose unsubscribe() ends delivery
        """
        return self._notifier.subscribe(listener)

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    def load(self) -> LoadResult:
        """
        Populate the document: remote first, then local cache, then seed.

        Never raises. Nothing is written back to any store.
        """
        warning = None
        if self.remote_configured:
            try:
                raw = self.remote.get_document()
                document = merge_over_seed(self._seed_factory(), raw)
            except SchoolSiteError as e:
                warning = f"Server unavailable, using local data: {e}"
                logger.warning(warning)
            else:
                self._adopt(document)
                logger.info("Site document loaded from remote")
                return LoadResult(LoadSource.REMOTE)

        result = self._load_local()
        if warning:
            result.warning = warning if result.warning is None else f"{warning}; {result.warning}"
        return result

    def _load_local(self) -> LoadResult:
        seed = self._seed_factory()
        try:
            raw = self.cache.read(self.cache_key)
        except PersistenceError as e:
            logger.warning(f"Local cache unreadable, using defaults: {e}")
            self._adopt(seed)
            return LoadResult(LoadSource.DEFAULTS, warning=f"Local cache unreadable: {e}")

        if raw is None:
            self._adopt(seed)
            logger.info("No cached document, using defaults")
            return LoadResult(LoadSource.DEFAULTS)

        try:
            document = merge_over_seed(seed, json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.warning(f"Cached document corrupted, using defaults: {e}")
            self._adopt(seed)
            return LoadResult(LoadSource.DEFAULTS, warning=f"Local cache corrupted: {e}")

        self._adopt(document)
        logger.info("Site document loaded from local cache")
        return LoadResult(LoadSource.LOCAL)

    def _adopt(self, document: SiteDocument) -> None:
        with self._lock:
            self._document = document
            self._staged.clear()
        self._debouncer.cancel()
        self._notifier.publish(DOCUMENT_RELOADED)

    # ------------------------------------------------------------------
    # Mutation protocol
    # ------------------------------------------------------------------

    def apply(self, op: Operation, confirmed: bool = False) -> MutationResult:
        """
        Run one operation through the four-step protocol.

        Args:
            op: Operation to apply
            confirmed: Deletions must be confirmed by the administrator

        Returns:
            MutationResult describing how far the change got

        Raises:
            RejectedOperationError: Precondition failed, document unchanged
            ValidationError: Invalid entity data, document unchanged
            LocalPersistError: The change is in memory only and will not
                survive a reload
        """
        if isinstance(op, Delete) and not confirmed:
            raise RejectedOperationError(
                "Deletion was not confirmed", collection=op.collection, entity_id=op.entity_id
            )

        with self._lock:
            self._document = apply_operation(self._document, op)
            document = self._document

        changed = touched_field(op)
        entity = None
        if isinstance(op, Insert):
            entity = document.get_field(changed)[-1]
        elif isinstance(op, Update):
            entity = document.find(changed, op.entity_id)

        remote_error = self._push(op, document) if self.remote_configured else None
        try:
            self._persist()
        except LocalPersistError as e:
            self.last_persist_error = e
            raise
        self._notifier.publish(changed)

        if not self.remote_configured:
            status = SaveStatus.LOCAL_ONLY
        elif remote_error is not None:
            status = SaveStatus.SAVED_LOCALLY
        else:
            status = SaveStatus.SAVED
        return MutationResult(status, operation=op, entity=entity, remote_error=remote_error)

    def _push(self, op: Operation, document: SiteDocument) -> Optional[RemoteStoreError]:
        changed = touched_field(op)
        try:
            if isinstance(op, ReplaceField) or changed not in ENTITY_ENDPOINTS:
                self._push_fields({changed}, document)
            elif isinstance(op, Insert):
                self.remote.create_entity(changed, document.get_field(changed)[-1].to_dict())
            elif isinstance(op, Update):
                self.remote.update_entity(changed, op.entity_id, op.patch)
            elif isinstance(op, Delete):
                self.remote.delete_entity(changed, op.entity_id)
        except RemoteStoreError as e:
            logger.warning(f"Remote write for {changed} failed, kept locally: {e}")
            self.last_remote_error = e
            return e
        return None

    def _push_fields(self, fields: Iterable[str], document: SiteDocument) -> None:
        whole_document = False
        for name in sorted(fields):
            if name in FIELD_ENDPOINTS:
                self.remote.put_field(name, document.field_to_json(name))
            else:
                whole_document = True
        if whole_document:
            self.remote.put_document(document.to_dict())

    def _persist(self) -> None:
        with self._lock:
            try:
                payload = json.dumps(self._document.to_dict(), ensure_ascii=False)
            except (TypeError, ValueError) as e:
                logger.error(f"Document could not be serialized: {e}")
                raise LocalPersistError("Document could not be serialized", original_error=e) from e
            try:
                self.cache.write(self.cache_key, payload)
            except LocalPersistError:
                raise
            except PersistenceError as e:
                raise LocalPersistError("Local cache write failed", details=e.details, original_error=e) from e
            self.last_persist_error = None

    # ------------------------------------------------------------------
    # Staged (debounced) edits
    # ------------------------------------------------------------------

    def stage(self, op: Operation) -> None:
        """
        Apply an edit in memory now and commit it after a quiet period.

        Subscribers are notified immediately; the remote write and the cache
        write happen once in flush(), however many edits were staged.
        """
        if isinstance(op, Delete):
            raise RejectedOperationError("Deletions cannot be staged", collection=op.collection)
        with self._lock:
            self._document = apply_operation(self._document, op)
            self._staged.add(touched_field(op))
        self._notifier.publish(touched_field(op))
        self._debouncer.trigger()

    @property
    def has_staged_changes(self) -> bool:
        return bool(self._staged)

    def flush(self) -> Optional[MutationResult]:
        """
        Commit staged edits: push the touched fields, then write the cache.

        When the cache write fails the edits stay staged, so the next
        flush() or close() retries them and raises again if it still fails.

        Returns:
            MutationResult, or None when nothing was staged

        Raises:
            LocalPersistError: The staged edits exist in memory only
        """
        self._debouncer.cancel()
        with self._lock:
            fields, self._staged = self._staged, set()
            document = self._document
        if not fields:
            return None

        remote_error = None
        if self.remote_configured:
            try:
                self._push_fields(fields, document)
            except RemoteStoreError as e:
                logger.warning(f"Remote write for staged {sorted(fields)} failed, kept locally: {e}")
                self.last_remote_error = e
                remote_error = e
        try:
            self._persist()
        except LocalPersistError as e:
            with self._lock:
                self._staged |= fields
            self.last_persist_error = e
            logger.error(f"Staged {sorted(fields)} not persisted, kept for the next flush: {e}")
            raise

        if not self.remote_configured:
            status = SaveStatus.LOCAL_ONLY
        elif remote_error is not None:
            status = SaveStatus.SAVED_LOCALLY
        else:
            status = SaveStatus.SAVED
        return MutationResult(status, remote_error=remote_error)

    def close(self) -> None:
        """Commit pending staged edits and release the remote session."""
        try:
            self.flush()
        finally:
            if self.remote is not None:
                self.remote.close()

    # ------------------------------------------------------------------
    # Generic entity operations
    # ------------------------------------------------------------------

    def _current(self) -> SiteDocument:
        """The live document. Documents are immutable; only the reference swaps."""
        with self._lock:
            return self._document

    def add(self, collection: str, fields: Dict[str, Any]) -> MutationResult:
        """Create an entity with a freshly assigned id."""
        entity = {k: v for k, v in fields.items() if k != "id"}
        entity["id"] = custom_page_id() if collection == "pages" else new_id()
        return self.apply(Insert(collection, entity))

    def update(self, collection: str, entity_id: str, patch: Dict[str, Any]) -> MutationResult:
        """
        Change fields of an entity.

        Keys may be attribute names (``expiry_date``) or JSON keys
        (``expiryDate``); keys the entity does not declare are rejected.
        """
        entity_type = record_type(collection) if collection in COLLECTIONS else None
        if entity_type is not None:
            patch = {entity_type.wire_key(key): value for key, value in patch.items()}
        return self.apply(Update(collection, entity_id, dict(patch)))

    def delete(self, collection: str, entity_id: str, confirmed: bool = False) -> MutationResult:
        return self.apply(Delete(collection, entity_id), confirmed=confirmed)

    def _require(self, collection: str, entity_id: str):
        entity = self._current().find(collection, entity_id)
        if entity is None:
            raise RejectedOperationError("No entity with this id", collection=collection, entity_id=entity_id)
        return entity

    # ------------------------------------------------------------------
    # News
    # ------------------------------------------------------------------

    def add_news(self, title: str, content: str = "", date: Optional[str] = None,
                 image_url: str = "", category: str = "Algemeen",
                 expiry_date: Optional[str] = None) -> MutationResult:
        fields = {
            "title": title,
            "content": content,
            "date": date or _today(),
            "imageUrl": image_url,
            "category": category,
        }
        if expiry_date:
            fields["expiryDate"] = expiry_date
        return self.add("news", fields)

    def update_news(self, news_id: str, **patch) -> MutationResult:
        return self.update("news", news_id, patch)

    def delete_news(self, news_id: str, confirmed: bool = False) -> MutationResult:
        return self.delete("news", news_id, confirmed)

    # ------------------------------------------------------------------
    # Calendar events
    # ------------------------------------------------------------------

    def add_event(self, title: str, date: str, type: str = "Activiteit",
                  grades: Optional[List[str]] = None,
                  description: Optional[str] = None) -> MutationResult:
        fields: Dict[str, Any] = {"title": title, "date": date, "type": type, "grades": grades or ["All"]}
        if description:
            fields["description"] = description
        return self.add("events", fields)

    def update_event(self, event_id: str, **patch) -> MutationResult:
        return self.update("events", event_id, patch)

    def delete_event(self, event_id: str, confirmed: bool = False) -> MutationResult:
        return self.delete("events", event_id, confirmed)

    # ------------------------------------------------------------------
    # Photo albums
    # ------------------------------------------------------------------

    def add_album(self, title: str, location: str = "Algemeen", images: Optional[List[str]] = None,
                  cover_image: Optional[str] = None,
                  expiry_date: Optional[str] = None) -> MutationResult:
        images = list(images or [])
        fields: Dict[str, Any] = {
            "title": title,
            "location": location,
            "coverImage": cover_image or (images[0] if images else ""),
            "images": images,
            "createdDate": _today(),
        }
        if expiry_date:
            fields["expiryDate"] = expiry_date
        return self.add("albums", fields)

    def update_album(self, album_id: str, **patch) -> MutationResult:
        return self.update("albums", album_id, patch)

    def delete_album(self, album_id: str, confirmed: bool = False) -> MutationResult:
        return self.delete("albums", album_id, confirmed)

    def add_album_images(self, album_id: str, references: List[str]) -> MutationResult:
        """Append uploaded image references; the first becomes the cover if none is set."""
        album = self._require("albums", album_id)
        if not references:
            raise ValidationError("No images to add", field_name="images")
        patch: Dict[str, Any] = {"images": list(album.images) + list(references)}
        if not album.cover_image:
            patch["coverImage"] = references[0]
        return self.update("albums", album_id, patch)

    def remove_album_image(self, album_id: str, index: int) -> MutationResult:
        album = self._require("albums", album_id)
        if not 0 <= index < len(album.images):
            raise RejectedOperationError("Image index out of range", collection="albums", entity_id=album_id)
        images = list(album.images)
        removed = images.pop(index)
        patch: Dict[str, Any] = {"images": images}
        if album.cover_image == removed:
            patch["coverImage"] = images[0] if images else ""
        return self.update("albums", album_id, patch)

    # ------------------------------------------------------------------
    # Team and parents' association
    # ------------------------------------------------------------------

    def add_team_member(self, role: str, group: str, image_url: str = "") -> MutationResult:
        return self.add("team", {"role": role, "group": group, "imageUrl": image_url})

    def update_team_member(self, member_id: str, **patch) -> MutationResult:
        return self.update("team", member_id, patch)

    def delete_team_member(self, member_id: str, confirmed: bool = False) -> MutationResult:
        return self.delete("team", member_id, confirmed)

    def add_activity(self, title: str, description: str = "",
                     images: Optional[List[str]] = None) -> MutationResult:
        return self.add("ouderwerkgroepActivities",
                        {"title": title, "description": description, "images": list(images or [])})

    def update_activity(self, activity_id: str, **patch) -> MutationResult:
        return self.update("ouderwerkgroepActivities", activity_id, patch)

    def delete_activity(self, activity_id: str, confirmed: bool = False) -> MutationResult:
        return self.delete("ouderwerkgroepActivities", activity_id, confirmed)

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------

    def add_download(self, title: str, file_reference: str,
                     original_name: Optional[str] = None) -> MutationResult:
        """Register an uploaded document by the reference the upload returned."""
        return self.add("downloads", {
            "title": title,
            "filename": file_reference,
            "originalName": original_name or title,
            "uploadDate": _today(),
        })

    def delete_download(self, download_id: str, confirmed: bool = False) -> MutationResult:
        return self.delete("downloads", download_id, confirmed)

    # ------------------------------------------------------------------
    # Form submissions and enrollments
    # ------------------------------------------------------------------

    def add_submission(self, name: str, details: str, type: str = "Contact",
                       email: Optional[str] = None) -> MutationResult:
        fields: Dict[str, Any] = {
            "name": name,
            "details": details,
            "type": type,
            "date": _now_iso(),
            "status": SubmissionStatus.NEW.value,
        }
        if email:
            fields["email"] = email
        return self.add("submissions", fields)

    def mark_submission_read(self, submission_id: str) -> Optional[MutationResult]:
        """
        Mark a submission as read when the administrator opens it.

        Returns None when it was already read.
        """
        submission = self._require("submissions", submission_id)
        if submission.status is SubmissionStatus.READ:
            return None
        return self.update("submissions", submission_id, {"status": SubmissionStatus.READ.value})

    def delete_submission(self, submission_id: str, confirmed: bool = False) -> MutationResult:
        return self.delete("submissions", submission_id, confirmed)

    def add_enrollment(self, answers: Dict[str, Any]) -> MutationResult:
        """Store a submitted enrollment form with status NEW."""
        fields = {k: v for k, v in answers.items() if k not in ("status", "submittedAt")}
        fields["submittedAt"] = _now_iso()
        fields["status"] = EnrollmentStatus.NEW.value
        return self.add("enrollments", fields)

    def update_enrollment_status(self, enrollment_id: str,
                                 status: Union[EnrollmentStatus, str]) -> MutationResult:
        """Set any status; there are no automatic transitions."""
        try:
            status = EnrollmentStatus(status)
        except ValueError:
            raise ValidationError("Invalid enrollment status", field_name="status", field_value=status) from None
        return self.update("enrollments", enrollment_id, {"status": status.value})

    def delete_enrollment(self, enrollment_id: str, confirmed: bool = False) -> MutationResult:
        return self.delete("enrollments", enrollment_id, confirmed)

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def add_page(self, name: str, slug: Optional[str] = None, content: Optional[str] = None,
                 page_images: Optional[List[str]] = None) -> MutationResult:
        if not name or not name.strip():
            raise ValidationError("Page name is required", field_name="name")
        fields: Dict[str, Any] = {
            "name": name,
            "slug": slugify(slug or name),
            "active": True,
            "order": len(self._current().pages),
            "type": PageType.CUSTOM.value,
        }
        if content is not None:
            fields["content"] = content
        if page_images is not None:
            fields["pageImages"] = list(page_images)
        return self.add("pages", fields)

    def update_page(self, page_id: str, **patch) -> MutationResult:
        if "slug" in patch:
            patch["slug"] = slugify(patch["slug"])
        return self.update("pages", page_id, patch)

    def toggle_page(self, page_id: str) -> MutationResult:
        page = self._require("pages", page_id)
        return self.update("pages", page_id, {"active": not page.active})

    def delete_page(self, page_id: str, confirmed: bool = False) -> MutationResult:
        """Delete a custom page. System pages are always rejected."""
        return self.delete("pages", page_id, confirmed)

    def reorder_pages(self, ordered_ids: List[str]) -> MutationResult:
        """
        Put pages in the given order and renumber their ``order`` keys.

        Args:
            ordered_ids: Every page id exactly once
        """
        pages = {page.id: page for page in self._current().pages}
        if sorted(ordered_ids) != sorted(pages):
            raise ValidationError("Reorder must list every page exactly once", field_name="pages")
        value = []
        for order, page_id in enumerate(ordered_ids):
            data = pages[page_id].to_dict()
            data["order"] = order
            value.append(data)
        return self.apply(ReplaceField("pages", value))

    def save_pages(self, pages: List[Dict[str, Any]]) -> MutationResult:
        return self.apply(ReplaceField("pages", list(pages)))

    # ------------------------------------------------------------------
    # Site config and hero images
    # ------------------------------------------------------------------

    def save_config(self, config: Union[SiteConfig, Dict[str, Any]]) -> MutationResult:
        value = config.to_dict() if isinstance(config, SiteConfig) else dict(config)
        return self.apply(ReplaceField("config", value))

    def edit_config(self, **changes) -> None:
        """Stage config changes (JSON keys); committed after the debounce delay."""
        value = {**self._current().config.to_dict(), **changes}
        self.stage(ReplaceField("config", value))

    def add_hero_image(self, reference: str) -> MutationResult:
        return self.apply(ReplaceField("heroImages", list(self._current().hero_images) + [reference]))

    def remove_hero_image(self, index: int) -> MutationResult:
        images = list(self._current().hero_images)
        if not 0 <= index < len(images):
            raise RejectedOperationError("Hero image index out of range", collection="heroImages")
        images.pop(index)
        return self.apply(ReplaceField("heroImages", images))
