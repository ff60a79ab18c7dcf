"""
Storage adapter HTTP service.

Serves the site document kept in a KeyValueDocumentStore: the full-document
endpoint, whole-field endpoints for config, pages and hero images, scoped
CRUD endpoints per collection and the image and document upload endpoints.
"""
import logging
import time
import uuid
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException, NotFound, RequestEntityTooLarge
from werkzeug.utils import secure_filename

from schoolsite.client.site_api_client import ENTITY_ENDPOINTS
from schoolsite.core.config import MAX_DOCUMENT_BYTES, MAX_UPLOAD_BYTES, UPLOAD_DIR
from schoolsite.core.exceptions import SchoolSiteError, StorageError, ValidationError
from schoolsite.models.document import LEGACY_KEYS, record_type
from schoolsite.models.entities import EnrollmentStatus, SubmissionStatus
from schoolsite.storage.document_store import KeyValueDocumentStore

logger = logging.getLogger(__name__)

# Endpoint name -> document key
COLLECTION_KEYS: Dict[str, str] = {endpoint: key for key, endpoint in ENTITY_ENDPOINTS.items()}

IMAGE_EXTENSIONS = {"jpeg", "jpg", "png", "gif", "webp"}
DOCUMENT_EXTENSIONS = {"pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "ics"}
UPLOAD_CATEGORIES = {"gallery", "hero", "news", "team", "ouderwerkgroep", "pages"}


def _error(message: str, status: int, details: Optional[Any] = None):
    body: Dict[str, Any] = {"error": message}
    if details is not None:
        body["details"] = details
    return jsonify(body), status


def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
    """Move legacy top-level keys to their current names."""
    for legacy, current in LEGACY_KEYS.items():
        if legacy in data:
            value = data.pop(legacy)
            data.setdefault(current, value)
    return data


def _json_body(expected: type = dict):
    body = request.get_json(silent=True)
    if not isinstance(body, expected):
        raise ValidationError(f"Request body must be a JSON {expected.__name__}")
    return body


def _new_entity(collection: str, body: Dict[str, Any]) -> Dict[str, Any]:
    """Apply the per-collection creation defaults."""
    item = dict(body)
    item.setdefault("id", str(int(time.time() * 1000)))
    today = date.today().isoformat()
    now = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    if collection == "news":
        item["date"] = item.get("date") or today
    elif collection == "submissions":
        item.setdefault("status", SubmissionStatus.NEW.value)
        item["date"] = item.get("date") or now
    elif collection == "enrollments":
        item.setdefault("status", EnrollmentStatus.NEW.value)
        item["submittedAt"] = item.get("submittedAt") or now
    elif collection == "downloads":
        file_url = item.pop("fileUrl", None) or item.get("filename")
        if not item.get("title") or not file_url:
            raise ValidationError("Title and fileUrl are required", field_name="fileUrl")
        item["filename"] = file_url
        item["originalName"] = item.get("originalName") or item["title"]
        item["uploadDate"] = item.get("uploadDate") or today
    elif collection == "albums":
        item["createdDate"] = item.get("createdDate") or today

    record_type(collection).from_dict(item)
    return item


def create_app(
    store: KeyValueDocumentStore,
    upload_dir: Optional[Union[str, Path]] = None,
    max_upload_bytes: int = MAX_UPLOAD_BYTES,
    max_document_bytes: int = MAX_DOCUMENT_BYTES,
) -> Flask:
    """
    Build the storage adapter application.

    Args:
        store: Document store holding the site document
        upload_dir: Directory for uploaded images (defaults to config)
        max_upload_bytes: Request size limit for image uploads
        max_document_bytes: Request size limit for document uploads

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = max(max_upload_bytes, max_document_bytes)
    CORS(app, resources={r"/api/*": {"origins": "*"}})
    upload_root = Path(upload_dir) if upload_dir is not None else UPLOAD_DIR

    @app.errorhandler(ValidationError)
    def handle_validation(e: ValidationError):
        return _error(e.message, 400, e.details or None)

    @app.errorhandler(SchoolSiteError)
    def handle_store_error(e: SchoolSiteError):
        logger.error(f"Request {request.method} {request.path} failed: {e}")
        return _error("Storage failure", 500, str(e))

    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        return _error(e.name, e.code or 500, e.description)

    # ============ Full document ============

    @app.route("/api/data", methods=["GET"])
    def get_data():
        return jsonify(_normalize(store.get_document()))

    @app.route("/api/data", methods=["PUT", "POST"])
    def put_data():
        body = _normalize(_json_body())
        store.set_document(body)
        logger.info("Full site document replaced")
        return jsonify({"success": True, "message": "Data saved"})

    # ============ Whole fields ============

    @app.route("/api/config", methods=["GET"])
    def get_config():
        return jsonify(store.get_document().get("config", {}))

    @app.route("/api/config", methods=["PUT"])
    def put_config():
        body = _json_body()

        def merge(data):
            data["config"] = {**data.get("config", {}), **body}
            return data["config"]

        return jsonify({"success": True, "config": store.mutate(merge)})

    @app.route("/api/pages", methods=["GET"])
    def get_pages():
        return jsonify(store.get_document().get("pages", []))

    @app.route("/api/pages", methods=["PUT"])
    def put_pages():
        body = _json_body(list)
        record = record_type("pages")
        for page in body:
            record.from_dict(page)

        def replace(data):
            data["pages"] = body

        store.mutate(replace)
        return jsonify({"success": True, "pages": body})

    @app.route("/api/hero-images", methods=["GET"])
    def get_hero_images():
        return jsonify(store.get_document().get("heroImages", []))

    @app.route("/api/hero-images", methods=["PUT"])
    def put_hero_images():
        body = _json_body(list)
        if not all(isinstance(image, str) for image in body):
            raise ValidationError("heroImages must be a list of strings", field_name="heroImages")

        def replace(data):
            data["heroImages"] = body

        store.mutate(replace)
        return jsonify({"success": True, "heroImages": body})

    @app.route("/api/hero-images/<int:index>", methods=["DELETE"])
    def delete_hero_image(index: int):
        def remove(data):
            images = data.get("heroImages", [])
            if not 0 <= index < len(images):
                return False
            images.pop(index)
            return True

        if not store.mutate(remove):
            return _error("Image not found", 404)
        return jsonify({"success": True})

    # ============ Scoped collections ============

    def _collection_key(endpoint: str) -> str:
        key = COLLECTION_KEYS.get(endpoint)
        if key is None:
            raise NotFound(f"Unknown collection '{endpoint}'")
        return key

    @app.route("/api/<endpoint>", methods=["GET"])
    def list_entities(endpoint: str):
        key = _collection_key(endpoint)
        return jsonify(_normalize(store.get_document()).get(key, []))

    @app.route("/api/<endpoint>", methods=["POST"])
    def create_entity(endpoint: str):
        key = _collection_key(endpoint)
        item = _new_entity(key, _json_body())

        def append(data):
            items = _normalize(data).setdefault(key, [])
            if any(existing.get("id") == item["id"] for existing in items):
                raise ValidationError("Entity id already exists", field_name="id", field_value=item["id"])
            items.append(item)

        store.mutate(append)
        logger.info(f"Created {key} entry {item['id']}")
        return jsonify({"success": True, "item": item})

    @app.route("/api/<endpoint>/<entity_id>", methods=["GET"])
    def get_entity(endpoint: str, entity_id: str):
        key = _collection_key(endpoint)
        for item in _normalize(store.get_document()).get(key, []):
            if item.get("id") == entity_id:
                return jsonify(item)
        return _error("Not found", 404)

    @app.route("/api/<endpoint>/<entity_id>", methods=["PUT"])
    def update_entity(endpoint: str, entity_id: str):
        key = _collection_key(endpoint)
        patch = _json_body()
        patch.pop("id", None)

        def merge(data):
            items = _normalize(data).setdefault(key, [])
            for index, item in enumerate(items):
                if item.get("id") == entity_id:
                    updated = {**item, **patch}
                    record_type(key).from_dict(updated)
                    items[index] = updated
                    return updated
            return None

        updated = store.mutate(merge)
        if updated is None:
            return _error("Not found", 404)
        return jsonify({"success": True, "item": updated})

    @app.route("/api/<endpoint>/<entity_id>", methods=["DELETE"])
    def delete_entity(endpoint: str, entity_id: str):
        key = _collection_key(endpoint)

        def remove(data):
            items = _normalize(data).setdefault(key, [])
            remaining = [item for item in items if item.get("id") != entity_id]
            data[key] = remaining
            return len(remaining) != len(items)

        if not store.mutate(remove):
            return _error("Not found", 404)
        logger.info(f"Deleted {key} entry {entity_id}")
        return jsonify({"success": True})

    # ============ Uploads ============

    def _save_upload(upload, folder: str, allowed, message: str) -> str:
        if upload is None or not upload.filename:
            raise ValidationError("No file uploaded")
        extension = Path(secure_filename(upload.filename)).suffix.lower().lstrip(".")
        if extension not in allowed:
            raise ValidationError(message, field_name="file", field_value=extension or None)

        target_dir = upload_root / folder
        target_dir.mkdir(parents=True, exist_ok=True)
        name = f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}.{extension}"
        try:
            upload.save(target_dir / name)
        except OSError as e:
            raise StorageError("Could not save upload", details={"folder": folder}, original_error=e) from e
        return name

    @app.route("/api/upload/documents", methods=["POST"])
    def upload_document():
        upload = request.files.get("document")
        name = _save_upload(
            upload, "documents", DOCUMENT_EXTENSIONS,
            "Only documents (PDF, Word, Excel, PowerPoint, ICS) are allowed",
        )
        path = f"/documents/{name}"
        logger.info(f"Stored document {path}")
        return jsonify({"success": True, "path": path, "originalName": upload.filename})

    @app.route("/api/upload/<category>", methods=["POST"])
    def upload_image(category: str):
        if category not in UPLOAD_CATEGORIES:
            return _error("Unknown upload category", 400, category)
        if request.content_length is not None and request.content_length > max_upload_bytes:
            raise RequestEntityTooLarge()
        name = _save_upload(request.files.get("image"), category, IMAGE_EXTENSIONS, "Only images are allowed")
        path = f"/images/{category}/{name}"
        logger.info(f"Stored upload {path}")
        return jsonify({"success": True, "path": path})

    return app
