"""
Remote Document adapter client.
Handles communication with the site storage API: the full-document endpoint,
the scoped entity endpoints and the image and document upload endpoints.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import requests

from schoolsite.core.config import API_BASE_URL, API_MAX_RETRIES, API_TIMEOUT
from schoolsite.core.exceptions import ConfigurationError, RemoteStoreError
from schoolsite.utils.retry import fetch_with_retry

logger = logging.getLogger(__name__)

# Document collection -> scoped entity endpoint
ENTITY_ENDPOINTS: Dict[str, str] = {
    "news": "news",
    "events": "events",
    "albums": "albums",
    "team": "team",
    "ouderwerkgroepActivities": "ouderwerkgroep",
    "submissions": "submissions",
    "downloads": "downloads",
    "enrollments": "enrollments",
}

# Top-level document field -> whole-field endpoint
FIELD_ENDPOINTS: Dict[str, str] = {
    "config": "config",
    "pages": "pages",
    "heroImages": "hero-images",
}


class SiteApiClient:
    """
    Client for the site storage API.

    Reads are retried with exponential backoff. Writes are sent once: a
    failed write is recovered by the caller's local cache, and retrying a
    create could duplicate it on the server.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: API base URL (defaults to config)
            timeout: Request timeout in seconds (defaults to config)
            max_retries: Maximum read attempts (defaults to config)
            session: Pre-built requests session
        """
        base_url = base_url if base_url is not None else API_BASE_URL
        if not base_url:
            raise ConfigurationError("Remote API URL is not configured", config_key="SCHOOLSITE_API_URL")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or API_TIMEOUT
        self.max_retries = max_retries or API_MAX_RETRIES
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "schoolsite/0.1.0"})

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _send(self, method: str, endpoint: str, **kwargs) -> Any:
        """
        Send one request and decode its JSON body.

        Raises:
            RemoteStoreError: Network failure, non-2xx status or a body
                that is not JSON
        """
        url = self._url(endpoint)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RemoteStoreError(f"{method} {endpoint} failed: {e}", url=url) from e

        if not response.ok:
            raise RemoteStoreError(
                f"{method} {endpoint} returned an error",
                details={"body": response.text[:200]},
                status_code=response.status_code,
                url=url,
            )
        try:
            return response.json()
        except ValueError as e:
            raise RemoteStoreError(
                f"{method} {endpoint} returned a malformed body",
                status_code=response.status_code,
                url=url,
            ) from e

    def _write(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        body = self._send(method, endpoint, **kwargs)
        if not isinstance(body, dict) or body.get("success") is False:
            raise RemoteStoreError(
                f"{method} {endpoint} was not accepted",
                details={"body": body},
                url=self._url(endpoint),
            )
        return body

    @staticmethod
    def _entity_endpoint(collection: str) -> str:
        if collection not in ENTITY_ENDPOINTS:
            raise ConfigurationError("Collection has no scoped endpoint", config_key=collection)
        return ENTITY_ENDPOINTS[collection]

    def get_document(self) -> Dict[str, Any]:
        """
        Fetch the full site document.

        Returns:
            Document as a dictionary

        Raises:
            RemoteStoreError: All attempts failed or the body is not an object
        """
        logger.info("Fetching site document")
        body = fetch_with_retry(
            lambda: self._send("GET", "data"),
            max_retries=self.max_retries,
            operation_name="GET data",
        )
        if not isinstance(body, dict):
            raise RemoteStoreError("Site document is not a JSON object", url=self._url("data"))
        return body

    def put_document(self, document: Dict[str, Any]) -> None:
        """Replace the full remote document."""
        logger.debug("Writing full site document")
        self._write("PUT", "data", json=document)

    def put_field(self, field_name: str, value: Any) -> None:
        """
        Replace one top-level field, leaving the rest of the document untouched.

        Args:
            field_name: "config", "pages" or "heroImages"
            value: New JSON value for the field
        """
        if field_name not in FIELD_ENDPOINTS:
            raise ConfigurationError("Field has no scoped endpoint", config_key=field_name)
        logger.debug(f"Writing field {field_name}")
        self._write("PUT", FIELD_ENDPOINTS[field_name], json=value)

    def create_entity(self, collection: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an entity through its scoped endpoint.

        Returns:
            The entity as stored by the server
        """
        endpoint = self._entity_endpoint(collection)
        body = self._write("POST", endpoint, json=payload)
        return body.get("item") or payload

    def update_entity(self, collection: str, entity_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        """Apply a partial update to one entity."""
        endpoint = self._entity_endpoint(collection)
        body = self._write("PUT", f"{endpoint}/{entity_id}", json=patch)
        return body.get("item") or {}

    def delete_entity(self, collection: str, entity_id: str) -> None:
        """Delete one entity by id."""
        endpoint = self._entity_endpoint(collection)
        self._write("DELETE", f"{endpoint}/{entity_id}")

    def list_entities(self, collection: str) -> List[Dict[str, Any]]:
        """Fetch one collection through its scoped endpoint."""
        endpoint = self._entity_endpoint(collection)
        body = fetch_with_retry(
            lambda: self._send("GET", endpoint),
            max_retries=self.max_retries,
            operation_name=f"GET {endpoint}",
        )
        if isinstance(body, dict):
            body = body.get(endpoint, [])
        return body if isinstance(body, list) else []

    def upload_image(self, category: str, file: Union[str, Path], filename: Optional[str] = None) -> str:
        """
        Upload an image and return the stored reference.

        The bytes are passed through untouched; only the returned path or
        URL is meant to be stored in the document.

        Args:
            category: Upload folder (gallery, hero, news, team, ouderwerkgroep)
            file: Path of the image to upload
            filename: Name to send (defaults to the file name)

        Returns:
            Reference string (URL or path)
        """
        path = Path(file)
        with path.open("rb") as handle:
            body = self._write(
                "POST",
                f"upload/{category}",
                files={"image": (filename or path.name, handle)},
            )
        reference = body.get("path") or body.get("url")
        if not isinstance(reference, str) or not reference:
            raise RemoteStoreError("Upload response has no reference", details={"body": body})
        logger.info(f"Uploaded {path.name} as {reference}")
        return reference

    def upload_document(self, file: Union[str, Path], filename: Optional[str] = None) -> Tuple[str, str]:
        """
        Upload a document for the downloads list.

        Args:
            file: Path of the PDF, Word, Excel, PowerPoint or ICS file
            filename: Name to send (defaults to the file name)

        Returns:
            (reference, original name) to pass to add_download
        """
        path = Path(file)
        name = filename or path.name
        with path.open("rb") as handle:
            body = self._write("POST", "upload/documents", files={"document": (name, handle)})
        reference = body.get("path") or body.get("url")
        if not isinstance(reference, str) or not reference:
            raise RemoteStoreError("Upload response has no reference", details={"body": body})
        logger.info(f"Uploaded document {name} as {reference}")
        return reference, body.get("originalName") or name

    def close(self):
        """Close the HTTP session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
