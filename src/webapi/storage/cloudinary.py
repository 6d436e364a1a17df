"""Cloudinary-compatible object store client.

Upload and destroy use signed requests, listing uses the Admin API with
basic auth. Signatures and delivery URLs come from the Cloudinary SDK
utilities; all network calls go through httpx.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

import cloudinary.utils
import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import StorageConfig
from .exceptions import UpstreamUnavailable
from .gateway import ListPage, ResourceKind, StoredObject, TaggedObject, UploadGateway, temporary_tags

logger = logging.getLogger(__name__)

# Transformation parameters the services are allowed to emit
TRANSFORMATION_PARAMS = frozenset({
    "angle",
    "aspect_ratio",
    "crop",
    "effect",
    "fetch_format",
    "gravity",
    "height",
    "quality",
    "width",
    "x",
    "y",
})


class _RetryableResponse(Exception):
    """Provider answered with a status worth retrying."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


def _checked_components(components: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    checked = []
    for component in components:
        unknown = set(component) - TRANSFORMATION_PARAMS
        if unknown:
            raise ValueError(f"Unsupported transformation parameter: {', '.join(sorted(unknown))}")
        checked.append({key: value for key, value in component.items() if value is not None})
    return checked


def render_transformations(components: Sequence[Mapping[str, Any]]) -> str:
    """
    Render transformation components as a URL path segment.

    Each component becomes comma separated ``abbr_value`` pairs in sorted
    order; components are joined with ``/``.
    """
    checked = [component for component in _checked_components(components) if component]
    if not checked:
        return ""
    rendered, _ = cloudinary.utils.generate_transformation_string(transformation=checked)
    return rendered


def _created_at(resource: Mapping[str, Any]) -> datetime:
    """Creation time of a listed resource, falling back to its upload tag."""
    value = resource.get("created_at")
    if value:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    for tag in resource.get("tags") or ():
        stamp = tag[len("uploaded_"):] if tag.startswith("uploaded_") else ""
        if stamp.isdecimal():
            return datetime.fromtimestamp(int(stamp) / 1000, tz=timezone.utc)

    logger.warning(f"No creation time for {resource.get('public_id')}, treating as new")
    return datetime.now(timezone.utc)


class CloudinaryGateway(UploadGateway):
    """UploadGateway backed by the Cloudinary REST API."""

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        api_base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            cloud_name: Provider account name
            api_key: API key
            api_secret: API secret used for signing
            api_base_url: REST API origin
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.cloud_name = cloud_name or StorageConfig.cloud_name
        self.api_key = api_key or StorageConfig.api_key
        self.api_secret = api_secret or StorageConfig.api_secret
        base_url = (api_base_url or StorageConfig.api_base_url).rstrip("/")

        self.client = httpx.AsyncClient(
            base_url=f"{base_url}/v1_1/{self.cloud_name}",
            timeout=timeout or StorageConfig.request_timeout,
            transport=transport,
        )

        logger.info(f"Cloudinary gateway initialized for cloud: {self.cloud_name}")

    async def close(self) -> None:
        await self.client.aclose()

    @retry(
        retry=retry_if_exception_type((httpx.TransportError, _RetryableResponse)),
        stop=stop_after_attempt(StorageConfig.max_retries),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        response = await self.client.request(method, url, **kwargs)
        if response.status_code == 429 or response.status_code >= 500:
            raise _RetryableResponse(response)
        return response

    async def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Send a request and decode the JSON body, mapping failures to UpstreamUnavailable."""
        try:
            response = await self._send(method, url, **kwargs)
        except _RetryableResponse as e:
            raise UpstreamUnavailable(
                f"Storage provider error: HTTP {e.response.status_code}",
                {"url": url, "status": e.response.status_code},
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(
                f"Storage provider unreachable: {e}",
                {"url": url},
            )

        if response.status_code >= 400:
            raise UpstreamUnavailable(
                f"Storage provider rejected request: HTTP {response.status_code}",
                {"url": url, "status": response.status_code, "body": response.text[:500]},
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"Invalid provider response: {e}", {"url": url})

    def _signed(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {key: value for key, value in params.items() if value is not None}
        params["timestamp"] = int(time.time())
        params["signature"] = cloudinary.utils.api_sign_request(params, self.api_secret)
        params["api_key"] = self.api_key
        return params

    async def upload(
        self,
        data: bytes,
        *,
        resource_kind: ResourceKind,
        tags: Optional[Sequence[str]] = None,
        public_id: Optional[str] = None,
        format: Optional[str] = None,
    ) -> StoredObject:
        kind = ResourceKind(resource_kind)
        params = self._signed({
            "folder": StorageConfig.temp_folder,
            "tags": ",".join(temporary_tags(tags)),
            "public_id": public_id,
            "format": format,
        })

        body = await self._request(
            "POST",
            f"/{kind.value}/upload",
            data={key: str(value) for key, value in params.items()},
            files={"file": ("upload", data)},
        )

        stored = StoredObject(
            public_id=body["public_id"],
            resource_kind=kind,
            byte_size=int(body.get("bytes", len(data))),
            created_at=_created_at(body),
            url=body.get("secure_url") or body.get("url", ""),
            width=body.get("width"),
            height=body.get("height"),
            format=body.get("format"),
        )
        logger.info(f"Uploaded {kind.value}: {stored.public_id} ({stored.byte_size} bytes)")
        return stored

    async def delete(self, public_id: str, resource_kind: ResourceKind) -> bool:
        kind = ResourceKind(resource_kind)
        params = self._signed({"public_id": public_id, "invalidate": "true"})

        body = await self._request(
            "POST",
            f"/{kind.value}/destroy",
            data={key: str(value) for key, value in params.items()},
        )

        result = body.get("result")
        if result == "ok":
            return True
        if result == "not found":
            return False
        raise UpstreamUnavailable(
            f"Unexpected destroy result: {result}",
            {"public_id": public_id, "body": body},
        )

    async def list_by_tag(
        self,
        tag: str,
        resource_kind: ResourceKind,
        cursor: Optional[str] = None,
        max_results: int = StorageConfig.list_page_size,
    ) -> ListPage:
        kind = ResourceKind(resource_kind)
        query: Dict[str, Any] = {
            "max_results": min(max_results, StorageConfig.list_page_size),
            "tags": "true",
        }
        if cursor:
            query["next_cursor"] = cursor

        body = await self._request(
            "GET",
            f"/resources/{kind.value}/tags/{tag}",
            params=query,
            auth=(self.api_key, self.api_secret),
        )

        items: List[TaggedObject] = []
        for resource in body.get("resources", []):
            items.append(TaggedObject(
                public_id=resource["public_id"],
                resource_kind=kind,
                created_at=_created_at(resource),
                byte_size=int(resource.get("bytes", 0)),
                tags=list(resource.get("tags", [])),
            ))

        return ListPage(items=items, next_cursor=body.get("next_cursor"))

    def build_url(
        self,
        public_id: str,
        *,
        resource_kind: ResourceKind = ResourceKind.IMAGE,
        transformations: Sequence[Mapping[str, Any]] = (),
        format: Optional[str] = None,
    ) -> str:
        kind = ResourceKind(resource_kind)
        url, _ = cloudinary.utils.cloudinary_url(
            public_id,
            cloud_name=self.cloud_name,
            resource_type=kind.value,
            type="upload",
            transformation=[c for c in _checked_components(transformations) if c],
            format=format,
            secure=True,
            force_version=False,
        )
        return url
