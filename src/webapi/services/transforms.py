"""Image transformations delegated to the object store.

Nothing here touches pixels. Requests are translated into declarative
transformation components that the provider applies when the delivery URL
is fetched.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from docops.config.settings import (
    ALLOWED_IMAGE_FORMATS,
    ASPECT_RATIOS,
    DEFAULT_IMAGE_QUALITY,
    DEFAULT_TRANSFORM_QUALITY,
    QUALITY_PRESETS,
)

from ..common.exceptions import ValidationException
from ..storage.gateway import ResourceKind, StoredObject, UploadGateway

logger = logging.getLogger(__name__)


def resolve_quality(value: Union[str, int, None], default: int = DEFAULT_IMAGE_QUALITY) -> int:
    """Map a preset name or number to a quality in 1..100."""
    if value is None or value == "":
        return default
    if isinstance(value, str) and value.lower() in QUALITY_PRESETS:
        return QUALITY_PRESETS[value.lower()]
    try:
        quality = int(value)
    except (TypeError, ValueError):
        return default
    if quality == 0:
        return default
    return max(1, min(100, quality))


def normalize_format(value: Optional[str]) -> Optional[str]:
    """Lower-case an output format, mapping jpeg to jpg. Unknown formats give None."""
    if not value or not isinstance(value, str):
        return None
    fmt = value.lower()
    if fmt not in ALLOWED_IMAGE_FORMATS:
        return None
    return "jpg" if fmt == "jpeg" else fmt


def _clamp(value: Any, low: int = -100, high: int = 100) -> int:
    return max(low, min(high, int(value)))


def build_transformations(transforms: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """
    Translate a transform request into provider components.

    Supported keys: crop {x, y, width, height}, aspectRatio (ignored when
    crop is given), resize {width, height}, rotate, brightness, contrast,
    quality. Output format is handled separately by normalize_format.

    Raises:
        ValidationException: A value has the wrong type
    """
    components: List[Dict[str, Any]] = []

    try:
        crop = transforms.get("crop")
        if crop:
            components.append({
                "crop": "crop",
                "x": round(float(crop.get("x", 0))),
                "y": round(float(crop.get("y", 0))),
                "width": round(float(crop["width"])),
                "height": round(float(crop["height"])),
            })

        aspect_ratio = transforms.get("aspectRatio")
        if aspect_ratio and not crop and aspect_ratio in ASPECT_RATIOS:
            components.append({
                "aspect_ratio": aspect_ratio,
                "crop": "crop",
                "gravity": "center",
            })

        resize = transforms.get("resize")
        if resize:
            component: Dict[str, Any] = {"crop": "scale"}
            if resize.get("width"):
                component["width"] = int(resize["width"])
            if resize.get("height"):
                component["height"] = int(resize["height"])
            components.append(component)

        if transforms.get("rotate"):
            components.append({"angle": int(transforms["rotate"])})

        brightness = transforms.get("brightness")
        if brightness:
            components.append({"effect": f"brightness:{_clamp(brightness)}"})

        contrast = transforms.get("contrast")
        if contrast:
            components.append({"effect": f"contrast:{_clamp(contrast)}"})

    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ValidationException(
            f"Invalid transformations: {e}",
            details={"transformations": dict(transforms)},
        )

    if transforms.get("quality"):
        components.append({
            "quality": resolve_quality(transforms["quality"], DEFAULT_TRANSFORM_QUALITY)
        })
    else:
        components.append({"quality": "auto"})

    return components


def estimate_compressed_size(original_size: int, quality: int) -> int:
    """Rough output size for a quality setting; the provider does not report it."""
    return round(original_size * (quality / 100) * 0.7)


class ImageService:
    """Uploads images as temporary objects and derives transformed URLs."""

    def __init__(self, gateway: UploadGateway):
        self.gateway = gateway

    async def _upload(self, data: bytes) -> StoredObject:
        return await self.gateway.upload(data, resource_kind=ResourceKind.IMAGE)

    async def compress_image(self, data: bytes, quality: Union[str, int, None] = "medium") -> dict:
        quality_value = resolve_quality(quality)
        stored = await self._upload(data)

        compressed_size = estimate_compressed_size(stored.byte_size, quality_value)
        ratio = (1 - compressed_size / stored.byte_size) * 100 if stored.byte_size else 0.0

        return {
            "original_size": stored.byte_size,
            "compressed_size": compressed_size,
            "compression_ratio": f"{ratio:.1f}%",
            "quality": quality_value,
            "download_url": self.gateway.build_url(
                stored.public_id,
                transformations=[{"quality": quality_value}, {"fetch_format": "auto"}],
            ),
            "public_id": stored.public_id,
            "width": stored.width,
            "height": stored.height,
        }

    async def convert_image(self, data: bytes, target_format: str = "webp") -> dict:
        fmt = normalize_format(target_format)
        if fmt is None:
            raise ValidationException(
                f"Invalid format. Allowed: {', '.join(ALLOWED_IMAGE_FORMATS)}",
                details={"format": target_format},
            )

        stored = await self._upload(data)
        return {
            "target_format": fmt,
            "download_url": self.gateway.build_url(
                stored.public_id,
                transformations=[{"quality": "auto"}],
                format=fmt,
            ),
            "public_id": stored.public_id,
            "width": stored.width,
            "height": stored.height,
        }

    async def transform_image(self, data: bytes, transforms: Mapping[str, Any]) -> dict:
        # Validate before uploading so bad requests leave nothing behind
        components = build_transformations(transforms)
        fmt = normalize_format(transforms.get("format"))
        if transforms.get("format") and fmt is None:
            raise ValidationException(
                f"Invalid format. Allowed: {', '.join(ALLOWED_IMAGE_FORMATS)}",
                details={"format": transforms.get("format")},
            )

        stored = await self._upload(data)
        logger.info(f"Transforming {stored.public_id} with {len(components)} component(s)")

        return {
            "download_url": self.gateway.build_url(
                stored.public_id,
                transformations=components,
                format=fmt,
            ),
            "public_id": stored.public_id,
            "applied_transformations": dict(transforms),
            "original_width": stored.width,
            "original_height": stored.height,
        }

    def preview_url(
        self,
        public_id: str,
        width: Optional[int] = None,
        height: Optional[int] = None,
        rotate: Optional[int] = None,
    ) -> str:
        """Low quality preview URL for an already uploaded image."""
        components: List[Dict[str, Any]] = []
        if width or height:
            resize: Dict[str, Any] = {"crop": "scale"}
            if width:
                resize["width"] = width
            if height:
                resize["height"] = height
            components.append(resize)
        if rotate:
            components.append({"angle": rotate})
        components.append({"quality": "auto:low"})
        return self.gateway.build_url(public_id, transformations=components)
