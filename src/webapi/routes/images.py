"""Image routes: compress, convert, transform, preview.

All pixel work is done by the object store when the returned URL is
fetched.
"""

import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from pydantic import BaseModel

from ..dependencies import ImageServiceDep
from .errors import to_http_exception

router = APIRouter(prefix="/images", tags=["images"])


class CompressImageResponse(BaseModel):
    success: bool = True
    original_size: int
    compressed_size: int
    compression_ratio: str
    quality: int
    download_url: str
    public_id: str
    width: Optional[int] = None
    height: Optional[int] = None


class ConvertImageResponse(BaseModel):
    success: bool = True
    original_format: Optional[str] = None
    target_format: str
    download_url: str
    public_id: str
    width: Optional[int] = None
    height: Optional[int] = None


class TransformImageResponse(BaseModel):
    success: bool = True
    download_url: str
    public_id: str
    applied_transformations: Dict[str, Any]
    original_width: Optional[int] = None
    original_height: Optional[int] = None


class PreviewResponse(BaseModel):
    preview_url: str


async def _read_image(file: UploadFile) -> bytes:
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="Only image files are supported")
    try:
        return await file.read()
    finally:
        await file.close()


@router.post("/compress", response_model=CompressImageResponse)
async def compress_image(
    images: ImageServiceDep,
    file: UploadFile = File(..., description="Image to compress"),
    quality: str = Form("medium", description="low, medium, high or 1-100"),
) -> CompressImageResponse:
    """Compress an image with a quality preset or number."""
    data = await _read_image(file)

    try:
        result = await images.compress_image(data, quality)
    except Exception as e:
        raise to_http_exception(e, "compress image")

    return CompressImageResponse(**result)


@router.post("/convert", response_model=ConvertImageResponse)
async def convert_image(
    images: ImageServiceDep,
    file: UploadFile = File(..., description="Image to convert"),
    target_format: str = Form("webp", alias="targetFormat", description="jpg, png or webp"),
) -> ConvertImageResponse:
    """Convert an image to another format."""
    original_format = file.content_type.split("/")[-1] if file.content_type else None
    data = await _read_image(file)

    try:
        result = await images.convert_image(data, target_format)
    except Exception as e:
        raise to_http_exception(e, "convert image")

    return ConvertImageResponse(original_format=original_format, **result)


@router.post("/transform", response_model=TransformImageResponse)
async def transform_image(
    images: ImageServiceDep,
    file: UploadFile = File(..., description="Image to transform"),
    transformations: Optional[str] = Form(None, description="JSON transform request"),
) -> TransformImageResponse:
    """Apply crop, resize, rotate, brightness, contrast, quality and format."""
    transforms: Dict[str, Any] = {}
    if transformations:
        try:
            transforms = json.loads(transformations)
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="Invalid transformations format")
        if not isinstance(transforms, dict):
            raise HTTPException(status_code=400, detail="Invalid transformations format")

    data = await _read_image(file)

    try:
        result = await images.transform_image(data, transforms)
    except Exception as e:
        raise to_http_exception(e, "transform image")

    return TransformImageResponse(**result)


@router.get("/preview/{public_id:path}", response_model=PreviewResponse)
async def preview_image(
    public_id: str,
    images: ImageServiceDep,
    width: Optional[int] = None,
    height: Optional[int] = None,
    rotate: Optional[int] = None,
) -> PreviewResponse:
    """Low quality preview URL for an uploaded image."""
    return PreviewResponse(
        preview_url=images.preview_url(public_id, width=width, height=height, rotate=rotate)
    )
