"""PDF routes: merge, split, reorder, info, compress."""

import json
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from pydantic import BaseModel

from docops.config.settings import MAX_MERGE_FILES, MIN_MERGE_FILES

from ..dependencies import DocumentServiceDep
from .errors import to_http_exception

router = APIRouter(prefix="/pdf", tags=["pdf"])


class MergeResponse(BaseModel):
    """Response model for merge."""
    success: bool = True
    page_count: int
    files_count: int
    download_url: str
    public_id: str
    size: int


class SplitFile(BaseModel):
    pages: str
    page_count: int
    download_url: str
    public_id: str
    size: int


class SplitResponse(BaseModel):
    """Response model for split."""
    success: bool = True
    original_page_count: int
    split_files: List[SplitFile]


class ReorderResponse(BaseModel):
    """Response model for reorder."""
    success: bool = True
    original_page_count: int
    new_page_count: int
    new_order: List[int]
    download_url: str
    public_id: str
    size: int


class InfoResponse(BaseModel):
    """Response model for document info."""
    success: bool = True
    page_count: int
    title: Optional[str] = None
    author: Optional[str] = None
    size: int


class CompressResponse(BaseModel):
    """Response model for compression."""
    success: bool = True
    original_size: int
    page_count: int
    download_url: str
    public_id: str
    note: str = "Actual compression ratio depends on PDF content (images compress better than text)"


def _validate_pdf(file: UploadFile) -> None:
    is_pdf_name = bool(file.filename) and file.filename.lower().endswith(".pdf")
    if not is_pdf_name and file.content_type != "application/pdf":
        raise HTTPException(
            status_code=400,
            detail=f"Only PDF files are supported: {file.filename}"
        )


async def _read_pdf(file: UploadFile) -> bytes:
    _validate_pdf(file)
    try:
        return await file.read()
    finally:
        await file.close()


def parse_order(raw: str) -> List[int]:
    """
    Parse a page order given as a JSON array or a comma separated list.

    Non-numeric entries in the comma form are dropped.
    """
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = []
        for part in raw.split(","):
            part = part.strip()
            try:
                value.append(int(part))
            except ValueError:
                continue

    if isinstance(value, int) and not isinstance(value, bool):
        value = [value]
    if not isinstance(value, list):
        raise HTTPException(status_code=400, detail="Invalid order format")

    order = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (int, float, str)):
            continue
        try:
            order.append(int(item))
        except ValueError:
            continue
    return order


@router.post("/merge", response_model=MergeResponse)
async def merge_pdfs(
    documents: DocumentServiceDep,
    files: List[UploadFile] = File(..., description="PDF files in merge order"),
) -> MergeResponse:
    """Merge PDFs into one, preserving the order the files were sent in."""
    if len(files) < MIN_MERGE_FILES:
        raise HTTPException(
            status_code=400,
            detail=f"At least {MIN_MERGE_FILES} PDF files are required for merging"
        )
    if len(files) > MAX_MERGE_FILES:
        raise HTTPException(
            status_code=400,
            detail=f"At most {MAX_MERGE_FILES} PDF files can be merged"
        )

    buffers = [await _read_pdf(file) for file in files]

    try:
        result = await documents.merge_documents(buffers)
    except Exception as e:
        raise to_http_exception(e, "merge PDFs")

    return MergeResponse(**result)


@router.post("/split", response_model=SplitResponse)
async def split_pdf(
    documents: DocumentServiceDep,
    file: UploadFile = File(..., description="PDF file to split"),
    pages: Optional[str] = Form(None, description='Page groups, e.g. "1-3;5;7-10"'),
) -> SplitResponse:
    """Split a PDF into one document per ``;`` separated page group."""
    if not pages or not pages.strip():
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Page ranges required",
                "format": 'Use format like "1-3;5;7-10" to create multiple PDFs',
                "example": '"1-5" for single PDF with pages 1-5, "1-3;4-6" for two separate PDFs',
            },
        )

    data = await _read_pdf(file)

    try:
        result = await documents.split_document(data, pages)
    except Exception as e:
        raise to_http_exception(e, "split PDF")

    return SplitResponse(**result)


@router.post("/reorder", response_model=ReorderResponse)
async def reorder_pdf(
    documents: DocumentServiceDep,
    file: UploadFile = File(..., description="PDF file to reorder"),
    order: Optional[str] = Form(None, description="Page numbers in new order, e.g. [3, 1, 2, 4]"),
) -> ReorderResponse:
    """Reorder pages; the given order is kept exactly, duplicates included."""
    if not order:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Page order required",
                "format": "Array of page numbers in desired order, e.g., [3, 1, 2, 4]",
            },
        )

    page_order = parse_order(order)
    if not page_order:
        raise HTTPException(status_code=400, detail="Invalid order format")

    data = await _read_pdf(file)

    try:
        result = await documents.reorder_document(data, page_order)
    except Exception as e:
        raise to_http_exception(e, "reorder PDF pages")

    return ReorderResponse(**result)


@router.post("/info", response_model=InfoResponse)
async def pdf_info(
    documents: DocumentServiceDep,
    file: UploadFile = File(..., description="PDF file to inspect"),
) -> InfoResponse:
    """Page count, title and author."""
    data = await _read_pdf(file)

    try:
        info = await documents.get_document_info(data)
    except Exception as e:
        raise to_http_exception(e, "get PDF info")

    return InfoResponse(**info.to_dict())


@router.post("/compress", response_model=CompressResponse)
async def compress_pdf(
    documents: DocumentServiceDep,
    file: UploadFile = File(..., description="PDF file to compress"),
) -> CompressResponse:
    """Upload a small PDF and return a provider-optimized download URL."""
    data = await _read_pdf(file)

    try:
        result = await documents.compress_document(data)
    except Exception as e:
        raise to_http_exception(e, "compress PDF")

    return CompressResponse(**result)
