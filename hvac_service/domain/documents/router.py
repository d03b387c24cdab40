"""Document router - SPK, documentation uploads and BAST endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...auth import TenantContext, get_tenant_context
from ...database import get_db
from .schemas import BastApprove, BastCreate, BastReject, SpkCreate, SpkUpdate
from .service import DocumentService, bast_to_dict, spk_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Documents"])
documentation_router = APIRouter(prefix="/documentation", tags=["Documents"])
bast_router = APIRouter(prefix="/bast", tags=["Documents"])

MAX_UPLOAD_SIZE = 50 * 1024 * 1024  # 50MB
DANGEROUS_FILENAME_CHARS = ("..", "/", "\\", "<", ">", ":", '"', "|", "?", "*")


def get_document_service(db: Session = Depends(get_db)) -> DocumentService:
    """Dependency injection for DocumentService"""
    return DocumentService(db)


# ============================================================================
# SPK
# ============================================================================


@router.get("/{order_id}/spk")
async def get_spk(
    order_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: DocumentService = Depends(get_document_service),
):
    return spk_to_dict(service.get_spk(order_id, ctx.tenant_id))


@router.post("/{order_id}/spk", status_code=201)
async def create_spk(
    order_id: int,
    data: SpkCreate,
    ctx: TenantContext = Depends(get_tenant_context),
    service: DocumentService = Depends(get_document_service),
):
    return spk_to_dict(service.create_spk(order_id, data, ctx))


@router.put("/{order_id}/spk")
async def update_spk(
    order_id: int,
    data: SpkUpdate,
    ctx: TenantContext = Depends(get_tenant_context),
    service: DocumentService = Depends(get_document_service),
):
    return spk_to_dict(service.update_spk(order_id, data, ctx))


@router.post("/{order_id}/spk/complete")
async def complete_spk(
    order_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: DocumentService = Depends(get_document_service),
):
    return spk_to_dict(service.complete_spk(order_id, ctx))


# ============================================================================
# DOCUMENTATION
# ============================================================================


@router.get("/{order_id}/documentation")
async def list_documentation(
    order_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: DocumentService = Depends(get_document_service),
):
    return service.list_documentation(order_id, ctx.tenant_id)


@router.post("/{order_id}/documentation", status_code=201)
async def upload_documentation(
    order_id: int,
    file: UploadFile = File(...),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    ctx: TenantContext = Depends(get_tenant_context),
    service: DocumentService = Depends(get_document_service),
):
    """Upload a photo, video or PDF taken on site"""
    if file.filename:
        for char in DANGEROUS_FILENAME_CHARS:
            if char in file.filename:
                logger.warning(f"❌ Dangerous character '{char}' detected in filename: '{file.filename}'")
                raise HTTPException(status_code=400, detail="Invalid filename")
        if len(file.filename) > 255:
            raise HTTPException(status_code=400, detail="Filename too long - maximum 255 characters")

    contents = await file.read()
    if len(contents) > MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File size exceeds 50MB limit. Your file is {len(contents) / (1024 * 1024):.2f}MB.",
        )

    return service.upload_documentation(
        order_id,
        ctx,
        contents,
        file.content_type,
        file_name=file.filename,
        description=description,
        category=category,
    )


@documentation_router.delete("/{doc_id}")
async def delete_documentation(
    doc_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: DocumentService = Depends(get_document_service),
):
    return service.delete_documentation(doc_id, ctx)


# ============================================================================
# BAST
# ============================================================================


@router.get("/{order_id}/bast")
async def get_order_bast(
    order_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: DocumentService = Depends(get_document_service),
):
    return bast_to_dict(service.get_order_bast(order_id, ctx.tenant_id))


@router.post("/{order_id}/bast", status_code=201)
async def create_bast(
    order_id: int,
    data: BastCreate,
    ctx: TenantContext = Depends(get_tenant_context),
    service: DocumentService = Depends(get_document_service),
):
    return bast_to_dict(service.create_bast(order_id, data, ctx))


@bast_router.post("/{bast_id}/approve")
async def approve_bast(
    bast_id: int,
    data: BastApprove,
    ctx: TenantContext = Depends(get_tenant_context),
    service: DocumentService = Depends(get_document_service),
):
    return bast_to_dict(service.approve_bast(bast_id, data, ctx))


@bast_router.post("/{bast_id}/reject")
async def reject_bast(
    bast_id: int,
    data: BastReject,
    ctx: TenantContext = Depends(get_tenant_context),
    service: DocumentService = Depends(get_document_service),
):
    return bast_to_dict(service.reject_bast(bast_id, data.reason, ctx))


@bast_router.get("/{bast_id}/pdf")
async def download_bast_pdf(
    bast_id: int,
    ctx: TenantContext = Depends(get_tenant_context),
    service: DocumentService = Depends(get_document_service),
):
    try:
        pdf_bytes, filename = service.bast_pdf(bast_id, ctx.tenant_id)
        return Response(
            content=pdf_bytes,
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Failed to render BAST PDF {bast_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate BAST PDF") from e
