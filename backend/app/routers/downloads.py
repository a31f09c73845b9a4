"""
Digital delivery routes: token redemption, token info, customer listing.
"""
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from app.core.database import DbSession
from app.core.exceptions import DownloadNotFoundError
from app.core.logging import get_logger
from app.models.download import ProductDownload
from app.repositories.download import DownloadRepository
from app.routers.deps import require_customer
from app.schemas.download import (
    DownloadInfo,
    DownloadInfoResponse,
    DownloadListResponse,
    DownloadOrder,
    DownloadProduct,
)
from app.services.access import Actor
from app.services.storage import ProductStorage, content_type_for

logger = get_logger(__name__)

router = APIRouter(prefix="/downloads", tags=["downloads"])


def to_download_info(download: ProductDownload) -> DownloadInfo:
    return DownloadInfo(
        token=download.download_token,
        product=DownloadProduct.model_validate(download.product) if download.product else None,
        order=DownloadOrder.model_validate(download.order) if download.order else None,
        download_count=download.download_count,
        max_downloads=download.max_downloads,
        remaining_downloads=download.remaining_downloads,
        expires_at=download.expires_at,
        is_expired=download.is_expired,
        can_download=download.can_download,
        last_downloaded_at=download.last_downloaded_at,
        created_at=download.created_at,
    )


@router.get("", response_model=DownloadListResponse)
async def list_my_downloads(
    session: DbSession,
    actor: Annotated[Actor, Depends(require_customer)],
) -> DownloadListResponse:
    """Downloads of the authenticated customer, newest first."""
    downloads = await DownloadRepository(session).list_for_customer(actor.id)
    return DownloadListResponse(downloads=[to_download_info(d) for d in downloads])


@router.get("/{token}/info", response_model=DownloadInfoResponse)
async def get_download_info(token: str, session: DbSession) -> DownloadInfoResponse:
    """Entitlement details without redeeming it."""
    download = await DownloadRepository(session).get_by_token(token)
    if download is None:
        raise DownloadNotFoundError()
    return DownloadInfoResponse(download=to_download_info(download))


@router.get("/{token}")
async def download_file(token: str, session: DbSession) -> FileResponse:
    """
    Redeem a download token and stream the file.

    Public: the token itself is the credential.
    """
    repo = DownloadRepository(session)
    download = await repo.get_by_token(token)
    if download is None:
        raise DownloadNotFoundError()

    if not download.can_download:
        logger.info("Expired download token used", token_prefix=token[:8])
        raise DownloadNotFoundError("This download link has expired")

    product = download.product
    storage = ProductStorage()
    if product is None or not storage.exists(product.file_path):
        logger.warning(
            "Download file missing on storage",
            token_prefix=token[:8],
            product_id=download.product_id,
        )
        raise DownloadNotFoundError("File not found")

    path = storage.path(product.file_path)
    await repo.record_download(download)

    filename = product.file_name or path.name
    logger.info(
        "Product downloaded",
        token_prefix=token[:8],
        product_id=product.id,
        download_count=download.download_count,
    )
    return FileResponse(path, media_type=content_type_for(filename), filename=filename)
