"""
Download Pydantic schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class DownloadProduct(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class DownloadOrder(BaseModel):
    order_number: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DownloadInfo(BaseModel):
    """Entitlement details for the download page and dashboard."""

    token: str
    product: Optional[DownloadProduct] = None
    order: Optional[DownloadOrder] = None
    download_count: int
    max_downloads: int
    remaining_downloads: int
    expires_at: Optional[datetime] = None
    is_expired: bool
    can_download: bool
    last_downloaded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class DownloadInfoResponse(BaseModel):
    success: bool = True
    download: DownloadInfo


class DownloadListResponse(BaseModel):
    success: bool = True
    downloads: list[DownloadInfo]


class BackfillResponse(BaseModel):
    success: bool = True
    orders_processed: int
    tokens_generated: int
