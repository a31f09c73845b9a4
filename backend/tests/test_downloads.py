"""
Tests for download token redemption, info and listing.
"""
from datetime import datetime, timedelta, timezone

import pytest

from app.models import ProductDownload
from app.repositories.download import DownloadRepository
from app.repositories.order import OrderRepository
from app.services.entitlements import EntitlementGenerator
from app.services.storage import ProductStorage, content_type_for

FILE_BYTES = b"PK\x03\x04 spreadsheet bytes"


@pytest.fixture
def issue_download(async_client, session_factory, make_product, order_payload):
    """Place an order and issue its entitlement; returns the token."""

    async def _issue_download(headers=None, product=None) -> str:
        product = product or await make_product()
        response = await async_client.post(
            "/api/orders",
            json=order_payload(product),
            headers=headers or {},
        )
        order_id = response.json()["order"]["id"]

        async with session_factory() as session:
            order = await OrderRepository(session).get_detail(order_id=order_id)
            order.mark_as_paid("pay-1")
            result = await EntitlementGenerator(session).generate(order)
            await session.commit()
        return result.created[0].download_token

    return _issue_download


@pytest.fixture
def stored_file(storage_root):
    path = storage_root / "products" / "budget-planner.xlsx"
    path.parent.mkdir(parents=True)
    path.write_bytes(FILE_BYTES)
    return path


async def load_download(session_factory, token: str) -> ProductDownload:
    async with session_factory() as session:
        return await DownloadRepository(session).get_by_token(token)


class TestRedeem:
    """GET /api/downloads/{token}"""

    async def test_each_redemption_streams_and_counts(
        self, async_client, session_factory, issue_download, stored_file
    ):
        token = await issue_download()

        for _ in range(3):
            response = await async_client.get(f"/api/downloads/{token}")
            assert response.status_code == 200
            assert response.content == FILE_BYTES

        download = await load_download(session_factory, token)
        assert download.download_count == 3
        assert download.last_downloaded_at is not None

    async def test_response_headers(self, async_client, issue_download, stored_file):
        token = await issue_download()

        response = await async_client.get(f"/api/downloads/{token}")

        assert response.headers["content-type"] == (
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "budget-planner.xlsx" in response.headers["content-disposition"]

    async def test_unknown_token(self, async_client):
        response = await async_client.get("/api/downloads/" + "x" * 64)

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Invalid download link"}

    async def test_missing_file_does_not_count(
        self, async_client, session_factory, issue_download, storage_root
    ):
        token = await issue_download()

        response = await async_client.get(f"/api/downloads/{token}")

        assert response.status_code == 404
        assert response.json()["message"] == "File not found"
        assert (await load_download(session_factory, token)).download_count == 0

    async def test_expired_link(
        self, async_client, db_session, session_factory, issue_download, stored_file
    ):
        token = await issue_download()
        download = await DownloadRepository(db_session).get_by_token(token)
        download.expires_at = datetime.now(timezone.utc) - timedelta(days=1)
        await db_session.commit()

        response = await async_client.get(f"/api/downloads/{token}")

        assert response.status_code == 404
        assert response.json()["message"] == "This download link has expired"
        assert (await load_download(session_factory, token)).download_count == 0

    async def test_path_outside_storage_is_not_served(
        self, async_client, make_product, issue_download, storage_root
    ):
        (storage_root.parent / "secret.txt").write_text("nope")
        product = await make_product(file_path="../secret.txt", file_name="secret.txt")
        token = await issue_download(product=product)

        response = await async_client.get(f"/api/downloads/{token}")

        assert response.status_code == 404


class TestRecordDownload:
    async def test_overlapping_redemptions_both_count(self, session_factory, issue_download):
        token = await issue_download()

        async with session_factory() as first, session_factory() as second:
            # both sessions hold the row as loaded before either redemption
            first_copy = await DownloadRepository(first).get_by_token(token)
            await first.commit()
            second_copy = await DownloadRepository(second).get_by_token(token)
            await second.commit()

            await DownloadRepository(first).record_download(first_copy)
            await first.commit()
            await DownloadRepository(second).record_download(second_copy)
            await second.commit()

            assert second_copy.download_count == 2

        download = await load_download(session_factory, token)
        assert download.download_count == 2

    async def test_stamps_redemption_time(self, session_factory, issue_download):
        token = await issue_download()
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)

        async with session_factory() as session:
            repo = DownloadRepository(session)
            download = await repo.record_download(await repo.get_by_token(token), now=now)
            await session.commit()

        assert download.download_count == 1
        assert download.last_downloaded_at.replace(tzinfo=timezone.utc) == now


class TestInfo:
    """GET /api/downloads/{token}/info"""

    async def test_info_does_not_redeem(
        self, async_client, session_factory, issue_download, stored_file
    ):
        token = await issue_download()

        response = await async_client.get(f"/api/downloads/{token}/info")

        assert response.status_code == 200
        info = response.json()["download"]
        assert info["token"] == token
        assert info["product"]["title"] == "Monthly Budget Planner"
        assert info["order"]["order_number"].startswith("ORD-")
        assert info["can_download"] is True
        assert info["is_expired"] is False
        assert info["remaining_downloads"] == 999999
        assert (await load_download(session_factory, token)).download_count == 0

    async def test_info_unknown_token(self, async_client):
        response = await async_client.get("/api/downloads/unknown/info")

        assert response.status_code == 404


class TestListing:
    """GET /api/downloads"""

    async def test_requires_customer(self, async_client):
        response = await async_client.get("/api/downloads")

        assert response.status_code == 401

    async def test_staff_token_is_not_a_customer(self, async_client, auth_headers):
        response = await async_client.get("/api/downloads", headers=auth_headers("admin", 1))

        assert response.status_code == 401

    async def test_lists_only_own_downloads(
        self, async_client, make_customer, issue_download, auth_headers
    ):
        owner = await make_customer(email="owner@example.com")
        other = await make_customer(email="other@example.com")
        own_token = await issue_download(headers=auth_headers("customer", owner.id))
        await issue_download(headers=auth_headers("customer", other.id))
        await issue_download()

        response = await async_client.get(
            "/api/downloads",
            headers=auth_headers("customer", owner.id),
        )

        assert response.status_code == 200
        downloads = response.json()["downloads"]
        assert [d["token"] for d in downloads] == [own_token]


class TestStorage:
    @pytest.mark.parametrize(
        "filename,content_type",
        [
            ("budget.xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
            ("legacy.XLS", "application/vnd.ms-excel"),
            ("guide.pdf", "application/pdf"),
            ("bundle.zip", "application/zip"),
            ("data.csv", "text/csv"),
            ("mystery.bin", "application/octet-stream"),
            ("no-extension", "application/octet-stream"),
        ],
    )
    def test_content_type_for(self, filename, content_type):
        assert content_type_for(filename) == content_type

    def test_paths_stay_under_root(self, tmp_path):
        storage = ProductStorage(str(tmp_path))

        assert storage.path("products/a.xlsx") == tmp_path.resolve() / "products" / "a.xlsx"
        assert storage.path("/products/a.xlsx") == tmp_path.resolve() / "products" / "a.xlsx"
        assert storage.path("../outside.xlsx") is None
        assert storage.exists(None) is False
        assert storage.exists("products/a.xlsx") is False
