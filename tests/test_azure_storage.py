from unittest.mock import patch, MagicMock
import asyncio
import base64
import threading
import pytest
from azure.core.exceptions import HttpResponseError, ResourceNotFoundError

from blobjack.azure.storage import Storage
from blobjack.base import sas
from blobjack.base.config import AzureConfig
from blobjack.base.exceptions import (
    StorageError,
    ContainerNotFoundError,
    ObjectNotFoundError,
    CopyFailedError,
)

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR"
    b"\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
    b"\x1f\x15\xc4\x89"
)


def _not_found(code: str = "BlobNotFound") -> ResourceNotFoundError:
    e = ResourceNotFoundError("not found")
    e.error_code = code
    return e


def _blob(name: str) -> MagicMock:
    b = MagicMock()
    b.name = name
    return b


@pytest.fixture
def config():
    return AzureConfig(
        account_name="acct",
        account_key=base64.b64encode(b"00").decode(),
        container_name="pics",
    )


@pytest.fixture
def storage(config):
    with patch("blobjack.azure.storage.ContainerClient") as mock_cc:
        mock_container = MagicMock()
        mock_cc.from_container_url.return_value = mock_container
        instance = Storage(config)
        yield instance, mock_container


class TestInit:
    def test_container_url_from_template(self, config):
        with patch("blobjack.azure.storage.ContainerClient") as mock_cc:
            Storage(config)
        mock_cc.from_container_url.assert_called_once_with(
            "https://acct.blob.core.windows.net/pics",
            credential={"account_name": "acct", "account_key": config.account_key},
        )

    def test_get_container(self, storage):
        instance, container = storage
        assert instance.get_container() is container


# --- Object operations ---


class TestUpload:
    def test_success_returns_canonical_url(self, storage):
        instance, container = storage
        url = instance.upload("a/b.png", b"data", content_type="image/png")
        assert url == "https://acct.blob.core.windows.net/pics/a/b.png"
        kwargs = container.upload_blob.call_args.kwargs
        assert kwargs["name"] == "a/b.png"
        assert kwargs["data"] == b"data"
        assert kwargs["overwrite"] is True
        assert kwargs["content_settings"].content_type == "image/png"

    def test_sniffs_png(self, storage):
        instance, container = storage
        instance.upload("a.png", PNG_BYTES)
        kwargs = container.upload_blob.call_args.kwargs
        assert kwargs["content_settings"].content_type == "image/png"

    def test_container_not_found(self, storage):
        instance, container = storage
        container.upload_blob.side_effect = _not_found("ContainerNotFound")
        with pytest.raises(ContainerNotFoundError):
            instance.upload("a.png", b"x", content_type="image/png")

    def test_generic_error_keeps_cause(self, storage):
        instance, container = storage
        original = HttpResponseError("throttled")
        container.upload_blob.side_effect = original
        with pytest.raises(StorageError) as exc_info:
            instance.upload("a.png", b"x", content_type="image/png")
        assert exc_info.value.__cause__ is original

    def test_error_message_carries_provider_detail(self, storage):
        instance, container = storage
        container.upload_blob.side_effect = HttpResponseError("ServerBusy: throttled")
        with pytest.raises(StorageError) as exc_info:
            instance.upload("a.png", b"x", content_type="image/png")
        assert "a.png" in str(exc_info.value)
        assert "throttled" in str(exc_info.value)


class TestDelete:
    def test_success(self, storage):
        instance, container = storage
        url = instance.delete("a/b.png")
        assert url == "https://acct.blob.core.windows.net/pics/a/b.png"
        container.delete_blob.assert_called_once_with("a/b.png", delete_snapshots="include")

    def test_not_found(self, storage):
        instance, container = storage
        container.delete_blob.side_effect = _not_found()
        with pytest.raises(ObjectNotFoundError):
            instance.delete("missing.png")

    def test_not_found_message_carries_provider_detail(self, storage):
        instance, container = storage
        container.delete_blob.side_effect = _not_found()
        with pytest.raises(ObjectNotFoundError, match="not found"):
            instance.delete("missing.png")


class TestListObjects:
    def test_drains_all_pages(self, storage):
        instance, container = storage
        container.list_blobs.return_value.by_page.return_value = iter([
            [_blob("img/a.png"), _blob("img/b.png")],
            [_blob("img/c.png")],
            [],
        ])
        assert instance.list_objects("img/") == ["img/a.png", "img/b.png", "img/c.png"]
        container.list_blobs.assert_called_once_with(name_starts_with="img/")

    def test_empty_prefix(self, storage):
        instance, container = storage
        container.list_blobs.return_value.by_page.return_value = iter([])
        assert instance.list_objects() == []
        container.list_blobs.assert_called_once_with(name_starts_with=None)

    def test_error_mid_pagination(self, storage):
        instance, container = storage

        def pages():
            yield [_blob("a.png")]
            raise HttpResponseError("boom")

        container.list_blobs.return_value.by_page.return_value = pages()
        with pytest.raises(StorageError):
            instance.list_objects()


class TestDownload:
    def test_success(self, storage):
        instance, container = storage
        container.download_blob.return_value.readall.return_value = b"hello"
        assert instance.download("a.png") == b"hello"
        container.download_blob.assert_called_once_with("a.png")

    def test_not_found(self, storage):
        instance, container = storage
        container.download_blob.side_effect = _not_found()
        with pytest.raises(ObjectNotFoundError):
            instance.download("missing.png")


class TestCopy:
    @pytest.fixture
    def blobs(self, storage):
        instance, container = storage
        source, dest = MagicMock(), MagicMock()
        source.url = "https://acct.blob.core.windows.net/pics/src.png"
        container.get_blob_client.side_effect = lambda key: {"src.png": source, "dst.png": dest}[key]
        return instance, dest

    def test_synchronous_success(self, blobs):
        instance, dest = blobs
        dest.start_copy_from_url.return_value = {"copy_status": "success"}
        instance.copy("src.png", "dst.png")
        dest.start_copy_from_url.assert_called_once_with(
            "https://acct.blob.core.windows.net/pics/src.png"
        )
        dest.get_blob_properties.assert_not_called()

    def test_polls_until_success(self, blobs):
        instance, dest = blobs
        dest.start_copy_from_url.return_value = {"copy_status": "pending"}
        first, second = MagicMock(), MagicMock()
        first.copy.status = "pending"
        second.copy.status = "success"
        dest.get_blob_properties.side_effect = [first, second]
        with patch("blobjack.azure.storage.time") as mock_time:
            mock_time.monotonic.return_value = 0.0
            instance.copy("src.png", "dst.png")
        assert dest.get_blob_properties.call_count == 2
        assert mock_time.sleep.call_count == 2

    def test_failed_status(self, blobs):
        instance, dest = blobs
        dest.start_copy_from_url.return_value = {"copy_status": "pending"}
        props = MagicMock()
        props.copy.status = "failed"
        dest.get_blob_properties.return_value = props
        with patch("blobjack.azure.storage.time") as mock_time:
            mock_time.monotonic.return_value = 0.0
            with pytest.raises(CopyFailedError):
                instance.copy("src.png", "dst.png")

    def test_times_out(self, blobs):
        instance, dest = blobs
        dest.start_copy_from_url.return_value = {"copy_status": "pending"}
        props = MagicMock()
        props.copy.status = "pending"
        dest.get_blob_properties.return_value = props
        with patch("blobjack.azure.storage.time") as mock_time:
            mock_time.monotonic.side_effect = [0.0, 10.0, 61.0]
            with pytest.raises(CopyFailedError, match="did not finish"):
                instance.copy("src.png", "dst.png")

    def test_source_not_found(self, blobs):
        instance, dest = blobs
        dest.start_copy_from_url.side_effect = _not_found()
        with pytest.raises(ObjectNotFoundError):
            instance.copy("src.png", "dst.png")

    @staticmethod
    def _block_copy(dest):
        started, release = threading.Event(), threading.Event()

        def start_copy(url):
            started.set()
            release.wait(5)
            return {"copy_status": "success"}

        dest.start_copy_from_url.side_effect = start_copy
        return started, release

    def test_acopy_wait_for_deadline(self, blobs):
        instance, dest = blobs
        _, release = self._block_copy(dest)

        async def run():
            try:
                await asyncio.wait_for(instance.acopy("src.png", "dst.png"), timeout=0.05)
            finally:
                release.set()

        with pytest.raises(asyncio.TimeoutError):
            asyncio.run(run())
        dest.start_copy_from_url.assert_called_once()

    def test_acopy_cancelled_while_pending(self, blobs):
        instance, dest = blobs
        started, release = self._block_copy(dest)

        async def run():
            task = asyncio.create_task(instance.acopy("src.png", "dst.png"))
            await asyncio.to_thread(started.wait, 5)
            task.cancel()
            try:
                with pytest.raises(asyncio.CancelledError):
                    await task
            finally:
                release.set()
            return task

        task = asyncio.run(run())
        assert task.cancelled()
        dest.start_copy_from_url.assert_called_once()


# --- URLs and signatures ---


class TestURLs:
    def test_get_url(self, storage):
        instance, _ = storage
        assert instance.get_url() == "https://acct.blob.core.windows.net/pics"

    def test_blob_url_unsigned(self, storage):
        instance, _ = storage
        assert instance.get_blob_url("a/b.png") == "https://acct.blob.core.windows.net/pics/a/b.png"

    def test_empty_key_signed(self, storage):
        instance, _ = storage
        assert instance.get_blob_url("", with_signature=True) == ""

    def test_signed_url(self, storage):
        instance, _ = storage
        with patch("blobjack.azure.storage.sas.expiry_timestamp", return_value="2024-01-01T00:00:00Z"):
            url = instance.get_blob_url("a/b.png", with_signature=True)
        signature = instance.generate_signature("2024-01-01T00:00:00Z", "a/b.png")
        assert url == (
            "https://acct.blob.core.windows.net/pics/a/b.png?"
            + sas.signed_query("2024-01-01T00:00:00Z", signature, "2014-02-14")
        )

    def test_get_key_round_trip(self, storage):
        instance, _ = storage
        assert instance.get_key(instance.get_blob_url("2024/01/01/x.png")) == "2024/01/01/x.png"

    def test_get_key_signed_url(self, storage):
        instance, _ = storage
        assert instance.get_key(instance.get_blob_url("x.png", with_signature=True)) == "x.png"

    @pytest.mark.parametrize("signed", [False, True])
    def test_get_key_round_trip_path_style(self, signed):
        config = AzureConfig(
            account_name="devstoreaccount1",
            account_key=base64.b64encode(b"00").decode(),
            root_url="http://127.0.0.1:10000/%s/%s",
            container_name="pics",
        )
        with patch("blobjack.azure.storage.ContainerClient"):
            instance = Storage(config)
        url = instance.get_blob_url("2024/01/01/x.png", with_signature=signed)
        assert url.startswith("http://127.0.0.1:10000/devstoreaccount1/pics/2024/01/01/x.png")
        assert instance.get_key(url) == "2024/01/01/x.png"

    def test_generate_signature_matches_sas(self, storage, config):
        instance, _ = storage
        assert instance.generate_signature("2024-01-01T00:00:00Z", "a/b.png") == (
            sas.generate_shared_access_signature(
                "2024-01-01T00:00:00Z", "a/b.png", "acct", "pics", config.account_key, "2014-02-14"
            )
        )


class TestAsyncVariants:
    def test_adownload(self, storage):
        instance, container = storage
        container.download_blob.return_value.readall.return_value = b"async"
        assert asyncio.run(instance.adownload("a.png")) == b"async"

    def test_aupload(self, storage):
        instance, _ = storage
        url = asyncio.run(instance.aupload("a.png", b"x", content_type="image/png"))
        assert url == "https://acct.blob.core.windows.net/pics/a.png"


class TestLogging:
    @staticmethod
    def _request_ids(mock_logger):
        return {c.kwargs["request_id"] for c in mock_logger.method_calls}

    def test_one_request_id_per_operation(self, storage):
        instance, _ = storage
        with patch("blobjack.azure.storage.bj_logger") as mock_logger:
            instance.upload("a.png", b"x", content_type="image/png")
            first = self._request_ids(mock_logger)
            mock_logger.reset_mock()
            instance.delete("a.png")
            second = self._request_ids(mock_logger)
        assert len(first) == 1
        assert len(second) == 1
        assert first != second

    def test_failure_lines_share_request_id(self, storage):
        instance, container = storage
        container.upload_blob.side_effect = HttpResponseError("boom")
        with patch("blobjack.azure.storage.bj_logger") as mock_logger:
            with pytest.raises(StorageError):
                instance.upload("a.png", b"x", content_type="image/png")
        assert [c[0] for c in mock_logger.method_calls] == ["debug", "error"]
        assert len(self._request_ids(mock_logger)) == 1
