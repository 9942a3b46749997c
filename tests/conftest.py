import io

import pytest
from PIL import Image

from photo_pipeline.config import IssuerConfig, ProcessorConfig, Settings
from photo_pipeline.services.errors import StorageDeleteError, StorageWriteError

TEST_ACCOUNT_NAME = "devaccount"
TEST_ACCOUNT_KEY = "dGVzdC1hY2NvdW50LWtleS1mb3ItdW5pdC10ZXN0cw=="


class FakeBlobStore:
    """In-memory stand-in for BlobStore with switchable failures."""

    def __init__(self):
        self.blobs: dict[tuple[str, str], dict] = {}
        self.fail_writes_to: set[str] = set()
        self.fail_deletes = False
        self.calls: list[tuple[str, str, str]] = []

    def put(self, container: str, blob_name: str, data: bytes) -> None:
        self.blobs[(container, blob_name)] = {"data": data, "metadata": {}, "content_type": None}

    def get(self, container: str, blob_name: str) -> dict | None:
        return self.blobs.get((container, blob_name))

    def read(self, container: str, blob_name: str) -> bytes | None:
        self.calls.append(("read", container, blob_name))
        blob = self.blobs.get((container, blob_name))
        return blob["data"] if blob else None

    def write(self, container, blob_name, data, metadata, content_type=None) -> None:
        self.calls.append(("write", container, blob_name))
        if container in self.fail_writes_to:
            raise StorageWriteError(f"Failed to write {container}/{blob_name}: simulated")
        self.blobs[(container, blob_name)] = {
            "data": data,
            "metadata": dict(metadata),
            "content_type": content_type,
        }

    def delete(self, container: str, blob_name: str) -> None:
        self.calls.append(("delete", container, blob_name))
        if self.fail_deletes:
            raise StorageDeleteError(f"Failed to delete {container}/{blob_name}: simulated")
        self.blobs.pop((container, blob_name), None)


def make_image(width: int, height: int, image_format: str = "JPEG", mode: str = "RGB") -> bytes:
    color = (120, 80, 200, 128) if mode == "RGBA" else (120, 80, 200)
    img = Image.new(mode, (width, height), color)
    out = io.BytesIO()
    img.save(out, format=image_format)
    return out.getvalue()


@pytest.fixture
def app_settings() -> Settings:
    return Settings(
        _env_file=None,
        storage_account_name=TEST_ACCOUNT_NAME,
        storage_account_key=TEST_ACCOUNT_KEY,
        landing_zone_container="landing-zone",
        photos_container="photos",
        thumbnails_container="thumbnails",
        thumbnail_width=800,
        sas_token_expiry_minutes=5,
    )


@pytest.fixture
def issuer_config(app_settings) -> IssuerConfig:
    return IssuerConfig.from_settings(app_settings)


@pytest.fixture
def processor_config(app_settings) -> ProcessorConfig:
    return ProcessorConfig.from_settings(app_settings)


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()
