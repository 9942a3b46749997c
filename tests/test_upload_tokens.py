from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from urllib.parse import parse_qs, urlsplit

import pytest

from photo_pipeline.config import IssuerConfig, Settings
from photo_pipeline.services.errors import ConfigurationError, InvalidRequest, SigningError
from photo_pipeline.services.upload_tokens import issue_upload_grant

from conftest import TEST_ACCOUNT_KEY, TEST_ACCOUNT_NAME

ISSUED_AT = datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)


class TestIssueUploadGrant:
    def test_grant_is_scoped_to_landing_zone_key(self, issuer_config):
        grant = issue_upload_grant({"filename": "My Photo.JPG"}, issuer_config, now=ISSUED_AT)

        assert grant.storage_key == "1700000000000-My_Photo.JPG"
        assert grant.container_name == "landing-zone"
        parts = urlsplit(grant.url)
        assert parts.scheme == "https"
        assert parts.netloc == f"{TEST_ACCOUNT_NAME}.blob.core.windows.net"
        assert parts.path == "/landing-zone/1700000000000-My_Photo.JPG"

    def test_grant_is_write_only(self, issuer_config):
        grant = issue_upload_grant({"filename": "cat.jpg"}, issuer_config, now=ISSUED_AT)

        query = parse_qs(urlsplit(grant.url).query)
        assert query["sp"] == ["w"]
        assert query["sr"] == ["b"]
        assert query["sig"][0]

    def test_grant_expires_after_configured_lifetime(self, issuer_config):
        grant = issue_upload_grant({"filename": "cat.jpg"}, issuer_config, now=ISSUED_AT)

        assert grant.expires_at == ISSUED_AT + timedelta(minutes=5)
        assert grant.expires_at > ISSUED_AT
        query = parse_qs(urlsplit(grant.url).query)
        assert query["se"] == ["2023-11-14T22:18:20Z"]

    def test_expiry_respects_custom_lifetime(self, app_settings):
        app_settings.sas_token_expiry_minutes = 30
        config = IssuerConfig.from_settings(app_settings)

        grant = issue_upload_grant({"filename": "cat.jpg"}, config, now=ISSUED_AT)

        assert grant.expires_at - ISSUED_AT == timedelta(minutes=30)

    def test_blob_endpoint_override_is_used(self, app_settings):
        app_settings.storage_blob_endpoint = "http://127.0.0.1:10000/devaccount/"
        config = IssuerConfig.from_settings(app_settings)

        grant = issue_upload_grant({"filename": "cat.jpg"}, config, now=ISSUED_AT)

        assert grant.url.startswith("http://127.0.0.1:10000/devaccount/landing-zone/1700000000000-cat.jpg?")

    @pytest.mark.parametrize("payload", [{}, {"filename": 42}, {"filename": ""}, None])
    def test_invalid_request_never_signs(self, issuer_config, payload):
        with patch("photo_pipeline.services.upload_tokens.sign_upload_url") as mock_sign:
            with pytest.raises(InvalidRequest):
                issue_upload_grant(payload, issuer_config)

        mock_sign.assert_not_called()

    def test_signing_failure_is_wrapped(self, issuer_config):
        with patch(
            "photo_pipeline.services.signing.generate_blob_sas",
            side_effect=ValueError("bad key"),
        ):
            with pytest.raises(SigningError, match="bad key"):
                issue_upload_grant({"filename": "cat.jpg"}, issuer_config)


class TestIssuerConfig:
    def test_defaults(self):
        config = IssuerConfig.from_settings(
            Settings(_env_file=None, storage_account_name=TEST_ACCOUNT_NAME, storage_account_key=TEST_ACCOUNT_KEY)
        )

        assert config.landing_zone_container == "landing-zone"
        assert config.expiry_minutes == 5

    def test_missing_credentials(self):
        with pytest.raises(ConfigurationError, match="not configured"):
            IssuerConfig.from_settings(Settings(_env_file=None, storage_account_name=TEST_ACCOUNT_NAME))

    def test_malformed_account_key(self):
        app_settings = Settings(
            _env_file=None,
            storage_account_name=TEST_ACCOUNT_NAME,
            storage_account_key="not base64 at all!",
        )

        with pytest.raises(ConfigurationError, match="Invalid storage configuration"):
            IssuerConfig.from_settings(app_settings)

    def test_expiry_from_environment_string(self, monkeypatch):
        monkeypatch.setenv("SAS_TOKEN_EXPIRY_MINUTES", "15")
        app_settings = Settings(
            _env_file=None, storage_account_name=TEST_ACCOUNT_NAME, storage_account_key=TEST_ACCOUNT_KEY
        )

        assert IssuerConfig.from_settings(app_settings).expiry_minutes == 15

    def test_non_numeric_expiry(self, monkeypatch):
        monkeypatch.setenv("SAS_TOKEN_EXPIRY_MINUTES", "soon")
        app_settings = Settings(
            _env_file=None, storage_account_name=TEST_ACCOUNT_NAME, storage_account_key=TEST_ACCOUNT_KEY
        )

        with pytest.raises(ConfigurationError, match="SAS_TOKEN_EXPIRY_MINUTES"):
            IssuerConfig.from_settings(app_settings)

    def test_non_positive_expiry(self, app_settings):
        app_settings.sas_token_expiry_minutes = 0

        with pytest.raises(ConfigurationError):
            IssuerConfig.from_settings(app_settings)
