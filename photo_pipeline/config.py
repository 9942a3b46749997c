import binascii
from base64 import b64decode

from pydantic import BaseModel, ConfigDict, PrivateAttr, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from photo_pipeline.services.errors import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    app_name: str = "Photo Upload Pipeline"
    debug: bool = False
    log_level: str = "INFO"
    storage_account_name: str | None = None
    storage_account_key: SecretStr | None = None
    storage_blob_endpoint: str | None = None
    landing_zone_container: str = "landing-zone"
    photos_container: str | None = None
    thumbnails_container: str | None = None
    # Numeric knobs stay raw here; the handler configs parse them so a bad value
    # becomes a per-request ConfigurationError instead of an import failure.
    sas_token_expiry_minutes: int | str = 5
    thumbnail_width: int | str | None = None
    thumbnail_quality: int | str = 85

    _load_error: str | None = PrivateAttr(default=None)

    def raise_for_load_error(self) -> None:
        if self._load_error:
            raise ConfigurationError(self._load_error)


def _parse_int(name: str, value: int | str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from exc


class StorageCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_name: str
    account_key: SecretStr
    blob_endpoint: str | None = None

    @property
    def account_url(self) -> str:
        if self.blob_endpoint:
            return self.blob_endpoint.rstrip("/")
        return f"https://{self.account_name}.blob.core.windows.net"

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "StorageCredentials":
        if not app_settings.storage_account_name or app_settings.storage_account_key is None:
            raise ConfigurationError("Storage connection not configured")
        key = app_settings.storage_account_key.get_secret_value()
        if not key:
            raise ConfigurationError("Storage connection not configured")
        try:
            b64decode(key, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ConfigurationError("Invalid storage configuration") from exc
        return cls(
            account_name=app_settings.storage_account_name,
            account_key=app_settings.storage_account_key,
            blob_endpoint=app_settings.storage_blob_endpoint,
        )


class IssuerConfig(BaseModel):
    """Everything the upload-token route needs, validated once at startup."""

    model_config = ConfigDict(frozen=True)

    credentials: StorageCredentials
    landing_zone_container: str
    expiry_minutes: int

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "IssuerConfig":
        app_settings.raise_for_load_error()
        credentials = StorageCredentials.from_settings(app_settings)
        if not app_settings.landing_zone_container:
            raise ConfigurationError("LANDING_ZONE_CONTAINER not configured")
        expiry_minutes = _parse_int("SAS_TOKEN_EXPIRY_MINUTES", app_settings.sas_token_expiry_minutes)
        if expiry_minutes <= 0:
            raise ConfigurationError("SAS_TOKEN_EXPIRY_MINUTES must be positive")
        return cls(
            credentials=credentials,
            landing_zone_container=app_settings.landing_zone_container,
            expiry_minutes=expiry_minutes,
        )


class ProcessorConfig(BaseModel):
    """Everything the ingest processor needs. Every field is required."""

    model_config = ConfigDict(frozen=True)

    credentials: StorageCredentials
    photos_container: str
    thumbnails_container: str
    landing_zone_container: str
    thumbnail_width: int
    thumbnail_quality: int = 85

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "ProcessorConfig":
        app_settings.raise_for_load_error()
        credentials = StorageCredentials.from_settings(app_settings)
        required = {
            "PHOTOS_CONTAINER": app_settings.photos_container,
            "THUMBNAILS_CONTAINER": app_settings.thumbnails_container,
            "LANDING_ZONE_CONTAINER": app_settings.landing_zone_container,
            "THUMBNAIL_WIDTH": app_settings.thumbnail_width,
        }
        missing = [name for name, value in required.items() if value is None or value == ""]
        if missing:
            raise ConfigurationError(f"{', '.join(missing)} not configured")
        thumbnail_width = _parse_int("THUMBNAIL_WIDTH", app_settings.thumbnail_width)
        if thumbnail_width <= 0:
            raise ConfigurationError("THUMBNAIL_WIDTH must be positive")
        thumbnail_quality = _parse_int("THUMBNAIL_QUALITY", app_settings.thumbnail_quality)
        if not 1 <= thumbnail_quality <= 95:
            raise ConfigurationError("THUMBNAIL_QUALITY must be between 1 and 95")
        return cls(
            credentials=credentials,
            photos_container=app_settings.photos_container,
            thumbnails_container=app_settings.thumbnails_container,
            landing_zone_container=app_settings.landing_zone_container,
            thumbnail_width=thumbnail_width,
            thumbnail_quality=thumbnail_quality,
        )


def load_settings() -> Settings:
    """Read settings from the environment without letting a bad value stop the import.

    On a validation failure the defaults are used and the error is kept, so both
    handler configs report it as a ``ConfigurationError``.
    """
    try:
        return Settings()
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]).upper() for err in exc.errors() if err.get("loc")})
        fallback = Settings.model_construct()
        fallback._load_error = f"Invalid settings: {', '.join(fields) or 'unknown field'}"
        return fallback


def load_handler_config(builder, app_settings: Settings):
    """Build a handler config, returning the ConfigurationError instead of raising it.

    The app still starts with a broken config; the affected handler re-raises the
    stored error on every request via ``require_config``.
    """
    try:
        return builder(app_settings)
    except ConfigurationError as exc:
        return exc


def require_config(config):
    if config is None:
        raise ConfigurationError("Handler configuration not loaded")
    if isinstance(config, ConfigurationError):
        raise config
    return config


settings = load_settings()
