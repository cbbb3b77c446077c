import logging
from pathlib import Path

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)

DEFAULT_STATIC_DIR = Path(__file__).resolve().parents[3] / "client" / "dist"
DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "https://hunting-buddy.katieloesch.co.uk",
]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    A single instance is built at process start and handed to the app factory,
    the lifecycle controller and the upload initializer. Request handlers read
    it from `request.app.state.settings`, never from the environment.

    Attributes:
        port (int): TCP port the listener binds to.
        host (str): Interface the listener binds to.
        mongo_url (str): MongoDB connection string. Required.
        mongo_db_name (str): Database used when the connection string names none.
        node_env (str): Deployment environment; "development" enables access logging.
        jwt_secret (str): Secret key for signing JWT tokens.
        jwt_algorithm (str): Algorithm used for JWT token encoding.
        jwt_expires_in_minutes (int): Lifetime of issued tokens and the auth cookie.
        cloud_name (str | None): Cloudinary cloud name.
        cloud_api_key (str | None): Cloudinary API key.
        cloud_api_secret (str | None): Cloudinary API secret.
        cors_origins (list[str]): Origins allowed to make credentialed requests.
        static_dir (Path): Directory of the built client served as static files.
        json_body_limit (int): Maximum accepted JSON body size in bytes.

    """

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server settings
    port: int = Field(default=5100, validation_alias="PORT")
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    node_env: str = Field(default="production", validation_alias="NODE_ENV")

    # Database settings
    mongo_url: str = Field(validation_alias="MONGO_URL")
    mongo_db_name: str = Field(default="hunting_buddy", validation_alias="MONGO_DB_NAME")

    # Security settings
    jwt_secret: str = Field(
        default="your-secret-key-change-in-production",
        validation_alias="JWT_SECRET",
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    jwt_expires_in_minutes: int = Field(
        default=60 * 24,
        validation_alias="JWT_EXPIRES_IN_MINUTES",
    )

    # Upload provider
    cloud_name: str | None = Field(default=None, validation_alias="CLOUD_NAME")
    cloud_api_key: str | None = Field(default=None, validation_alias="CLOUD_API_KEY")
    cloud_api_secret: str | None = Field(
        default=None,
        validation_alias="CLOUD_API_SECRET",
    )

    # HTTP pipeline
    cors_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS),
        validation_alias="CORS_ORIGINS",
    )
    static_dir: Path = Field(default=DEFAULT_STATIC_DIR, validation_alias="STATIC_DIR")
    json_body_limit: int = Field(default=100 * 1024, validation_alias="JSON_BODY_LIMIT")

    @computed_field
    @property
    def is_development(self) -> bool:
        """Whether the development-only middleware (access logging) is enabled."""
        return self.node_env == "development"

    @computed_field
    @property
    def is_production(self) -> bool:
        """Whether cookies must be marked Secure."""
        return self.node_env == "production"


def load_settings(env_file: str | Path | None = ".env") -> Settings:
    """
    Load the process-wide settings once.

    Args:
        env_file (str | Path | None): Optional dotenv file read in addition to the
            process environment. None disables the file.

    Returns:
        Settings: The populated settings instance.

    Raises:
        ValidationError: If a required variable such as MONGO_URL is missing or a
            value cannot be parsed.

    Notes:
        1. Values from the process environment take precedence over the dotenv file.
        2. This function performs disk access to read the dotenv file.

    """
    _msg = f"Loading settings (env_file={env_file})"
    log.debug(_msg)
    return Settings(_env_file=env_file)


def configure_logging(settings: Settings) -> None:
    """Configure root logging for the process."""
    logging.basicConfig(
        level=logging.DEBUG if settings.is_development else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
