# account_api/core/config.py
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

DEV_ACCESS_SECRET = "dev-access-secret-change-me"
DEV_REFRESH_SECRET = "dev-refresh-secret-change-me"

_ALLOWED_ENVS = {"dev", "test", "prod"}
_ALLOWED_SAMESITE = {"lax", "strict", "none"}


class Settings(BaseSettings):
    """
    Process-wide configuration, built once from the environment (and .env).
    Instances are frozen; pass them around instead of reading os.environ.
    """

    app_env: str = Field("dev", alias="APP_ENV")
    api_prefix: str = Field("/api/v1", alias="API_PREFIX")
    cors_origin: str = Field("*", alias="CORS_ORIGIN")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # DB
    database_url: str = Field("", alias="DATABASE_URL")

    # JWT
    access_token_secret: str = Field(DEV_ACCESS_SECRET, alias="ACCESS_TOKEN_SECRET")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    refresh_token_secret: str = Field(DEV_REFRESH_SECRET, alias="REFRESH_TOKEN_SECRET")
    refresh_token_expire_days: int = Field(10, alias="REFRESH_TOKEN_EXPIRE_DAYS")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")

    # Cookies
    cookie_secure: bool = Field(True, alias="COOKIE_SECURE")
    cookie_samesite: str = Field("lax", alias="COOKIE_SAMESITE")

    # Passwords
    bcrypt_rounds: int = Field(10, alias="BCRYPT_ROUNDS")

    # Cloudinary
    cloudinary_cloud_name: str = Field("", alias="CLOUDINARY_CLOUD_NAME")
    cloudinary_api_key: str = Field("", alias="CLOUDINARY_API_KEY")
    cloudinary_api_secret: str = Field("", alias="CLOUDINARY_API_SECRET")
    upload_temp_dir: str = Field("./public/temp", alias="UPLOAD_TEMP_DIR")

    class Config:
        env_file = ".env"
        extra = "ignore"
        frozen = True
        populate_by_name = True

    @model_validator(mode="after")
    def _validate(self) -> "Settings":
        env = self.app_env.strip().lower()
        if env not in _ALLOWED_ENVS:
            allowed = "|".join(sorted(_ALLOWED_ENVS))
            raise ValueError(f"APP_ENV must be one of {allowed}")
        if self.cookie_samesite.strip().lower() not in _ALLOWED_SAMESITE:
            raise ValueError("COOKIE_SAMESITE must be one of lax|none|strict")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        if env == "prod":
            self._validate_prod()
        return self

    def _validate_prod(self) -> None:
        missing: list[str] = []
        if not self.access_token_secret or self.access_token_secret == DEV_ACCESS_SECRET:
            missing.append("ACCESS_TOKEN_SECRET")
        if not self.refresh_token_secret or self.refresh_token_secret == DEV_REFRESH_SECRET:
            missing.append("REFRESH_TOKEN_SECRET")
        if not self.database_url:
            missing.append("DATABASE_URL")
        if missing:
            raise ValueError(f"Missing required prod env vars: {', '.join(missing)}")
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")

    @property
    def is_prod(self) -> bool:
        return self.app_env.strip().lower() == "prod"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origin.split(",") if o.strip()]

    @property
    def cookie_path(self) -> str:
        return "/" + self.api_prefix.strip("/") if self.api_prefix.strip("/") else "/"

    @property
    def access_token_max_age(self) -> int:
        return self.access_token_expire_minutes * 60

    @property
    def refresh_token_max_age(self) -> int:
        return self.refresh_token_expire_days * 24 * 3600


@lru_cache
def get_settings() -> Settings:
    """FastAPI Depends(get_settings); built on first use and reused."""
    return Settings()
