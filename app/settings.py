from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource, YamlConfigSettingsSource

from app.models.config import DBConfig, EmailConfig, StripeConfig
from app.utils.filesystem import get_project_root


class Settings(BaseSettings):
    debug: bool = True
    port: int = 3000
    sentry_dsn: Optional[str] = None
    allowed_origin: str = "*"
    admin_key: Optional[str] = None
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expires_days: int = 7
    bcrypt_rounds: int = 10
    min_password_length: int = 8
    http_timeout: float = 10
    db_config: DBConfig
    stripe_config: StripeConfig = StripeConfig()
    email_config: EmailConfig = EmailConfig()

    model_config = SettingsConfigDict(
        env_file=get_project_root() / ".env",
        env_nested_delimiter="__",
        yaml_file=get_project_root() / "config.yaml",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, env_settings, dotenv_settings, YamlConfigSettingsSource(settings_cls)


settings = Settings()
