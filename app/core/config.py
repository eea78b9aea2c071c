from typing import Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewaySettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    url: str = Field(default="http://localhost:4000", alias="SOCKET_URL")
    connect_timeout_sec: float = Field(default=20.0, alias="SOCKET_CONNECT_TIMEOUT_SEC")
    reconnect: bool = Field(default=True, alias="SOCKET_RECONNECT")


class JudgeSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    base_url: str = Field(default="http://localhost:4000", alias="API_BASE_URL")
    compile_path: str = Field(default="/api/compile", alias="JUDGE_COMPILE_PATH")
    timeout_sec: float = Field(default=30.0, alias="JUDGE_TIMEOUT_SEC")
    case_delimiter: Optional[str] = Field(default=None, alias="JUDGE_CASE_DELIMITER")

    @computed_field
    def compile_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.compile_path.lstrip('/')}"


class RoomSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    tick_interval_sec: float = Field(default=1.0, alias="TICK_INTERVAL_SEC")
    typing_idle_sec: float = Field(default=2.0, alias="TYPING_IDLE_SEC")
    activity_idle_sec: float = Field(default=10.0, alias="ACTIVITY_IDLE_SEC")
    default_language: str = Field(default="cpp", alias="DEFAULT_LANGUAGE")


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    name: str = Field(default="code-arena", alias="APP_NAME")
    version: str = Field(default="v1", alias="API_VERSION")
    port: int = Field(default=9000, alias="APP_PORT")
    mode: str = Field(default="prod", alias="MODE")

    @computed_field
    def is_production(self) -> bool:
        return self.mode != "dev"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=lambda: AppSettings())
    gateway: GatewaySettings = Field(default_factory=lambda: GatewaySettings())
    judge: JudgeSettings = Field(default_factory=lambda: JudgeSettings())
    room: RoomSettings = Field(default_factory=lambda: RoomSettings())


settings = Settings()
