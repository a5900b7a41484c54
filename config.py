from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class CredentialsConfig(BaseSettings):
    """Credentials for the JobKorea account and the Telegram bot.

    Values default to empty strings so that missing variables can be reported
    together by ``core.validation`` instead of failing at import time.
    """

    jobkorea_id: str = Field("", validation_alias="JOBKOREA_ID")
    jobkorea_pwd: str = Field("", validation_alias="JOBKOREA_PWD")
    telegram_token: str = Field("", validation_alias="TELEGRAM_BOT_TOKEN")
    telegram_chat_id: str = Field("", validation_alias="TELEGRAM_CHAT_ID")


class UrlConfig(BaseSettings):
    """Portal URLs."""

    login: str = Field("https://www.jobkorea.co.kr/Login/", validation_alias="JOBKOREA_LOGIN_URL")
    mypage: str = Field("https://www.jobkorea.co.kr/User/Mypage", validation_alias="JOBKOREA_MYPAGE_URL")


class ResourceBlockingConfig(BaseSettings):
    """Which request classes are aborted by the browser context router."""

    ads: bool = True
    analytics: bool = True
    social_media: bool = True
    unnecessary_images: bool = True

    def any_enabled(self) -> bool:
        return self.ads or self.analytics or self.social_media or self.unnecessary_images


class BrowserConfig(BaseSettings):
    """Browser launch and context settings."""

    headless: bool = Field(True, validation_alias="BROWSER_HEADLESS")
    viewport_width: int = 1280
    viewport_height: int = 720
    accept_language: str = "ko-KR,ko;q=0.9,en;q=0.8"
    site_keyword: str = "jobkorea"  # images served from this domain are never blocked
    args: List[str] = [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-accelerated-2d-canvas",
        "--no-first-run",
        "--no-zygote",
        "--disable-gpu",
        "--disable-background-timer-throttling",
        "--disable-backgrounding-occluded-windows",
        "--disable-renderer-backgrounding",
        "--memory-pressure-off",
    ]
    block_resources: ResourceBlockingConfig = ResourceBlockingConfig()

    @field_validator("headless", mode="before")
    @classmethod
    def parse_headless(cls, v: Any) -> bool:
        # Only the literal "true" enables headless once the variable is set
        if v is None or v == "":
            return True
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() == "true"


class RetryConfig(BaseSettings):
    """Operation-level and process-level retry settings."""

    max_operation_retries: int = 3
    max_process_retries: int = 3
    base_delay_ms: int = 2000
    max_delay_ms: int = 10000
    backoff_multiplier: float = 2
    restart_delay_ms: int = 1000  # pause after closing the browser before a fresh session
    max_retries: Optional[int] = Field(None, validation_alias="MAX_RETRIES")
    # Per-operation overrides keyed by the operation label, e.g.
    # {"trigger_update": {"max_attempts": 5, "base_delay_ms": 3000}}
    overrides: Dict[str, Dict[str, Any]] = {}

    @field_validator("max_retries", mode="before")
    @classmethod
    def ignore_invalid_max_retries(cls, v: Any) -> Optional[int]:
        if v is None or v == "":
            return None
        try:
            value = int(v)
        except (TypeError, ValueError):
            return None
        return value if value > 0 else None

    @model_validator(mode="after")
    def apply_max_retries(self) -> "RetryConfig":
        if self.max_retries:
            self.max_operation_retries = self.max_retries
            self.max_process_retries = self.max_retries
        return self


class AdaptiveTimeoutConfig(BaseSettings):
    """Constants of the adaptive timeout estimator (all durations in ms)."""

    base_timeout: int = 15000
    min_timeout: int = 5000
    max_timeout: int = 30000
    measurement_window: int = 10
    min_measurements: int = 3
    success_threshold: float = 0.8
    high_success_threshold: float = 0.95
    failure_multiplier: float = 1.5
    success_multiplier: float = 0.9
    latency_safety_factor: float = 2.5
    category_base_timeouts: Dict[str, int] = {
        "navigation": 20000,
        "element": 15000,
        "popup": 10000,
        "network": 8000,
    }

    @model_validator(mode="after")
    def check_bounds(self) -> "AdaptiveTimeoutConfig":
        if self.min_timeout > self.max_timeout:
            raise ValueError("min_timeout must not exceed max_timeout")
        if self.measurement_window < 1:
            raise ValueError("measurement_window must be at least 1")
        return self


class UpdateConfig(BaseSettings):
    """How the resume refresh confirmation dialog is classified."""

    success_patterns: List[str] = ["업데이트 되었습니다"]


class LoggingConfig(BaseSettings):
    """Configuration for logging."""

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")  # error, warn, info, debug
    log_format: str = "console"  # json, console
    log_file_path: Optional[Path] = None
    mask_sensitive_info: bool = True

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level == "WARN":
            level = "WARNING"
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR"}:
            return "INFO"
        return level


class DiagnosticsConfig(BaseSettings):
    """Screenshot capture on failed login/update attempts."""

    enabled: bool = True
    output_dir: Path = Path(".")


class NotificationConfig(BaseSettings):
    """Telegram Bot API settings."""

    api_base_url: str = "https://api.telegram.org"
    parse_mode: str = "HTML"
    timezone: str = "Asia/Seoul"


class AppConfig(BaseSettings):
    """Root configuration class for the application."""

    credentials: CredentialsConfig = CredentialsConfig()
    urls: UrlConfig = UrlConfig()
    browser: BrowserConfig = BrowserConfig()
    retry: RetryConfig = RetryConfig()
    adaptive_timeout: AdaptiveTimeoutConfig = AdaptiveTimeoutConfig()
    update: UpdateConfig = UpdateConfig()
    logging: LoggingConfig = LoggingConfig()
    diagnostics: DiagnosticsConfig = DiagnosticsConfig()
    notification: NotificationConfig = NotificationConfig()

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Instantiate the main config object
config = AppConfig()
