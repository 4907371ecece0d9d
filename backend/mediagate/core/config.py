from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    应用配置
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # 基础配置
    PROJECT_NAME: str = "mediagate"
    API_PREFIX: str = ""  # 浏览器前端直接调用根路径,保持为空
    ENVIRONMENT: str = "development"  # development/production/test
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # 追踪与可观察性
    TRACE_ID_HEADER: str = "X-Request-Id"

    # CORS 配置(逗号分隔)
    BACKEND_CORS_ORIGINS: str = Field(
        default="*",
        validation_alias=AliasChoices("BACKEND_CORS_ORIGINS", "CORS_ORIGIN"),
    )

    # 上游视频生成服务
    UPSTREAM_PRESET: str = "kie"  # kie | aimlapi,见 upstream_presets
    UPSTREAM_BASE_URL: str | None = Field(
        default=None,
        validation_alias=AliasChoices("UPSTREAM_BASE_URL", "KIE_API_PREFIX"),
    )
    UPSTREAM_API_KEY: str | None = Field(
        default=None,
        validation_alias=AliasChoices("UPSTREAM_API_KEY", "KIE_KEY"),
    )
    # 逗号分隔,留空则使用预设中的候选列表
    UPSTREAM_SUBMIT_PATHS: str = ""
    UPSTREAM_STATUS_PATHS: str = ""
    UPSTREAM_JOB_ID_PARAMS: str = ""
    UPSTREAM_FIELD_STYLE: str | None = None  # camel | snake,留空跟随预设

    # 并发 / 超时
    UPSTREAM_CONCURRENCY: int = Field(
        default=1,
        ge=1,
        validation_alias=AliasChoices("UPSTREAM_CONCURRENCY", "CONCURRENCY"),
    )
    UPSTREAM_PROXY: str | None = None  # 例如 http://127.0.0.1:7890,留空直连
    SUBMIT_TIMEOUT_SECONDS: float = 60.0
    STATUS_TIMEOUT_SECONDS: float = 20.0

    # 轮询策略(固定间隔,无退避)
    POLL_INTERVAL_SECONDS: float = 3.0
    POLL_MAX_ATTEMPTS: int = 200
    POLL_TOTAL_TIMEOUT_SECONDS: float = 900.0
    JOB_PAYLOAD_HISTORY: int = 5

    # 端点发现缓存失效策略(0 表示关闭)
    ENDPOINT_CACHE_TTL_SECONDS: float = 0.0
    ENDPOINT_RESET_AFTER_NO_JOB_ID: int = 0
    DISCOVERY_PROBE_PROMPT: str = "a single white dot on black background"

    # 请求清洗默认值
    DEFAULT_ASPECT_RATIO: str = "16:9"
    DEFAULT_DURATION_SECONDS: float = 8.0
    PROMPT_MAX_CHARS: int = 2000

    # 结果缓存(进程内,用于 /result/{id} 延迟获取)
    RESULT_CACHE_MAX_ENTRIES: int = 1000

    # 客户端断开时取消进行中的生成
    CANCEL_ON_CLIENT_DISCONNECT: bool = True
    DISCONNECT_CHECK_INTERVAL_SECONDS: float = 1.0

    # ElevenLabs(只读音色列表)
    ELEVENLABS_API_KEY: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ELEVENLABS_API_KEY", "ELEVEN_LABS"),
    )
    ELEVENLABS_BASE_URL: str = "https://api.elevenlabs.io/v1"
    ELEVENLABS_TIMEOUT_SECONDS: float = 8.0

    # 日志配置 (Loguru)
    LOG_LEVEL: str = "INFO"
    LOG_JSON_FORMAT: bool = False
    LOG_ASYNC: bool = False
    LOG_FILE_PATH: str = ""
    LOG_ROTATION: str = "500 MB"  # 日志文件大小轮转
    LOG_RETENTION: str = "10 days"  # 日志保留时间

    @property
    def cors_origins(self) -> list[str]:
        return [item.strip() for item in self.BACKEND_CORS_ORIGINS.split(",") if item.strip()]


settings = Settings()
