"""
Application Settings Management
集中管理所有应用配置，包括服务器、存储后端、客户端同步参数、日志路径等

IMPORTANT:
- 敏感信息（如 Redis 密码）应该通过环境变量设置，不要硬编码在代码中
- 创建 .env.local 文件配置本地开发环境
- 生产环境使用系统环境变量
"""

from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

# backend/groupspace/settings.py -> backend/groupspace/ -> backend/ -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

ENV_FILE = PROJECT_ROOT / ".env.local"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==================== 环境配置 ====================
    # "local-dev" | "test" | "production"
    environment: str = "local-dev"

    # ==================== 服务器配置 ====================
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = True

    # ==================== 前端配置 (用于CORS自动生成) ====================
    frontend_host: str = "localhost"
    frontend_port: int = 3000

    # ==================== API 配置 ====================
    api_prefix: str = "/api/v1"

    # ==================== 存储配置 ====================
    # true: 进程内存存储（单实例）
    # false: Redis 存储（多实例共享，按 scope 加分布式锁）
    use_memory_store: bool = False

    # Redis 类型: "fake" | "redis"
    # - fake: 进程内 FakeRedis，无需外部服务
    # - redis: 真实 Redis 实例
    redis_type: str = "fake"

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_index: int = 0
    redis_password: str | None = None
    redis_socket_timeout: int = 5
    redis_socket_connect_timeout: int = 5

    # Max seconds a single scope write may hold the scope lock
    scope_lock_timeout: float = 10.0

    # ==================== 版本控制策略 ====================
    # false: knownRevision 仅在超前于当前版本时拒绝 (last-writer-wins)
    # true: knownRevision 落后于当前版本时同样拒绝 (optimistic concurrency)
    strict_revisions: bool = False

    # ==================== 客户端同步配置 ====================
    workspace_api_url: str = "http://127.0.0.1:8000/api/v1"
    workspace_scope: str = "default"
    poll_interval_seconds: float = 3.0
    http_timeout: float = 10.0

    # 本地缓存目录（相对于 workspace 或绝对路径）
    local_cache_dir: str = "cache"

    # ==================== 文件路径配置 ====================
    workspace_name: str = "groupspace-workspace"
    logs_subdir: str = "logs"

    # ==================== 日志配置 ====================
    log_max_bytes: int = 20 * 1024 * 1024  # 20MB
    log_backup_count: int = 5

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==================== 计算属性 ====================

    @computed_field  # type: ignore[misc]
    @property
    def cors_origins(self) -> list[str]:
        """Auto-generate CORS origins from the frontend host and port."""
        frontend_url = f"http://{self.frontend_host}:{self.frontend_port}"
        return [
            frontend_url,
            f"http://127.0.0.1:{self.frontend_port}",
            f"http://localhost:{self.frontend_port}",
        ]

    # ==================== 验证方法 ====================

    def validate_configuration(self) -> None:
        """
        Validate configuration settings

        Raises:
            ValueError: If configuration is invalid
        """
        if self.port == self.frontend_port:
            raise ValueError(
                f"Port conflict: Backend port {self.port} conflicts with "
                f"frontend port {self.frontend_port}"
            )
        if self.poll_interval_seconds <= 0:
            raise ValueError(f"poll_interval_seconds must be positive, got {self.poll_interval_seconds}")

    # ==================== 路径获取方法 ====================

    @classmethod
    def get_project_root(cls) -> Path:
        """获取项目根目录的绝对路径"""
        return PROJECT_ROOT

    def is_local_dev(self) -> bool:
        """Check if running in local development mode."""
        return self.environment == "local-dev"

    def get_workspace_root(self) -> Path:
        """
        获取工作空间根目录的绝对路径

        - local-dev: {project_root}/groupspace-workspace/
        - test/production: /app/
        """
        if self.is_local_dev():
            return self.get_project_root() / self.workspace_name
        return Path("/app")

    def get_logs_root(self) -> Path:
        """
        获取日志根目录的绝对路径

        - local-dev: {project_root}/groupspace-workspace/logs/
        - production: /app/logs/
        """
        return self.get_workspace_root() / self.logs_subdir

    def get_local_cache_root(self) -> Path:
        """获取客户端本地缓存目录

        Examples:
            local_cache_dir="cache" -> {workspace}/cache
            local_cache_dir="/tmp/gs" -> /tmp/gs
        """
        cache_dir = Path(self.local_cache_dir)
        if cache_dir.is_absolute():
            return cache_dir
        return self.get_workspace_root() / cache_dir


# 创建全局配置实例
settings = Settings()
