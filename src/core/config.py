"""
Agent executor service configuration
"""
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    """Agent executor service settings"""

    # Application
    app_name: str = "Kommon Agent Executor"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    workers: int = 1

    # Security
    api_key: str = "kommon-api-key-change-in-production"
    allowed_origins: List[str] = ["http://localhost:3000"]

    # Executor
    executor_type: str = "local"  # local | container | pod
    executor_config_dir: str = ""  # local: ~/.kommon/local-executor
    executor_namespace: str = "default"  # pod
    executor_stop_timeout: int = 10  # seconds
    executor_reconcile: bool = False

    # Agent resources
    agent_image: str = "kommon-agent:latest"
    agent_cpu_limit: str = ""  # e.g. "1.0"
    agent_memory_limit: str = ""  # e.g. "512Mi"
    agent_disk_limit: str = ""

    # Backends
    docker_host: Optional[str] = None  # DOCKER_HOST semantics when unset
    kubeconfig: Optional[str] = None

    # Monitoring
    enable_metrics: bool = True

    model_config = SettingsConfigDict(
        env_prefix="KOMMON_",
        env_file=".env",
        case_sensitive=False,
    )

@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
