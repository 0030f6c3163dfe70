"""
Configuration Schemas.

Pydantic models defining the expected structure of each YAML config file.
Used by AppConfig to validate configuration at load time. If a YAML file
has missing keys, wrong types, or unknown fields, a clear error is raised
at startup instead of a cryptic KeyError deep in application code.

Each top-level class corresponds to one file in config/settings/:
    ApplicationSchema  → application.yaml
    LoggingSchema      → logging.yaml
    ConcurrencySchema  → concurrency.yaml
"""

from pydantic import BaseModel, ConfigDict


class _StrictBase(BaseModel):
    """Base with extra='forbid' so unknown YAML keys are caught immediately."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# application.yaml
# =============================================================================


class ApiSchema(_StrictBase):
    endpoint: str
    login: str = ""
    verify: str = ""
    timeout: float = 30.0


class ExportSchema(_StrictBase):
    table_type: str = "basic"
    max_column_width: int = 40


class ApplicationSchema(_StrictBase):
    name: str
    version: str
    description: str
    api: ApiSchema
    export: ExportSchema


# =============================================================================
# logging.yaml
# =============================================================================


class ConsoleHandlerSchema(_StrictBase):
    enabled: bool


class FileHandlerSchema(_StrictBase):
    enabled: bool
    path: str
    max_bytes: int
    backup_count: int


class HandlersSchema(_StrictBase):
    console: ConsoleHandlerSchema
    file: FileHandlerSchema


class LoggingSchema(_StrictBase):
    level: str
    format: str
    handlers: HandlersSchema


# =============================================================================
# concurrency.yaml
# =============================================================================


class FanoutSchema(_StrictBase):
    max_concurrency: int
    item_timeout: float | None = None


class ThreadPoolSchema(_StrictBase):
    max_workers: int


class RetrySchema(_StrictBase):
    attempts: int
    min_wait: float
    max_wait: float


class ConcurrencySchema(_StrictBase):
    fanout: FanoutSchema
    thread_pool: ThreadPoolSchema
    retry: RetrySchema
