# drivedup Configuration Schema
# Pydantic models for YAML configuration validation

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator


class BackendType(str, Enum):
    """Remote storage backend."""

    LOCAL = "local"
    DRIVE = "drive"


class BackendConfig(BaseModel):
    """Remote tree backend settings."""

    type: BackendType = Field(default=BackendType.LOCAL, description="Backend implementation")
    local_root: str = Field(default="~/drivedup/store", description="Root directory of the local store")
    page_size: int = Field(default=100, ge=1, le=1000, description="Items per listing page")
    cursor_ttl_seconds: int | None = Field(
        default=3600,
        ge=1,
        description="Lifetime of local listing cursors. None = cursors never expire.",
    )
    credentials_file: str = Field(
        default="~/.config/drivedup/credentials.json",
        description="OAuth client secrets for the Drive backend",
    )
    token_file: str = Field(
        default="~/.config/drivedup/token.json",
        description="Authorized user token for the Drive backend",
    )
    max_retries: int = Field(default=5, ge=0, description="Retries for rate-limited Drive calls")

    @field_validator("local_root", "credentials_file", "token_file")
    @classmethod
    def expand_paths(cls, v: str) -> str:
        """Expand ~ in paths."""
        return str(Path(v).expanduser())


class RuntimeConfig(BaseModel):
    """Execution budget and traversal policy."""

    time_limit_seconds: float = Field(default=330.0, gt=0, description="Work budget of one execution")
    execution_ceiling_seconds: float = Field(default=360.0, gt=0, description="Hard limit imposed by the host")
    resume_delay_seconds: float = Field(default=60.0, ge=0, description="Delay before a scheduled resume")
    progress_every: int = Field(default=20, ge=1, description="Refresh the job status every N items")
    listing_retries: int = Field(
        default=0,
        ge=0,
        description="Extra attempts for a failed listing before its stage is abandoned",
    )
    destination_suffix: str = Field(default=" duplicate", description="Appended to the source name")

    @model_validator(mode="after")
    def check_budget(self) -> "RuntimeConfig":
        """The work budget must leave room for the final checkpoint write."""
        if self.time_limit_seconds >= self.execution_ceiling_seconds:
            raise ValueError(
                f"time_limit_seconds ({self.time_limit_seconds}) must be lower than "
                f"execution_ceiling_seconds ({self.execution_ceiling_seconds})"
            )
        return self


class StorageConfig(BaseModel):
    """Locations of the job sheet, checkpoint, schedule and audit log."""

    state_dir: str = Field(default="~/.config/drivedup", description="Directory for state files")
    checkpoint_file: str = Field(default="checkpoint.yaml", description="Checkpoint slot")
    jobs_file: str = Field(default="jobs.yaml", description="Job sheet")
    log_file: str = Field(default="logs.csv", description="Audit log")
    schedule_file: str = Field(default="resume.yaml", description="Pending resume marker")

    @field_validator("state_dir")
    @classmethod
    def expand_state_dir(cls, v: str) -> str:
        """Expand ~ in state directory."""
        return str(Path(v).expanduser())

    def _resolve(self, name: str) -> Path:
        path = Path(name).expanduser()
        if path.is_absolute():
            return path
        return Path(self.state_dir) / path

    @property
    def checkpoint_path(self) -> Path:
        return self._resolve(self.checkpoint_file)

    @property
    def jobs_path(self) -> Path:
        return self._resolve(self.jobs_file)

    @property
    def log_path(self) -> Path:
        return self._resolve(self.log_file)

    @property
    def schedule_path(self) -> Path:
        return self._resolve(self.schedule_file)


class OutputConfig(BaseModel):
    """Output configuration."""

    verbose: bool = Field(default=False, description="Enable verbose output")
    colored: bool = Field(default=True, description="Enable colored output")


class DrivedupConfig(BaseModel):
    """Root configuration model for drivedup."""

    backend: BackendConfig = Field(default_factory=BackendConfig, description="Backend settings")
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig, description="Runtime settings")
    storage: StorageConfig = Field(default_factory=StorageConfig, description="Storage settings")
    output: OutputConfig = Field(default_factory=OutputConfig, description="Output settings")
