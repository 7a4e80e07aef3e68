from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils import validate_non_empty_string


class RuntimeConfig(BaseModel):
    """Pydantic configuration for child process supervision"""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra='forbid'
    )

    graceful_shutdown_timeout: float = Field(default=5.0, ge=0.1, le=60.0, description="Seconds a tunnel process gets to exit after SIGTERM")
    reclaim_timeout: float = Field(default=3.0, ge=0.1, le=30.0, description="Seconds to wait for a killed port owner to exit")
    stderr_tail_lines: int = Field(default=20, ge=1, le=1000, description="Stderr lines kept per tunnel for failure reports")

    kubectl_binary: str = Field(default="kubectl", description="Forwarding agent executable")
    gcloud_binary: str = Field(default="gcloud", description="Cloud CLI executable")

    @field_validator('kubectl_binary', 'gcloud_binary')
    @classmethod
    def validate_binary(cls, v: str) -> str:
        """Ensure executables are named"""
        return validate_non_empty_string(v, "Executable name")
