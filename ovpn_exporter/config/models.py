"""Pydantic configuration models for the OpenVPN exporter."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional


class ServerTarget(BaseModel):
    """One management interface to poll."""
    model_config = ConfigDict(frozen=True)

    label: str = Field(min_length=1)
    socket_path: str = Field(min_length=1)


class CollectorConfig(BaseModel):
    """Polling behaviour of the collector."""
    sockets: str = ""  # label1:/path1,label2:/path2
    connect_timeout_seconds: float = Field(default=3.0, gt=0)
    io_timeout_seconds: float = Field(default=3.0, gt=0)
    scrape_timeout_seconds: Optional[float] = Field(default=None, gt=0)


class ServerConfig(BaseModel):
    """HTTP exposition endpoint."""
    listen_address: str = "0.0.0.0"
    port: int = Field(default=9176, ge=1, le=65535)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Accept standard logging level names only."""
        v = v.upper()
        if v not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f'Unknown log level: {v}')
        return v


class ExporterConfig(BaseModel):
    """Root configuration model for the exporter."""
    collector: CollectorConfig = Field(default_factory=CollectorConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    targets: List[ServerTarget] = Field(default_factory=list)
