"""
Configuration management.
"""

import os
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Ingestion
    request_timeout: int = field(default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "30")))

    # Scoring
    scoring_config_path: Optional[str] = field(
        default_factory=lambda: os.getenv("SCORING_CONFIG_PATH") or None
    )

    # Data
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))
    evaluations_file: Optional[str] = field(
        default_factory=lambda: os.getenv("EVALUATIONS_FILE") or None
    )
    reports_dir: Optional[str] = field(default_factory=lambda: os.getenv("REPORTS_DIR") or None)

    @property
    def evaluations_path(self) -> str:
        """Path of the evaluation store, inside data_dir unless set explicitly."""
        return self.evaluations_file or os.path.join(self.data_dir, "evaluations.json")

    @property
    def reports_path(self) -> str:
        """Directory where generated PDF reports are written."""
        return self.reports_dir or os.path.join(self.data_dir, "reports")

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "request_timeout": self.request_timeout,
            "scoring_config_path": self.scoring_config_path,
            "data_dir": self.data_dir,
            "evaluations_path": self.evaluations_path,
            "reports_path": self.reports_path,
        }
