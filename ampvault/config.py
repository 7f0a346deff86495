"""Runtime configuration — env-driven via pydantic-settings.

Reads from a .env file and AMPVAULT_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class VaultConfig(BaseSettings):
    """Storage and CLI configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export AMPVAULT_DATA_DIR=/srv/amp
        export AMPVAULT_LOG_LEVEL=DEBUG
        export AMPVAULT_VERIFY_ON_EXPORT=false

    Or via .env file::

        AMPVAULT_DATA_DIR=.amp
        AMPVAULT_ID_SEED=1234
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="AMPVAULT_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage layout
    data_dir: Path = Path(".amp")
    db_filename: str = "amp.db"

    # Logging
    log_level: str = "INFO"

    # Behaviour
    default_creator: str = "user_local"
    verify_on_export: bool = True
    slug_retry_limit: int = 16
    busy_timeout_seconds: float = 5.0

    # Deterministic ids (tests, demos); None draws from the system CSPRNG
    id_seed: int | None = None

    @property
    def db_path(self) -> Path:
        """Metadata store file inside the data root."""
        return self.data_dir / self.db_filename


# Module-level singleton; import as `from ampvault.config import config`
config = VaultConfig()
