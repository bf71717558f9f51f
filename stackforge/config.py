"""Runtime configuration — env-driven.

Centralized config using pydantic-settings. Reads from a .env file and
STACKFORGE_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class StackforgeConfig(BaseSettings):
    """Synthesis configuration with environment variable overrides.

    Relative paths resolve against the working directory of the process
    that runs the build.

    Examples
    --------
    Override via environment::

        export STACKFORGE_LOG_LEVEL=DEBUG
        export STACKFORGE_MANIFEST_PATH=infra/versions.json
        export STACKFORGE_SNAPSHOT_DIRECTORY=infra/snapshots

    Or via .env file::

        STACKFORGE_ASSET_BUCKET=my-product-assets
        STACKFORGE_RECORD_FRESH_VERSIONS=true
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="STACKFORGE_",
        env_file_encoding="utf-8",
    )

    # Logging
    log_level: str = "INFO"

    # Version history
    manifest_path: Path = Path("stackforge.versions.json")
    snapshot_directory: Path = Path("product-stack-snapshots")
    record_fresh_versions: bool = False

    # Asset storage
    asset_root: Path = Path(".stackforge/assets")
    asset_bucket: str = ""  # fallback for stacks without their own bucket
    asset_url_base: str = "https://s3.amazonaws.com"

    # Synthesized product definitions
    output_directory: Path = Path(".stackforge/out")


# Module-level singleton, import as `from stackforge.config import config`
config = StackforgeConfig()
