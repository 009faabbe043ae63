"""Application configuration for the Career Report Renderer."""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    DEBUG: bool = Field(default=False, description="Enable FastAPI debug mode")
    ENVIRONMENT: str = Field(
        default="development",
        description="Deployment environment; 'production' uses BROWSER_EXECUTABLE_PATH",
    )
    PORT: int = Field(default=5200, ge=1, description="Port used by the development server")
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])
    ASSETS_DIR: Path = Field(
        default=PROJECT_ROOT / "assets",
        description="Directory containing report templates, images and reference datasets",
    )

    BROWSER_ARGS: list[str] = Field(
        default_factory=lambda: [
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
        ],
        description="Extra command line flags for the headless Chromium process",
    )
    BROWSER_EXECUTABLE_PATH: Optional[Path] = Field(
        default=None,
        description="Chromium binary used in production instead of the Playwright bundle",
    )
    RENDER_TIMEOUT_MS: int = Field(default=60_000, ge=1, description="Per-page load timeout")

    BACKEND_API_URL: str = Field(
        default="http://localhost:4000",
        description="Backend that stores the generated report link per student",
    )
    REGISTRAR_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    DRIVE_CREDENTIALS_PATH: Path = Field(
        default=PROJECT_ROOT / "credentials" / "client_secret.json",
        description="OAuth client file downloaded from the Google Cloud console",
    )
    DRIVE_TOKEN_PATH: Path = Field(
        default=PROJECT_ROOT / "credentials" / "token.json",
        description="Token file written by scripts/generate_token.py",
    )
    DRIVE_ROOT_FOLDER: str = Field(default="careerReports", description="Top-level Drive folder")
    DRIVE_TIMEOUT_SECONDS: float = Field(default=60.0, gt=0)

    model_config = {
        "env_file": ".env",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""
    return Settings()
