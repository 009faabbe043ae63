"""Utility script to scaffold a local .env file."""
from __future__ import annotations

from pathlib import Path

ENV_TEMPLATE = """# Environment configuration for the Career Report Renderer
ENVIRONMENT=development
DEBUG=true
PORT=5200
BACKEND_API_URL=http://localhost:4000
DRIVE_CREDENTIALS_PATH=credentials/client_secret.json
DRIVE_TOKEN_PATH=credentials/token.json
DRIVE_ROOT_FOLDER=careerReports
# BROWSER_EXECUTABLE_PATH=/opt/chromium/chrome
"""


def main() -> None:
    env_path = Path(".env")
    if env_path.exists():
        print(".env already exists. No changes made.")
        return

    env_path.write_text(ENV_TEMPLATE, encoding="utf-8")
    print("Created .env. Place the Google OAuth client file at DRIVE_CREDENTIALS_PATH, "
          "then run scripts/generate_token.py.")


if __name__ == "__main__":
    main()
