"""
One-time Google Drive authorization.

Deletes any existing token file, prints the consent URL, asks for the code
Google returns and stores the resulting tokens (including the refresh token)
at DRIVE_TOKEN_PATH.
"""
from __future__ import annotations

import json
import sys
from urllib.parse import urlencode

import httpx

from web.config import get_settings
from web.services.drive import TOKEN_URL, DriveAPIError, load_client_config

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
SCOPES = ["https://www.googleapis.com/auth/drive"]


def build_auth_url(client: dict) -> str:
    params = {
        "client_id": client["client_id"],
        "redirect_uri": client["redirect_uri"],
        "response_type": "code",
        "access_type": "offline",
        "prompt": "consent",  # forces Google to issue a new refresh token
        "scope": " ".join(SCOPES),
    }
    return f"{AUTH_URL}?{urlencode(params)}"


def main() -> int:
    settings = get_settings()
    token_path = settings.DRIVE_TOKEN_PATH

    if token_path.exists():
        token_path.unlink()
        print(f"Old token deleted: {token_path}")

    try:
        client = load_client_config(settings.DRIVE_CREDENTIALS_PATH)
    except (OSError, ValueError, KeyError, DriveAPIError) as e:
        print(f"Error loading client secret file: {e}")
        print(f"Please ensure the file exists at: {settings.DRIVE_CREDENTIALS_PATH}")
        return 1

    print("Authorize this app by visiting this url:")
    print(build_auth_url(client))
    code = input("Enter the code from that page here: ").strip()

    resp = httpx.post(TOKEN_URL, data={
        "code": code,
        "client_id": client["client_id"],
        "client_secret": client["client_secret"],
        "redirect_uri": client["redirect_uri"],
        "grant_type": "authorization_code",
    }, timeout=30)
    if resp.status_code != 200:
        print(f"Error while trying to retrieve access token: {resp.text}")
        print("Please try running the script again.")
        return 1

    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(json.dumps(resp.json()), encoding="utf-8")
    print(f"Token stored successfully to {token_path}")
    print("You can now start the server with: python scripts/run_dev.py")
    return 0


if __name__ == "__main__":
    sys.exit(main())
