"""Authentication handling for the Tooling API client."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    """Stored session credentials for an org."""

    access_token: str = Field(..., description="Session id or OAuth access token")
    instance_url: str = Field(..., description="Org instance URL, e.g. https://acme.my.site.com")
    token_type: str = Field(default="Bearer", description="Token type")


SF_ACCESS_TOKEN_ENV = "SF_ACCESS_TOKEN"
SF_INSTANCE_URL_ENV = "SF_INSTANCE_URL"

DEFAULT_CREDENTIALS_PATH = Path.home() / ".pkgversion" / "credentials.json"


def get_credentials(
    access_token: str | None = None,
    instance_url: str | None = None,
    credentials_path: Path | None = None,
) -> Credentials | None:
    """Resolve credentials from the available sources.

    Each value is taken, in order of priority, from:
    1. The explicit parameter
    2. SF_ACCESS_TOKEN / SF_INSTANCE_URL environment variables
    3. ~/.pkgversion/credentials.json

    Returns:
        Credentials if both a token and an instance URL were found, None otherwise.
    """
    token = access_token or os.environ.get(SF_ACCESS_TOKEN_ENV)
    url = instance_url or os.environ.get(SF_INSTANCE_URL_ENV)

    if not (token and url):
        stored = load_credentials_from_file(credentials_path or DEFAULT_CREDENTIALS_PATH)
        if stored:
            token = token or stored.access_token
            url = url or stored.instance_url

    if not (token and url):
        return None

    return Credentials(access_token=token, instance_url=url.rstrip("/"))


def load_credentials_from_file(path: Path) -> Credentials | None:
    """Load credentials from a JSON file.

    Returns:
        Credentials if found and valid, None otherwise.
    """
    if not path.exists():
        return None

    try:
        data = json.loads(path.read_text())
    except (json.JSONDecodeError, OSError):
        return None

    if not isinstance(data, dict):
        return None

    token = data.get("access_token") or data.get("accessToken")
    url = data.get("instance_url") or data.get("instanceUrl")
    if not (token and url):
        return None

    return Credentials(
        access_token=token,
        instance_url=url,
        token_type=data.get("token_type", "Bearer"),
    )


def save_credentials_to_file(
    access_token: str,
    instance_url: str,
    path: Path | None = None,
    token_type: str = "Bearer",
) -> None:
    """Save credentials to a JSON file readable only by the current user."""
    creds_path = path or DEFAULT_CREDENTIALS_PATH
    creds_path.parent.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {
        "access_token": access_token,
        "instance_url": instance_url,
        "token_type": token_type,
    }

    creds_path.write_text(json.dumps(data, indent=2))
    creds_path.chmod(0o600)


def clear_credentials(path: Path | None = None) -> bool:
    """Clear saved credentials.

    Returns:
        True if credentials were cleared, False if file didn't exist.
    """
    creds_path = path or DEFAULT_CREDENTIALS_PATH

    if creds_path.exists():
        creds_path.unlink()
        return True

    return False


class AuthProvider:
    """Resolves credentials once and provides authorization headers."""

    def __init__(
        self,
        access_token: str | None = None,
        instance_url: str | None = None,
        credentials_path: Path | None = None,
    ) -> None:
        self._access_token = access_token
        self._instance_url = instance_url
        self._credentials_path = credentials_path
        self._resolved: Credentials | None = None

    @property
    def credentials(self) -> Credentials | None:
        """Get the resolved credentials."""
        if self._resolved is None:
            self._resolved = get_credentials(
                access_token=self._access_token,
                instance_url=self._instance_url,
                credentials_path=self._credentials_path,
            )
        return self._resolved

    def _require(self) -> Credentials:
        creds = self.credentials
        if creds is None:
            raise ValueError(
                "No credentials found. Set SF_ACCESS_TOKEN and SF_INSTANCE_URL, "
                "pass access_token and instance_url, or save credentials to "
                "~/.pkgversion/credentials.json"
            )
        return creds

    @property
    def instance_url(self) -> str:
        """Instance URL of the authenticated org.

        Raises:
            ValueError: If no credentials are available.
        """
        return self._require().instance_url

    def get_headers(self) -> dict[str, str]:
        """Get authorization headers for requests.

        Raises:
            ValueError: If no credentials are available.
        """
        creds = self._require()
        return {"Authorization": f"{creds.token_type} {creds.access_token}"}

    def refresh(self) -> None:
        """Clear cached credentials and re-resolve on next access."""
        self._resolved = None

    def is_authenticated(self) -> bool:
        return self.credentials is not None
