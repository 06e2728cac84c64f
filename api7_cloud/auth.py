"""Access token handling for API7 Cloud."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import yaml

from .errors import CloudEmptyTokenError
from .options import ClientOptions


@dataclass(frozen=True)
class AccessToken:
    """Token used by API7 Cloud to authenticate clients.

    Only ``token`` is needed to send requests; the other fields are
    informational.
    """

    token: str
    id: str = ""
    notes: str = ""
    expire: datetime | None = None

    def authorization(self) -> str:
        """Value of the ``Authorization`` header."""
        return f"Bearer {self.token}"

    def __repr__(self) -> str:
        return f"AccessToken(id={self.id!r}, notes={self.notes!r})"


def load_token_file(path: Path) -> AccessToken:
    """Read an access token from a credentials file.

    The file layout is::

        user:
          access_token: <token>

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid YAML.
        CloudEmptyTokenError: If the file holds no token.
    """
    with path.expanduser().open() as f:
        try:
            content = yaml.safe_load(f) or {}
        except yaml.YAMLError as err:
            raise ValueError(f"invalid token file: {err}") from err

    user = content.get("user") if isinstance(content, dict) else None
    token = user.get("access_token") if isinstance(user, dict) else None
    if not token:
        raise CloudEmptyTokenError("empty token")
    return AccessToken(token=str(token))


def resolve_access_token(options: ClientOptions) -> AccessToken:
    """Pick the access token from options; a literal token wins over a file.

    Raises:
        CloudEmptyTokenError: If neither a token nor a token file is set.
    """
    if options.token:
        return AccessToken(token=options.token)
    if options.token_path:
        return load_token_file(Path(options.token_path))
    raise CloudEmptyTokenError("empty token")
