"""
Session store for the authenticated Evently user.

Keeps the bearer token and identity returned by the login endpoint,
encrypted with Fernet. The master key is auto-generated on first use and
stored next to the session file.

Design:
- The session is a single encrypted JSON document
- The master key is generated when the first session is saved
- Loading a missing or corrupted session yields an anonymous context
"""

import json
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from evently.config import get_default_data_dir


@dataclass(frozen=True)
class AuthContext:
    """
    Authentication capability handed to components that call the API.

    Attributes:
        token: Bearer token, or None for an anonymous user
        email: Email of the authenticated user
        name: Display name of the authenticated user
    """

    token: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @classmethod
    def anonymous(cls) -> "AuthContext":
        return cls()


class SessionStore:
    """
    Encrypted local storage for the current session.

    Directory structure:
        <user data dir>/
            master.key      # Fernet encryption key (auto-generated)
            session.bin     # Encrypted session document

    Usage:
        >>> store = SessionStore()
        >>> store.save(AuthContext(token="...", email="ana@example.com"))
        >>> store.load().is_authenticated
        True
    """

    MASTER_KEY_FILE = "master.key"
    SESSION_FILE = "session.bin"

    def __init__(self, base_dir: Optional[Path] = None):
        """
        Initialize the session store.

        Args:
            base_dir: Storage directory (defaults to the platform data dir)
        """
        self.base_dir = Path(base_dir) if base_dir else get_default_data_dir()
        self._fernet: Optional[Fernet] = None

    @property
    def master_key_path(self) -> Path:
        return self.base_dir / self.MASTER_KEY_FILE

    @property
    def session_path(self) -> Path:
        return self.base_dir / self.SESSION_FILE

    def _ensure_directory(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.base_dir, 0o700)

    def _load_or_create_master_key(self) -> bytes:
        self._ensure_directory()

        if self.master_key_path.exists():
            with open(self.master_key_path, "rb") as f:
                return f.read()

        key = Fernet.generate_key()
        with open(self.master_key_path, "wb") as f:
            f.write(key)
        os.chmod(self.master_key_path, 0o600)
        return key

    def _get_fernet(self) -> Fernet:
        """Get or create Fernet cipher."""
        if self._fernet is None:
            self._fernet = Fernet(self._load_or_create_master_key())
        return self._fernet

    def save(self, context: AuthContext) -> None:
        """
        Persist an authenticated session.

        Raises:
            ValueError: If the context carries no token
        """
        if not context.is_authenticated:
            raise ValueError("Cannot save a session without a token")

        data = {
            "token": context.token,
            "email": context.email,
            "name": context.name,
            "stored_at": datetime.now(timezone.utc).isoformat(),
        }
        encrypted = self._get_fernet().encrypt(json.dumps(data).encode("utf-8"))

        with open(self.session_path, "wb") as f:
            f.write(encrypted)
        os.chmod(self.session_path, 0o600)

    def load(self) -> AuthContext:
        """
        Load the stored session.

        Returns:
            The stored context, or an anonymous one if none is usable
        """
        if not self.session_path.exists() or not self.master_key_path.exists():
            return AuthContext.anonymous()

        with open(self.session_path, "rb") as f:
            encrypted = f.read()

        try:
            data = json.loads(self._get_fernet().decrypt(encrypted).decode("utf-8"))
        except (InvalidToken, ValueError):
            return AuthContext.anonymous()

        return AuthContext(
            token=data.get("token"),
            email=data.get("email"),
            name=data.get("name"),
        )

    def clear(self) -> bool:
        """
        Delete the stored session.

        Returns:
            True if a session was deleted, False if none existed
        """
        if self.session_path.exists():
            self.session_path.unlink()
            return True
        return False
