"""File-backed WhatsApp credential store.

Credentials live as JSON inside a dedicated auth directory, so logging out
can wipe the whole directory without touching anything else.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional

LOGGER = logging.getLogger(__name__)

CREDS_FILE = "creds.json"


class FileCredentialStore:
    """Satisfies the core CredentialStore port."""

    def __init__(self, directory: str) -> None:
        self._directory = directory

    @property
    def path(self) -> str:
        return os.path.join(self._directory, CREDS_FILE)

    def load(self) -> Optional[dict]:
        """Return saved credentials, or None to start a fresh pairing."""

        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, ValueError):
            LOGGER.exception("Unreadable credentials at %s, starting a fresh login", self.path)
            return None

    def save(self, credentials: dict) -> None:
        os.makedirs(self._directory, exist_ok=True)
        # Write then rename so a crash mid-write never leaves half a file.
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(credentials, handle)
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        """Delete every file in the auth directory."""

        if not os.path.isdir(self._directory):
            return
        for name in os.listdir(self._directory):
            path = os.path.join(self._directory, name)
            if os.path.isfile(path):
                os.remove(path)
        LOGGER.info("Auth info cleared successfully")
