"""Concrete implementations of the TokenStore interface.

FileTokenStore keeps the credentials in a small JSON document in the user's
config directory so a login survives between CLI invocations.
InMemoryTokenStore is used by tests and embedding applications.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from formacli.domain.interfaces.token_store import TokenStore

logger = logging.getLogger(__name__)


class InMemoryTokenStore(TokenStore):
    """Process-local store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class FileTokenStore(TokenStore):
    """JSON file store, written with owner-only permissions."""

    def __init__(self, path: Path):
        self.path = Path(path)
        logger.debug(f"FileTokenStore using {self.path}")

    def _read(self) -> Dict[str, str]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable credentials file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Credentials file {self.path} did not contain an object.")
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write(self, values: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            json.dump(values, f)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        values = self._read()
        values[key] = value
        self._write(values)

    def remove(self, key: str) -> None:
        values = self._read()
        if key not in values:
            return
        del values[key]
        if values:
            self._write(values)
        else:
            self.path.unlink(missing_ok=True)
