# amo_notes/services/token_store.py

import fcntl
import json
import os
import tempfile

from pydantic import ValidationError

from amo_notes.core.logger import logger
from amo_notes.models.token import TokenPair
from amo_notes.utils.errors import (
    TokenCorruptError, TokenFileError, TokenNotFoundError, TokenWriteError
)

TOKEN_FILE_MODE = 0o600


class TokenStore:
    """
    Single-file JSON storage for the amoCRM token pair.

    Writers serialize on an exclusive flock of "<path>.lock" and swap the
    file in with os.replace, so readers (which never lock) always see either
    the previous or the new document in full.
    """

    def __init__(self, path: str):
        self.path = os.path.abspath(os.path.expanduser(path))
        self.lock_path = self.path + ".lock"

    def load(self) -> TokenPair:
        if not os.path.exists(self.path):
            raise TokenNotFoundError(f"Token file not found: {self.path}")

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
        except OSError as e:
            raise TokenFileError(f"Cannot read token file {self.path}: {e}") from e

        try:
            data = json.loads(content)
        except ValueError as e:
            raise TokenCorruptError(f"Invalid JSON in token file: {e}") from e

        if not isinstance(data, dict):
            raise TokenCorruptError("Invalid token file: expected a JSON object")

        try:
            return TokenPair.model_validate(data)
        except ValidationError as e:
            raise TokenCorruptError(f"Invalid token file contents: {e}") from e

    def save(self, tokens: TokenPair) -> None:
        payload = json.dumps(tokens.model_dump(mode="json", exclude_unset=True), ensure_ascii=False)
        directory = os.path.dirname(self.path)

        try:
            os.makedirs(directory, exist_ok=True)
            with open(self.lock_path, "a") as lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                try:
                    self._replace(directory, payload)
                finally:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)
        except OSError as e:
            raise TokenWriteError(f"Failed to save tokens to {self.path}: {e}") from e

        logger.info(f"Saved amoCRM tokens to {self.path}")

    def _replace(self, directory: str, payload: str) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tokens-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.chmod(tmp_path, TOKEN_FILE_MODE)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
