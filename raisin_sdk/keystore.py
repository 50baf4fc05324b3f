"""
Encrypted keystore files (Web3 Secret Storage format).
"""
import json
import logging
import os
import stat
from pathlib import Path
from typing import Any, Dict, Union

import portalocker
from eth_account import Account

from .exceptions import KeystoreError
from .signer import LocalSigner

logger = logging.getLogger(__name__)


class KeystoreFile:
    """One encrypted account on disk, read and written under a file lock."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()

    def _get_lock_path(self) -> str:
        return str(self.path) + ".lock"

    def _ensure_dir(self) -> None:
        directory = self.path.parent
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            if os.name == "posix":
                os.chmod(directory, stat.S_IRUSR | stat.S_IWUSR | stat.S_IXUSR)  # 0700

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> Dict[str, Any]:
        """
        Read the encrypted keystore document.

        Raises:
            KeystoreError: If the file is missing or not valid JSON
        """
        try:
            with portalocker.Lock(self._get_lock_path(), timeout=10):
                with open(self.path, "r") as f:
                    return json.load(f)
        except FileNotFoundError:
            raise KeystoreError(f"Keystore not found: {self.path}")
        except json.JSONDecodeError as e:
            raise KeystoreError(f"Keystore {self.path} is not valid JSON: {e}")

    def write(self, data: Dict[str, Any]) -> None:
        """Write a new keystore document; an existing file is never replaced."""
        self._ensure_dir()
        with portalocker.Lock(self._get_lock_path(), timeout=10):
            if self.path.exists():
                raise KeystoreError(f"Refusing to overwrite existing keystore: {self.path}")
            with open(self.path, "w") as f:
                json.dump(data, f)
            if os.name == "posix":
                os.chmod(self.path, stat.S_IRUSR | stat.S_IWUSR)  # 0600

    def decrypt(self, password: str) -> LocalSigner:
        """
        Decrypt the keystore into a signer.

        Raises:
            KeystoreError: If the password is wrong or the document is malformed
        """
        document = self.read()
        try:
            private_key = Account.decrypt(document, password)
        except ValueError as e:
            # eth-account raises ValueError for a MAC mismatch and for unsupported formats
            raise KeystoreError(f"Cannot decrypt keystore {self.path}: {e}") from e
        except (KeyError, TypeError) as e:
            raise KeystoreError(f"Malformed keystore {self.path}: {e}") from e
        return LocalSigner(private_key)


def create_keystore(directory: Union[str, Path], name: str, password: str) -> str:
    """
    Generate a new account and store it encrypted as ``<directory>/<name>``.

    Args:
        directory: Directory that holds keystore files (created if missing)
        name: File name of the new keystore
        password: Encryption password

    Returns:
        Checksummed address of the new account

    Raises:
        KeystoreError: If the name is unusable or the file already exists
    """
    if not name or os.sep in name or name in (".", ".."):
        raise KeystoreError(f"Invalid keystore name: {name!r}")
    if not password:
        raise KeystoreError("Keystore password must not be empty")

    account = Account.create()
    document = Account.encrypt(account.key, password)
    keystore = KeystoreFile(Path(directory) / name)
    keystore.write(document)
    logger.info(f"Created keystore {keystore.path} for {account.address}")
    return account.address


def load_keystore(path: Union[str, Path], password: str) -> LocalSigner:
    """Decrypt the keystore at ``path`` into a LocalSigner."""
    signer = KeystoreFile(path).decrypt(password)
    logger.debug(f"Unlocked keystore {path} for {signer.address}")
    return signer
