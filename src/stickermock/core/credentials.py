"""
API credential handling for stickermock.

CredentialStore owns the single Gemini API key. It is loaded from the injected
storage backend on construction and changed only through set() or clear(),
which also persist the change. Storage failures never make the credential
unusable for the current process; they are logged as warnings and reflected
in Credential.is_persisted.
"""

from dataclasses import dataclass, field

from stickermock.core.config import Config
from stickermock.logging_config import get_logger
from stickermock.utils.exceptions import StorageError
from stickermock.utils.storage import JsonFileStorage, KeyValueStorage

logger = get_logger(__name__)

CREDENTIAL_STORAGE_KEY = "stickermock.gemini-api-key"


@dataclass(frozen=True)
class Credential:
    """An API key and whether it is saved in persistent storage."""

    key_value: str = field(default="", repr=False)
    is_persisted: bool = False


def mask_key(key: str) -> str:
    """Return a display form of key that hides all but its first and last four characters."""
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}…{key[-4:]}"


class CredentialStore:
    """Holds and persists the API credential through a KeyValueStorage backend."""

    def __init__(
        self,
        storage: KeyValueStorage,
        key: str = CREDENTIAL_STORAGE_KEY,
        default: str | None = None,
    ) -> None:
        """
        Load the credential from storage.

        Args:
            storage: Backend used to read and write the key
            key: Storage key the credential lives under
            default: Key to use when storage holds none (e.g. from GEMINI_API_KEY);
                reported as not persisted
        """
        self._storage = storage
        self._key = key
        self._credential: Credential | None = None

        stored: str | None = None
        try:
            stored = storage.get(key)
        except StorageError as e:
            logger.warning("Could not load saved API key, continuing without it: %s", e)

        if stored:
            self._credential = Credential(key_value=stored, is_persisted=True)
            logger.debug("Loaded saved API key")
        elif default:
            self._credential = Credential(key_value=default, is_persisted=False)
            logger.debug("Using API key from environment")

    @classmethod
    def from_config(cls, config: Config) -> "CredentialStore":
        """Create a store backed by the settings file, falling back to GEMINI_API_KEY."""
        return cls(JsonFileStorage(config.settings_path), default=config.gemini_api_key or None)

    def get(self) -> Credential | None:
        """Return the current credential, or None when no key is configured."""
        return self._credential

    def set(self, key_value: str) -> None:
        """
        Replace the credential and persist it.

        The key is not checked locally. If the storage write fails the new key
        stays usable in memory with is_persisted=False.
        """
        try:
            self._storage.set(self._key, key_value)
        except StorageError as e:
            logger.warning("API key not saved, it will only be used for this session: %s", e)
            self._credential = Credential(key_value=key_value, is_persisted=False)
            return
        self._credential = Credential(key_value=key_value, is_persisted=True)
        logger.info("API key saved")

    def clear(self) -> None:
        """Forget the credential and remove it from storage."""
        self._credential = None
        try:
            self._storage.delete(self._key)
        except StorageError as e:
            logger.warning("Could not remove saved API key: %s", e)
            return
        logger.info("API key removed")


__all__ = ["CREDENTIAL_STORAGE_KEY", "Credential", "CredentialStore", "mask_key"]
