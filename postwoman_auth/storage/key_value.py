"""
LOT 2: Storage - Key/Value backends

Deux backends:
- MemoryStorage: dictionnaire en mémoire (tests, sessions éphémères)
- FileStorage: fichier JSON mode 0600, écriture atomique
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from .interfaces import IKeyValueStorage


class StorageError(Exception):
    """Erreur d'accès au stockage durable."""

    pass


class MemoryStorage(IKeyValueStorage):
    """Stockage en mémoire."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data.keys())


class FileStorage(IKeyValueStorage):
    """
    Stockage clé/valeur dans un fichier JSON.

    Le fichier est lu une fois puis servi depuis le cache mémoire; chaque
    écriture réécrit le fichier complet via un fichier temporaire + os.replace.
    Pas de verrouillage: un seul processus par fichier.

    Example:
        storage = FileStorage(Path.home() / ".postwoman" / "session.json")
        storage.set("postwoman.auth.v1.token", token)
    """

    FILE_MODE = 0o600  # rw-------

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._cache: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._cache is not None:
            return self._cache

        if not self.path.exists():
            self._cache = {}
            return self._cache

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Lecture impossible de {self.path}: {e}")

        if not isinstance(data, dict):
            raise StorageError(f"Contenu invalide dans {self.path}")

        self._cache = {str(k): str(v) for k, v in data.items()}
        return self._cache

    def _flush(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix=".session-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.chmod(tmp_path, self.FILE_MODE)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(f"Écriture impossible de {self.path}: {e}")

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = dict(self._load())
        data[key] = value
        self._flush(data)
        self._cache = data

    def delete(self, key: str) -> None:
        data = self._load()
        if key not in data:
            return
        data = dict(data)
        del data[key]
        self._flush(data)
        self._cache = data
