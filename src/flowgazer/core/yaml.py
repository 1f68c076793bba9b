"""YAML configuration loading and the persistent key/value config store.

[load_yaml()][flowgazer.core.yaml.load_yaml] parses configuration files
with ``yaml.safe_load`` so untrusted YAML cannot instantiate Python
objects. [YamlConfigStore][flowgazer.core.yaml.YamlConfigStore] is the
small persistent store the client uses to remember the last relay URL.

Examples:
    ```python
    config = load_yaml("config/flowgazer.yaml")

    store = YamlConfigStore("~/.flowgazer/state.yaml")
    store.set("relay_url", "wss://r.kojira.io")
    store.get("relay_url")
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load and parse a YAML configuration file.

    Returns:
        Parsed configuration as a nested dictionary, or an empty dict if the
        file contains no data.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file contains invalid YAML syntax.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with path.open(encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


class YamlConfigStore:
    """Persistent ``get``/``set`` store backed by a single YAML mapping file.

    Every ``set`` rewrites the whole file. A missing file reads as empty.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._data: dict[str, Any] | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if self._data is None:
            self._data = load_yaml(self._path) if self._path.exists() else {}
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=True)


class MemoryConfigStore:
    """In-process config store, used when no state file is configured."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
