"""Load TabbyConfig from tabby.yaml if present.

Merges file config with keyword overrides. Overrides take precedence.
"""

from __future__ import annotations

from pathlib import Path

from tabby._errors import ConfigError
from tabby.config import TabbyConfig

_KNOWN_KEYS = (
    "storage_dir",
    "on_corrupt_snapshot",
    "isolate_listeners",
    "parser",
    "max_events",
    "sse_endpoint",
)


def load_config(root: Path | str = ".", **overrides: object) -> TabbyConfig:
    """Load TabbyConfig from root, optionally merging tabby.yaml.

    Looks for tabby.yaml, tabby.yml, or tabby.toml in root. If found, loads
    and merges with overrides. A relative ``storage_dir`` from the file is
    taken relative to root.
    """
    root = Path(root)
    file_config = _read_tabby_config(root)
    if "storage_dir" in file_config and file_config["storage_dir"] is not None:
        storage = Path(str(file_config["storage_dir"]))
        file_config["storage_dir"] = storage if storage.is_absolute() else root / storage
    merged = {**file_config, **overrides}
    if merged.get("storage_dir") is not None and not isinstance(merged["storage_dir"], Path):
        merged["storage_dir"] = Path(str(merged["storage_dir"]))
    try:
        return TabbyConfig(**merged)  # type: ignore[arg-type]
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc


def _read_tabby_config(root: Path) -> dict[str, object]:
    """Read tabby config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("tabby.yaml", "tabby.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "tabby.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    import yaml

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        msg = f"Invalid YAML in {path.name}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path.name} must contain a mapping, got {type(data).__name__}"
        raise ConfigError(msg)
    return _flatten_tabby_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    import tomllib

    try:
        data = tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path.name}: {exc}"
        raise ConfigError(msg) from exc
    return _flatten_tabby_section(data)


def _flatten_tabby_section(data: dict[str, object]) -> dict[str, object]:
    """Extract tabby.* keys into top-level config."""
    result: dict[str, object] = {}
    section = data.get("tabby")
    if isinstance(section, dict):
        for k, v in section.items():
            result[k] = v
    for k, v in data.items():
        if k != "tabby" and k in _KNOWN_KEYS:
            result[k] = v
    return result
