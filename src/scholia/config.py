"""Configuration loader for scholia.toml."""

import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from .core.layout import LayoutParams

DEFAULT_STORE = Path("~/.scholia/notes")


@dataclass
class StoreConfig:
    """Where annotation records and the document index live."""
    dir: Path


@dataclass
class ScholiaConfig:
    """Complete scholia configuration."""
    store: StoreConfig
    layout: LayoutParams


def _layout_params(data: dict[str, Any]) -> LayoutParams:
    defaults = LayoutParams()
    values = {}
    for f in fields(LayoutParams):
        default = getattr(defaults, f.name)
        value = data.get(f.name, default)
        values[f.name] = int(value) if isinstance(default, int) else float(value)
    return LayoutParams(**values)


def load_config(config_path: Path | None = None, store_path: Path | None = None) -> ScholiaConfig:
    """
    Load configuration from scholia.toml.

    Search order:
    1. config_path (if provided)
    2. cwd/scholia.toml
    3. store_path/scholia.toml

    Args:
        config_path: Explicit path to config file
        store_path: Store directory for fallback search

    Returns:
        ScholiaConfig with resolved settings
    """
    toml_data: dict[str, Any] = {}

    search_paths = []
    if config_path:
        search_paths.append(config_path)
    search_paths.append(Path.cwd() / "scholia.toml")
    if store_path:
        search_paths.append(store_path / "scholia.toml")

    for path in search_paths:
        if path.exists():
            with open(path, "rb") as f:
                toml_data = tomllib.load(f)
            break

    store_data = toml_data.get("store", {})
    store_dir = Path(store_data.get("dir", store_path or DEFAULT_STORE)).expanduser()

    layout = _layout_params(toml_data.get("layout", {}))

    return ScholiaConfig(
        store=StoreConfig(dir=store_dir),
        layout=layout,
    )
