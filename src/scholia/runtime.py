"""Runtime wiring helper for CLI applications."""

from dataclasses import dataclass
from pathlib import Path

from .adapters.fs_source import FsDocumentSource
from .adapters.fs_storage import FsStorage
from .adapters.idgen import UuidId
from .adapters.json_codec import JsonRecordCodec
from .adapters.markdown_parser import MarkdownParser
from .config import ScholiaConfig, load_config
from .core.layout import ForceLayout
from .core.library import Library


@dataclass
class Runtime:
    """Container for all wired components."""
    library: Library
    layout: ForceLayout
    config: ScholiaConfig


def build_library(store_path: Path) -> Library:
    return Library(
        storage=FsStorage(store_path),
        source=FsDocumentSource(),
        parser=MarkdownParser(),
        codec=JsonRecordCodec(),
        idgen=UuidId(),
    )


def build_runtime(
    store_path: Path | None = None,
    config_path: Path | None = None,
) -> Runtime:
    """Build and wire all components for a store."""
    config = load_config(config_path=config_path, store_path=store_path)

    if store_path is None:
        store_path = config.store.dir

    return Runtime(
        library=build_library(store_path),
        layout=ForceLayout(config.layout),
        config=config,
    )
