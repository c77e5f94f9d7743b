from pathlib import Path

from ..core.ports import RecordStorage


class FsStorage(RecordStorage):
    """One file per record key inside a single directory."""

    def __init__(self, root: Path):
        self.root = root

    def _path(self, key: str) -> Path:
        return self.root / key

    def read_bytes(self, key: str) -> bytes | None:
        p = self._path(key)
        return p.read_bytes() if p.exists() else None

    def write_bytes(self, key: str, data: bytes) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        target = self._path(key)
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        try:
            tmp_path.write_bytes(data)
            tmp_path.replace(target)
        except OSError:
            if tmp_path.exists():
                tmp_path.unlink()
            raise

    def delete(self, key: str) -> None:
        p = self._path(key)
        if p.exists():
            p.unlink()

