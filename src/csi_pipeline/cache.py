"""File cache for model-backed stage outputs."""
import hashlib
from pathlib import Path
from typing import Callable, Generic, TypeVar

T = TypeVar('T')


def text_key(namespace: str, text: str) -> str:
    """Stable cache key for a piece of feedback text."""
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()[:32]
    return f"{namespace}_{digest}"


class FileCache(Generic[T]):
    """JSON files under cache_dir, one per key."""

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def get(self, key: str, loader: Callable[[str], T]) -> T | None:
        """Get cached item, returning None if not found."""
        path = self._path(key)
        if path.exists():
            return loader(path.read_text(encoding="utf-8"))
        return None

    def save(self, key: str, value: T, serializer: Callable[[T], str]) -> None:
        self._path(key).write_text(serializer(value), encoding="utf-8")
