"""Poster listing collaborators used to fill the poster cache."""

from pathlib import Path
from typing import Iterable, List

import structlog

logger = structlog.get_logger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.gif'}


class PosterSource:
    """Something that can list every poster path currently available."""

    def list_posters(self) -> List[str]:
        raise NotImplementedError


class StaticPosterSource(PosterSource):
    """A fixed list of poster paths."""

    def __init__(self, paths: Iterable[str]):
        self.paths = list(paths)

    def list_posters(self) -> List[str]:
        return list(self.paths)


class DirectoryPosterSource(PosterSource):
    """Image files under a local directory, prefixed with a public base URL.

    Paths are produced as ``base_url + relative/posix/path`` in sorted order,
    the same shape a storage container listing gives.
    """

    def __init__(self, root: str, base_url: str = ""):
        self.root = Path(root)
        self.base_url = base_url

    def list_posters(self) -> List[str]:
        if not self.root.exists():
            raise FileNotFoundError(f"Poster directory not found: {self.root}")

        paths = []
        for file_path in sorted(self.root.rglob('*')):
            if file_path.is_file() and file_path.suffix.lower() in IMAGE_EXTENSIONS:
                relative = file_path.relative_to(self.root).as_posix()
                paths.append(f"{self.base_url}{relative}")

        logger.info("Listed posters", root=str(self.root), count=len(paths))
        return paths
