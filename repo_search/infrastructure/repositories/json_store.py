import json
import logging
from pathlib import Path
from typing import Optional

from repo_search.core.models.repository import Repository

logger = logging.getLogger(__name__)


class JsonRepositoryStore:
    """Repository metadata loaded from a JSON list on disk."""

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._repositories: Optional[dict[str, Repository]] = None

    def _load(self) -> dict[str, Repository]:
        if self._repositories is not None:
            return self._repositories

        if not self._path.exists():
            logger.warning(f"Repositories file not found: {self._path}")
            self._repositories = {}
            return self._repositories

        with self._path.open(encoding="utf-8") as f:
            data = json.load(f)

        self._repositories = {}
        for item in data:
            repository = Repository.from_dict(item)
            self._repositories[repository.id] = repository

        logger.info(f"Loaded {len(self._repositories)} repositories from {self._path}")
        return self._repositories

    async def get_by_id(self, repository_id: str) -> Optional[Repository]:
        return self._load().get(repository_id)
