"""Durable file backup of rewritten articles.

Each rewritten article is written as ``<backup_dir>/<safe id>.json`` so the
corpus survives a store flush.
"""

import json
import logging
import re
from pathlib import Path

from ..news.models import RewrittenArticle

logger = logging.getLogger(__name__)


class BackupWriter:
    """Writes and clears JSON backups of rewritten articles."""

    def __init__(self, backup_dir: Path):
        """
        Initialize backup writer.

        Args:
            backup_dir: Directory for article JSON files (created on first write)
        """
        self.backup_dir = backup_dir

    @staticmethod
    def filename_for(article_id: str) -> str:
        return f"{re.sub(r'[^a-zA-Z0-9]', '-', article_id)}.json"

    def save(self, article: RewrittenArticle) -> Path:
        """Write the article's backup file, returning its path."""
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        path = self.backup_dir / self.filename_for(article.id)
        path.write_text(json.dumps(article.model_dump(mode="json"), indent=2))
        return path

    def clear(self) -> int:
        """Delete every ``*.json`` backup; a missing directory counts as empty."""
        if not self.backup_dir.exists():
            logger.info("[BACKUP] Backup directory %s does not exist", self.backup_dir)
            return 0

        deleted = 0
        for path in self.backup_dir.glob("*.json"):
            path.unlink()
            deleted += 1
        logger.info("[BACKUP] Deleted %d backup files from %s", deleted, self.backup_dir)
        return deleted
