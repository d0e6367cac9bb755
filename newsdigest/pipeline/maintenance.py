"""Maintenance operations over the rewritten corpus."""

import logging
from typing import Optional

from ..output.backup import BackupWriter
from ..store.repository import ArticleRepository

logger = logging.getLogger(__name__)


async def clear_rewrites(
    repository: ArticleRepository,
    backup: Optional[BackupWriter] = None,
    include_backup_files: bool = False,
) -> int:
    """
    Delete every rewritten article so the next run rewrites from scratch.

    Args:
        repository: Store access
        backup: Backup writer whose files are removed with include_backup_files
        include_backup_files: Also delete the JSON backups on disk

    Returns:
        Number of rewritten records removed from the store
    """
    cleared = await repository.clear_rewritten()
    logger.info("[MAINTENANCE] Cleared %d rewritten articles from the store", cleared)

    if include_backup_files and backup is not None:
        files = backup.clear()
        logger.info("[MAINTENANCE] Cleared %d backup files", files)

    return cleared
