# ABOUTME: Utility modules for mcpsync
# ABOUTME: Exports backup and diff helpers

from mcpsync.utils.backup import backup_files, cleanup_old_backups, create_backup, get_backup_dir
from mcpsync.utils.diff import render_diff, show_diff

__all__ = [
    "backup_files",
    "cleanup_old_backups",
    "create_backup",
    "get_backup_dir",
    "render_diff",
    "show_diff",
]
