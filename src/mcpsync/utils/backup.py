# ABOUTME: Backup utilities for provider and unified configuration files.
# ABOUTME: Timestamped copies with retention cleanup (keep last 5 per label).
import logging
import re
import shutil
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

# ABOUTME: Matches {label}_{YYYYMMDD}_{HHMMSS}[_{micro}].{ext}
BACKUP_PATTERN = re.compile(r"^(.+?)_(\d{8}_\d{6}(?:_\d{6})?)\.(.+)$")

MAX_BACKUPS_PER_LABEL = 5


def create_backup(source_path: Path, backup_dir: Path, label: str | None = None) -> Path:
    """Create a timestamped backup of a file.

    ABOUTME: Backup format: {label}_{YYYYMMDD}_{HHMMSS}_{micro}.{ext}
    ABOUTME: Uses shutil.copy2() to preserve file metadata

    Args:
        source_path: Path to file to backup
        backup_dir: Directory where backup should be created
        label: Prefix for the backup name, defaults to the file's stem

    Returns:
        Path to created backup file

    Raises:
        FileNotFoundError: If source_path doesn't exist
        OSError: If backup creation fails

    Examples:
        >>> create_backup(Path("~/.claude.json").expanduser(), get_backup_dir(), "claude").name
        'claude_20260108_143022_000123.json'
    """
    if not source_path.exists():
        raise FileNotFoundError(f"Source file not found: {source_path}")

    backup_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")

    # ~/.claude.json -> claude, settings.json -> settings
    if label is None:
        label = source_path.name.lstrip(".").replace(".", "_").split("_")[0]

    backup_path = backup_dir / f"{label}_{timestamp}{source_path.suffix}"
    shutil.copy2(source_path, backup_path)
    logger.debug(f"Backed up {source_path} to {backup_path}")

    cleanup_old_backups(backup_dir)

    return backup_path


def get_backup_dir() -> Path:
    """Get the default backup directory path.

    ABOUTME: Returns ~/.mcpsync/backups
    ABOUTME: Does not create the directory
    """
    return Path.home() / ".mcpsync" / "backups"


def cleanup_old_backups(
    backup_dir: Path, max_backups_per_label: int = MAX_BACKUPS_PER_LABEL
) -> list[Path]:
    """Remove old backup files, keeping only the most recent per label.

    ABOUTME: Groups backups by label prefix (before _timestamp)
    ABOUTME: Logs warnings on errors but does not raise exceptions

    Args:
        backup_dir: Directory containing backup files
        max_backups_per_label: Maximum backups to keep per label

    Returns:
        List of paths that were deleted
    """
    deleted_files: list[Path] = []

    if not backup_dir.exists():
        return deleted_files

    backups_by_label: dict[str, list[tuple[str, Path]]] = {}

    for file_path in backup_dir.iterdir():
        if not file_path.is_file():
            continue

        match = BACKUP_PATTERN.match(file_path.name)
        if not match:
            continue

        backups_by_label.setdefault(match.group(1), []).append((match.group(2), file_path))

    for backups in backups_by_label.values():
        # Newest first
        backups.sort(key=lambda x: x[0], reverse=True)

        for _, file_path in backups[max_backups_per_label:]:
            try:
                file_path.unlink()
                deleted_files.append(file_path)
                logger.debug(f"Deleted old backup: {file_path}")
            except OSError as e:
                logger.warning(f"Failed to delete old backup {file_path}: {e}")

    return deleted_files


def backup_files(files: dict[str, Path | None], backup_dir: Path) -> dict[str, Path]:
    """Back up several config files, one backup per label.

    ABOUTME: Labels with no path or a missing file are skipped

    Args:
        files: Label to file path, e.g. {"unified": ..., "claude": ...}
        backup_dir: Directory where backups should be created

    Returns:
        Label to created backup path
    """
    created: dict[str, Path] = {}
    for label, source_path in files.items():
        if source_path is None or not source_path.exists():
            logger.debug(f"No config file for {label}, nothing to back up")
            continue
        created[label] = create_backup(source_path, backup_dir, label=label)
    return created
