"""File I/O utilities for reading/writing pipeline data.

Supports JSON and Markdown files and the workspace content tree:

    <content_dir>/workspaces/<workspace>/draft/packs/<packId>/pack.json
    <content_dir>/workspaces/<workspace>/packs/<packId>/pack.json
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)

PACK_FILENAME = "pack.json"


# ============================================================================
# JSON / Markdown
# ============================================================================


def read_json(file_path: Union[str, Path]) -> Dict[str, Any]:
    """Read JSON file and return parsed dictionary.

    Args:
        file_path: Path to JSON file

    Returns:
        Parsed JSON

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file contains invalid JSON
    """
    file_path = Path(file_path)
    logger.debug(f"Reading JSON from {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_json(
    data: Union[Dict[str, Any], List[Any]],
    file_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False,
    overwrite: bool = True,
) -> None:
    """Write data to JSON file with pretty printing and a trailing newline.

    Creates parent directories if they don't exist.

    Args:
        data: Data to write (dict or list)
        file_path: Path to output JSON file
        indent: Number of spaces for indentation (default: 2)
        ensure_ascii: If False, non-ASCII characters are preserved (default: False)
        overwrite: If False, refuse to replace an existing file

    Raises:
        FileExistsError: If overwrite is False and the file exists
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    mode = "w" if overwrite else "x"
    logger.debug(f"Writing JSON to {file_path}")

    with open(file_path, mode, encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii)
        f.write("\n")

    logger.info(f"Wrote JSON to {file_path}")


def write_markdown(
    content: str,
    file_path: Union[str, Path],
    overwrite: bool = True,
) -> None:
    """Write markdown content to a file, creating parent directories.

    Raises:
        FileExistsError: If overwrite is False and the file exists
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    with open(file_path, "w" if overwrite else "x", encoding="utf-8") as f:
        f.write(content)

    logger.info(f"Wrote {len(content)} characters to {file_path}")


def read_text(file_path: Union[str, Path]) -> str:
    """Read a UTF-8 text file.

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    file_path = Path(file_path)
    logger.debug(f"Reading text from {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        content = f.read()

    logger.info(f"Read {len(content)} characters from {file_path}")
    return content


# ============================================================================
# Workspace content tree
# ============================================================================


def draft_pack_dir(
    content_dir: Union[str, Path], workspace: str, pack_id: str
) -> Path:
    """Get the draft directory of a pack. Does not create it.

    Example:
        >>> draft_pack_dir('content/v1', 'de', 'work_ask_A2_1a2b3c4d')
        Path('content/v1/workspaces/de/draft/packs/work_ask_A2_1a2b3c4d')
    """
    return Path(content_dir) / "workspaces" / workspace / "draft" / "packs" / pack_id


def production_pack_dir(
    content_dir: Union[str, Path], workspace: str, pack_id: str
) -> Path:
    """Get the production directory of a pack. Does not create it."""
    return Path(content_dir) / "workspaces" / workspace / "packs" / pack_id


def list_files(
    directory: Union[str, Path],
    pattern: str = "*",
    recursive: bool = False,
) -> List[Path]:
    """List files in directory matching pattern, sorted by path.

    Args:
        directory: Directory to search
        pattern: Glob pattern (default: '*' = all files)
        recursive: If True, search recursively (default: False)

    Returns:
        List of Path objects matching pattern
    """
    directory = Path(directory)

    if not directory.exists():
        logger.warning(f"Directory does not exist: {directory}")
        return []

    files = directory.rglob(pattern) if recursive else directory.glob(pattern)
    files = sorted(f for f in files if f.is_file())

    logger.debug(f"Found {len(files)} files in {directory} matching '{pattern}'")
    return files
