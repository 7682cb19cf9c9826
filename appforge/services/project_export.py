"""
Project Export - zip archive of the merged file set

Every path in the merged set (defaults included) becomes one archive entry
named after the path without its leading "/", so the download runs on its
own with `npm install && npm run dev`.
"""

import io
import re
import zipfile

from appforge.core.logging_config import logger
from appforge.services.file_set import FileSet

LEADING_SLASH = re.compile(r"^/")


def archive_name(path: str) -> str:
    """FilePath -> zip entry name"""
    return LEADING_SLASH.sub("", path)


def sanitize_archive_filename(name: str, default: str = "project.zip") -> str:
    """Keep download filenames filesystem-safe"""
    stem = name[:-4] if name.lower().endswith(".zip") else name
    stem = "".join(c for c in stem if c.isalnum() or c in (' ', '-', '_', '.')).strip()
    return f"{stem}.zip" if stem else default


def build_project_zip(file_set: FileSet) -> bytes:
    """
    Create the archive in memory.

    Entries keep FileSet order; content is the UTF-8 encoding of the code.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as zipf:
        for path, code in file_set.items_ordered():
            zipf.writestr(archive_name(path), code.encode("utf-8"))

    data = buffer.getvalue()
    logger.info(f"[Export] Built archive with {len(file_set)} files ({len(data)} bytes)")
    return data
