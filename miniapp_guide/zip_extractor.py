# miniapp_guide/zip_extractor.py
import io
import logging
import re
import zipfile
import zlib
from typing import Iterable, List

from miniapp_guide import app_config
from miniapp_guide.dtos import ExtractedFile
from miniapp_guide.errors import (
    ArchiveExtractionFailed,
    EmptyArchive,
    InvalidFormat,
    NoMatchingSourceFiles,
    OversizedArchive,
)

logger = logging.getLogger("miniapp_guide")

ACCEPTED_CONTENT_TYPES = {
    "application/zip",
    "application/x-zip-compressed",
    "application/octet-stream",
}

SKIPPED_SEGMENTS = {"build", ".gradle", "node_modules"}

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")


def _segments(entry_name: str) -> List[str]:
    return [s for s in re.split(r"[\\/]", entry_name) if s]


def is_unsafe_path(entry_name: str) -> bool:
    if entry_name.startswith(("/", "\\")) or _DRIVE_PREFIX.match(entry_name):
        return True
    return ".." in _segments(entry_name)


class ZipExtractor:
    """
    In-memory extraction of source files from an uploaded zip archive.

    Nothing is written to disk; entries are read straight from the archive
    bytes, filtered, and decoded as UTF-8.
    """

    def __init__(
        self,
        max_size_bytes: int = app_config.MAX_ZIP_SIZE_BYTES,
        source_extensions: Iterable[str] = app_config.SOURCE_EXTENSIONS,
    ):
        self.max_size_bytes = max_size_bytes
        self.source_extensions = tuple(e.lower() for e in source_extensions)

    def validate(self, archive_bytes: bytes | None, content_type: str | None) -> None:
        if not archive_bytes:
            raise EmptyArchive()
        if len(archive_bytes) > self.max_size_bytes:
            raise OversizedArchive(
                f"The uploaded archive exceeds the maximum allowed size of {self.max_size_bytes} bytes."
            )
        media_type = (content_type or "").split(";", 1)[0].strip().lower()
        if media_type not in ACCEPTED_CONTENT_TYPES:
            raise InvalidFormat()

    def _accept_entry(self, info: zipfile.ZipInfo) -> bool:
        name = info.filename
        if info.is_dir():
            return False
        if not name.lower().endswith(self.source_extensions):
            return False
        if SKIPPED_SEGMENTS.intersection(_segments(name)):
            logger.debug(f"[ZIP] skipping build output entry: {name}")
            return False
        if is_unsafe_path(name):
            logger.warning(f"[ZIP] path traversal attempt detected, entry skipped: {name}")
            return False
        return True

    def extract(self, archive_bytes: bytes | None, content_type: str | None = "application/zip") -> List[ExtractedFile]:
        self.validate(archive_bytes, content_type)

        files: List[ExtractedFile] = []
        try:
            with zipfile.ZipFile(io.BytesIO(archive_bytes)) as archive:
                for info in archive.infolist():
                    if not self._accept_entry(info):
                        continue
                    raw = archive.read(info)
                    files.append(
                        ExtractedFile(
                            file_name=info.filename,
                            content=raw.decode("utf-8", errors="replace"),
                            file_size=len(raw),
                        )
                    )
        except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError) as e:
            logger.error(f"[ZIP] corrupt archive: {e}")
            raise ArchiveExtractionFailed() from e

        if not files:
            raise NoMatchingSourceFiles()

        logger.info(f"[ZIP] extracted {len(files)} source file(s)")
        return files
