"""Streaming ZIP archive builder"""

import logging
import zipfile
from datetime import datetime
from typing import BinaryIO, Optional, Set, Union

from errors import SinkFailureError

logger = logging.getLogger("Asset_Export")

# Archives are for transfer/backup, so favor size over speed
COMPRESSION_LEVEL = 9
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)
# Last time a DOS date field can hold (two-second resolution)
ZIP_MAX_DATE_TIME = (2107, 12, 31, 23, 59, 58)


class _SinkWriter:
    """Forwards writes to the output sink, counting bytes and translating I/O errors.

    Deliberately exposes no tell()/seek(), so zipfile always writes in
    streaming mode (data descriptors after each entry) and every byte goes
    straight to the sink in order.
    """

    def __init__(self, sink: BinaryIO):
        self._sink = sink
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        try:
            written = self._sink.write(data)
        except (OSError, ValueError) as e:
            raise SinkFailureError("Failed to write to export sink", details=str(e)) from e
        self.bytes_written += len(data)
        return len(data) if written is None else written

    def flush(self):
        flush = getattr(self._sink, "flush", None)
        if flush is None:
            return
        try:
            flush()
        except (OSError, ValueError) as e:
            raise SinkFailureError("Failed to flush export sink", details=str(e)) from e


def _zip_date_time(timestamp: Optional[datetime]):
    if timestamp is None:
        timestamp = datetime.now()
    date_time = timestamp.timetuple()[:6]
    if date_time < ZIP_EPOCH:
        return ZIP_EPOCH
    if date_time > ZIP_MAX_DATE_TIME:
        return ZIP_MAX_DATE_TIME
    return date_time


class ArchiveBuilder:
    """Writes a ZIP archive entry by entry into a byte sink.

    Usage::

        builder = ArchiveBuilder()
        builder.open(sink)
        builder.append("assets/hero.png", data, timestamp)
        builder.finalize()

    One builder serves one archive and one writer. A failed append or
    finalize leaves the builder unusable; sink failures raise SinkFailureError.
    """

    def __init__(self, compression_level: int = COMPRESSION_LEVEL):
        self.compression_level = compression_level
        self._zip: Optional[zipfile.ZipFile] = None
        self._writer: Optional[_SinkWriter] = None
        self._paths: Set[str] = set()
        self._finalized = False
        self._failed = False

    @property
    def is_open(self) -> bool:
        return self._zip is not None and not self._finalized and not self._failed

    @property
    def entry_count(self) -> int:
        return len(self._paths)

    @property
    def bytes_written(self) -> int:
        return self._writer.bytes_written if self._writer else 0

    def open(self, sink: BinaryIO) -> "ArchiveBuilder":
        if self._zip is not None:
            raise RuntimeError("Archive already opened")
        self._writer = _SinkWriter(sink)
        self._zip = zipfile.ZipFile(
            self._writer,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self.compression_level,
        )
        logger.debug("Opened archive stream")
        return self

    def append(self, path: str, data: Union[bytes, str], timestamp: Optional[datetime] = None):
        """Add one entry. Callers keep paths unique; a repeated path is written again."""
        if not self.is_open:
            raise RuntimeError("Archive is not open for writing")

        if path in self._paths:
            logger.warning(f"Duplicate archive entry {path}; the later entry wins")
        info = zipfile.ZipInfo(path, date_time=_zip_date_time(timestamp))
        info.external_attr = 0o644 << 16

        try:
            self._zip.writestr(
                info,
                data,
                compress_type=zipfile.ZIP_DEFLATED,
                compresslevel=self.compression_level,
            )
        except Exception:
            self._abandon()
            raise
        self._paths.add(path)
        logger.debug(f"Appended archive entry {path} ({len(data)} bytes)")

    def finalize(self) -> int:
        """Write the central directory and flush. Returns total bytes written."""
        if not self.is_open:
            raise RuntimeError("Archive is not open for writing")
        try:
            self._zip.close()
            self._writer.flush()
        except Exception:
            self._abandon()
            raise
        self._finalized = True
        logger.info(f"Finalized archive: {self.entry_count} entries, {self.bytes_written} bytes")
        return self.bytes_written

    def _abandon(self):
        self._failed = True
        # Drop the broken stream so ZipFile.close() does not write to it again
        self._zip.fp = None
