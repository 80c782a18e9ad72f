from __future__ import annotations
import logging
import os
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .settings import settings

logger = logging.getLogger(__name__)

TMP_PREFIX = "testcraft-"


@contextmanager
def scoped_temp_file(data: bytes, suffix: str = "", directory: Optional[str] = None) -> Iterator[str]:
	"""Write ``data`` to a scratch file and yield its path; the file is
	removed on every exit path."""
	directory = directory or settings.tmp_dir
	Path(directory).mkdir(parents=True, exist_ok=True)
	fd, path = tempfile.mkstemp(prefix=TMP_PREFIX, suffix=suffix, dir=directory)
	try:
		with os.fdopen(fd, "wb") as fh:
			fh.write(data)
		yield path
	finally:
		try:
			os.remove(path)
		except FileNotFoundError:
			pass


def purge_stale_temp_files(directory: Optional[str] = None, max_age_hours: Optional[int] = None) -> int:
	"""Remove scratch files left behind by a crashed process."""
	root = Path(directory or settings.tmp_dir)
	if not root.is_dir():
		return 0
	hours = settings.tmp_file_max_age_hours if max_age_hours is None else max_age_hours
	threshold = time.time() - hours * 3600
	removed = 0
	for entry in root.glob(f"{TMP_PREFIX}*"):
		try:
			if entry.is_file() and entry.stat().st_mtime < threshold:
				entry.unlink()
				removed += 1
		except OSError as exc:
			logger.warning("Could not remove stale temp file %s: %s", entry, exc)
	if removed:
		logger.info("Removed %d stale temp files from %s", removed, root)
	return removed
