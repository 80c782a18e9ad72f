from __future__ import annotations
from pathlib import Path, PurePosixPath

from .settings import settings

# URL prefix the app serves the storage root under
PUBLIC_MOUNT = "/files"


class LocalObjectStorage:
	"""Directory-backed object store whose objects are publicly readable
	through the app's ``/files`` mount."""

	def __init__(self, root: str, public_base_url: str) -> None:
		self.root = Path(root).resolve()
		self.public_base_url = public_base_url.rstrip("/")

	def _resolve(self, path: str) -> Path:
		parts = PurePosixPath(path).parts
		if not parts or any(p in ("..", "/") for p in parts):
			raise ValueError(f"Invalid object path: {path!r}")
		return self.root.joinpath(*parts)

	def upload(self, path: str, data: bytes) -> str:
		target = self._resolve(path)
		target.parent.mkdir(parents=True, exist_ok=True)
		target.write_bytes(data)
		return self.public_url(path)

	def download(self, path: str) -> bytes:
		return self._resolve(path).read_bytes()

	def public_url(self, path: str) -> str:
		return f"{self.public_base_url}{PUBLIC_MOUNT}/{path}"


def object_prefix(test_id: str) -> str:
	return f"test-{test_id}"


def get_storage() -> LocalObjectStorage:
	return LocalObjectStorage(settings.storage_dir, settings.public_base_url)
