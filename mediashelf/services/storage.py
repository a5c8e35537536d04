"""Local file storage rooted at a single directory (normally UPLOAD_FOLDER)."""

import logging
import os

logger = logging.getLogger(__name__)


class LocalFileStorage:
    """Stores files under ``root`` addressed by forward-slash relative paths."""

    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def path_for(self, relative_path: str) -> str:
        """
        Resolve a relative path to an absolute one inside the storage root.

        Raises:
            ValueError: if the path escapes the storage root
        """
        full_path = os.path.abspath(os.path.join(self.root, relative_path))
        if os.path.commonpath([self.root, full_path]) != self.root:
            raise ValueError(f"Path escapes storage root: {relative_path}")
        return full_path

    def save(self, relative_path: str, content: bytes) -> str:
        full_path = self.path_for(relative_path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, 'wb') as f:
            f.write(content)
        logger.debug(f"LocalFileStorage: wrote {len(content)} bytes to {relative_path}")
        return relative_path

    def exists(self, relative_path: str) -> bool:
        try:
            return os.path.isfile(self.path_for(relative_path))
        except ValueError:
            return False

    def delete(self, relative_path: str) -> bool:
        """Remove a stored file. Returns False when there was nothing to remove."""
        try:
            os.remove(self.path_for(relative_path))
        except (FileNotFoundError, ValueError):
            return False
        logger.debug(f"LocalFileStorage: deleted {relative_path}")
        return True
