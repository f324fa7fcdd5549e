"""Local component tree scanning."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..exceptions import BosIoError, BosMalformedMetadataError
from ..models import Component, ComponentMetadata, MetadataFormatError
from ..utils import COMPONENT_EXTENSION, METADATA_EXTENSION, component_name_from_path

logger = logging.getLogger(__name__)


@dataclass
class LocalComponentFile:
    """A component code file found in the local tree."""

    path: Path
    """Absolute path to the ``.jsx`` file"""

    name: str
    """Dotted component name derived from the relative path"""

    @property
    def metadata_path(self) -> Path:
        """Sibling metadata file (may not exist)."""
        stem = self.path.name[: -len(COMPONENT_EXTENSION)]
        return self.path.with_name(stem + METADATA_EXTENSION)

    def read_code(self) -> str:
        """Read the code as text.

        Code is not validated; undecodable bytes are replaced.
        """
        try:
            return self.path.read_bytes().decode("utf-8", errors="replace")
        except OSError as e:
            raise BosIoError(f"Failed to read component code {self.path}: {e}") from e

    def read_metadata(self) -> Optional[ComponentMetadata]:
        """Parse the sibling metadata file if there is one."""
        metadata_path = self.metadata_path
        if not metadata_path.is_file():
            return None
        try:
            with open(metadata_path, encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise BosIoError(
                f"Failed to read component metadata {metadata_path}: {e}"
            ) from e
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise BosMalformedMetadataError(
                f"Metadata file {metadata_path} is not valid JSON: {e}"
            ) from e
        try:
            return ComponentMetadata.from_dict(data)
        except MetadataFormatError as e:
            raise BosMalformedMetadataError(
                f"Metadata file {metadata_path} has an unexpected shape: {e}"
            ) from e


class ComponentScanner:
    """Finds component code files below a root directory."""

    def scan_local(
        self, directory: Path, base_path: Optional[Path] = None
    ) -> list[LocalComponentFile]:
        """Recursively scan a local directory for ``.jsx`` files.

        Args:
            directory: Directory to scan
            base_path: Root used to derive component names (defaults to directory)

        Returns:
            List of LocalComponentFile objects

        Raises:
            BosIoError: If a directory cannot be listed
        """
        if base_path is None:
            base_path = directory

        files: list[LocalComponentFile] = []
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            raise BosIoError(f"Failed to read directory {directory}: {e}") from e

        for item in entries:
            if item.is_dir():
                files.extend(self.scan_local(item, base_path))
            elif item.is_file() and item.name.endswith(COMPONENT_EXTENSION):
                name = component_name_from_path(item, base_path)
                logger.debug(f"Found component {name} at {item}")
                files.append(LocalComponentFile(path=item, name=name))

        return files


def load_local_records(root: Path) -> dict[str, Component]:
    """Load every component (code and optional metadata) below ``root``.

    Args:
        root: Component source directory (e.g. ``./src``)

    Returns:
        Dictionary mapping component name to Component

    Raises:
        BosIoError: If the tree cannot be read
        BosMalformedMetadataError: If a metadata file does not parse
    """
    if not root.is_dir():
        raise BosIoError(f"Component directory does not exist: {root}")

    components: dict[str, Component] = {}
    for local_file in ComponentScanner().scan_local(root):
        components[local_file.name] = Component(
            code=local_file.read_code(),
            metadata=local_file.read_metadata(),
        )

    logger.debug(f"Loaded {len(components)} local component(s) from {root}")
    return components
