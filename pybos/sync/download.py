"""Download remote components into a local tree."""

import logging
from pathlib import Path

from ..exceptions import BosInvalidResponseError, BosIoError
from ..utils import (
    COMPONENT_EXTENSION,
    MANIFEST_FILE_NAME,
    METADATA_EXTENSION,
    component_path_from_name,
    is_valid_component_name,
    widget_key,
)
from .remote import RemoteComponentClient

logger = logging.getLogger(__name__)


def format_manifest(paths: dict[str, str]) -> str:
    """Render ``name=owner/widget/name@height`` lines sorted by name."""
    return "".join(f"{name}={paths[name]}\n" for name in sorted(paths))


def parse_manifest(text: str) -> dict[str, str]:
    """Parse the content of a ``.bos`` manifest file."""
    paths: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or "=" not in line:
            continue
        name, _, path = line.partition("=")
        paths[name] = path
    return paths


def download_components(
    remote: RemoteComponentClient, owner: str, dest: Path
) -> dict[str, str]:
    """Download all components of ``owner`` into ``dest``.

    Code goes to ``<dest>/<a>/<b>.jsx``, metadata (if any) to
    ``<b>.metadata.json``, and ``<dest>/.bos`` lists the remote address of
    every downloaded component.

    Args:
        remote: Remote component client
        owner: Account to download from
        dest: Local component directory

    Returns:
        Mapping component name -> ``owner/widget/name@blockHeight``
        (empty if the owner has no components)

    Raises:
        BosRpcError: If the remote state cannot be fetched, or a component
            name has an empty segment
        BosIoError: If files cannot be written
    """
    heights = remote.fetch_block_heights(owner)
    if not heights:
        logger.debug(f"No components found for <{owner}>")
        return {}

    invalid = [name for name in heights if not is_valid_component_name(name)]
    if invalid:
        raise BosInvalidResponseError(
            "Component names cannot be mapped to local files: "
            + ", ".join(repr(name) for name in sorted(invalid))
        )

    components = remote.fetch_records(owner, heights.keys())
    missing = set(heights) - set(components)
    if missing:
        raise BosInvalidResponseError(
            f"Components listed but not returned: {', '.join(sorted(missing))}"
        )

    paths: dict[str, str] = {}
    for name in sorted(heights):
        component = components[name]
        component_path = component_path_from_name(name, dest)
        code_path = component_path.with_name(component_path.name + COMPONENT_EXTENSION)
        try:
            code_path.parent.mkdir(parents=True, exist_ok=True)
            code_path.write_text(component.code, encoding="utf-8")
            if component.metadata is not None:
                metadata_path = component_path.with_name(
                    component_path.name + METADATA_EXTENSION
                )
                metadata_path.write_text(component.metadata.to_json(), encoding="utf-8")
        except OSError as e:
            raise BosIoError(f"Failed to save component {name}: {e}") from e
        paths[name] = f"{widget_key(owner, name)}@{heights[name]}"
        logger.debug(f"Saved component {name} to {code_path}")

    manifest_path = dest / MANIFEST_FILE_NAME
    try:
        manifest_path.write_text(format_manifest(paths), encoding="utf-8")
    except OSError as e:
        raise BosIoError(f"Failed to write manifest {manifest_path}: {e}") from e

    return paths
