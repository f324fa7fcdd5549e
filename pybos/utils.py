"""Utility functions and constants for pybos."""

import re
from decimal import Decimal, InvalidOperation
from pathlib import Path

# =============================================================================
# Ledger units
# =============================================================================

YOCTO_PER_NEAR: int = 10**24

GAS_PER_TERAGAS: int = 10**12

# Compute budget attached to every SocialDB ``set`` call
DEFAULT_SET_GAS: int = 300 * GAS_PER_TERAGAS

# =============================================================================
# Local component layout
# =============================================================================

COMPONENT_EXTENSION: str = ".jsx"

METADATA_EXTENSION: str = ".metadata.json"

MANIFEST_FILE_NAME: str = ".bos"

DEFAULT_SOURCE_DIR: str = "src"

_AMOUNT_RE = re.compile(r"^\s*([0-9]+(?:\.[0-9]+)?)\s*(NEAR|yoctoNEAR)?\s*$", re.I)


def parse_near_amount(value: str) -> int:
    """Parse a human-readable NEAR amount into yoctoNEAR.

    Args:
        value: Amount such as "1 NEAR", "0.5 NEAR", "1 yoctoNEAR" or a bare
            integer (interpreted as yoctoNEAR)

    Returns:
        Amount in yoctoNEAR

    Raises:
        ValueError: If the amount cannot be parsed
    """
    match = _AMOUNT_RE.match(value)
    if not match:
        raise ValueError(f"Invalid NEAR amount: {value!r}")

    number, unit = match.groups()
    if unit is None or unit.lower() == "yoctonear":
        if "." in number:
            raise ValueError(f"yoctoNEAR amount must be an integer: {value!r}")
        return int(number)

    try:
        amount = Decimal(number) * YOCTO_PER_NEAR
    except InvalidOperation as e:
        raise ValueError(f"Invalid NEAR amount: {value!r}") from e
    if amount != amount.to_integral_value():
        raise ValueError(f"NEAR amount has more than 24 decimals: {value!r}")
    return int(amount)


def format_near_amount(yocto: int) -> str:
    """Format a yoctoNEAR amount for display.

    Args:
        yocto: Amount in yoctoNEAR

    Returns:
        "0 NEAR", "1 yoctoNEAR" style string, or a trimmed decimal NEAR value
    """
    if yocto == 0:
        return "0 NEAR"
    if yocto < 1000:
        return f"{yocto} yoctoNEAR"
    whole, frac = divmod(yocto, YOCTO_PER_NEAR)
    if frac == 0:
        return f"{whole} NEAR"
    frac_str = f"{frac:024d}".rstrip("0")
    return f"{whole}.{frac_str} NEAR"


def component_name_from_path(file_path: Path, base_path: Path) -> str:
    """Derive the dotted component name of a code file.

    Args:
        file_path: Path to a ``.jsx`` file below ``base_path``
        base_path: Root of the component tree

    Returns:
        Dotted name, e.g. ``src/nav/Bar.jsx`` -> ``nav.Bar``
    """
    relative = file_path.relative_to(base_path).as_posix()
    if relative.endswith(COMPONENT_EXTENSION):
        relative = relative[: -len(COMPONENT_EXTENSION)]
    return relative.replace("/", ".")


def is_valid_component_name(name: str) -> bool:
    """Whether a name maps to a file below the component root.

    Every dot-separated segment must be non-empty and free of path separators.
    """
    return all(
        segment and "/" not in segment and "\\" not in segment
        for segment in name.split(".")
    )


def component_path_from_name(name: str, base_path: Path) -> Path:
    """Map a dotted component name to its path without extension."""
    return base_path.joinpath(*name.split("."))


def widget_key(owner: str, name: str) -> str:
    """Return the SocialDB key of a component."""
    return f"{owner}/widget/{name}"
