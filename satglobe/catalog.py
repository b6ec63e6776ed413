"""
Satellite Catalog

Loads the static list of tracked objects ({id, name} entries). The catalog
is read once at startup and never changes for the lifetime of the process.
"""

import json
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Union

from pydantic import ValidationError

from satglobe.config import DEFAULT_CATALOG_PATH
from satglobe.exceptions import CatalogError
from satglobe.logging_config import get_logger
from satglobe.models import CatalogEntry

logger = get_logger(__name__)


def load_catalog(path: Union[str, Path] = DEFAULT_CATALOG_PATH) -> List[CatalogEntry]:
    """
    Load catalog entries from a JSON array of {id, name} objects.

    Args:
        path: Catalog file path (defaults to the bundled catalog)

    Returns:
        Entries in file order

    Raises:
        CatalogError: if the file is missing, not JSON, or has bad entries
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogError(f"Failed to read catalog {path}: {e}") from e

    if not isinstance(raw, list):
        raise CatalogError(f"Catalog {path} must contain a JSON array")

    try:
        entries = [CatalogEntry.model_validate(item) for item in raw]
    except ValidationError as e:
        raise CatalogError(f"Invalid catalog entry in {path}: {e}") from e

    logger.info(f"Loaded {len(entries)} catalog entries from {path}")
    return entries


def catalog_slice(catalog: Sequence[CatalogEntry], size: int) -> List[CatalogEntry]:
    """First ``size`` entries, in catalog order."""
    return list(catalog[:size])


def index_by_id(catalog: Iterable[CatalogEntry]) -> Dict[int, CatalogEntry]:
    return {entry.id: entry for entry in catalog}
