"""Versioned storage format for per-dimension sub-scores.

Stored documents look like::

    {"schema_version": 2,
     "dimensions": {"specialization_match": {"score": 90, "explanation": "..."}}}

Version 1 documents predate the version tag: they are a bare mapping of five
camelCase dimensions. They are upgraded on read by ``migrate_v1_to_v2``;
nothing is ever written in the old shape.
"""

from typing import Any, Callable, Dict, Mapping, Tuple

from pydantic import ValidationError

from talentmatch.domain.models import DIMENSIONS, DimensionScore

from .exceptions import SubscoreSchemaError

CURRENT_SCHEMA_VERSION = 2

V1_TO_V2_NAMES = {
    "specializationMatch": "specialization_match",
    "experienceFit": "experience_fit",
    "technicalBackground": "technical_background",
    "locationMatch": "location_and_language",
    "barAdmissions": "credentials",
}


def migrate_v1_to_v2(dimensions: Mapping[str, Any]) -> Dict[str, Any]:
    """Rename the five v1 dimensions to their v2 names.

    ``leadership_and_bd`` did not exist in v1 and stays absent.

    Raises:
        SubscoreSchemaError: On a dimension name v1 never produced
    """
    migrated = {}
    for name, value in dimensions.items():
        if name not in V1_TO_V2_NAMES:
            raise SubscoreSchemaError(f"Unknown v1 sub-score dimension: {name}")
        migrated[V1_TO_V2_NAMES[name]] = value
    return migrated


# from_version -> (upgrade step, resulting version)
_MIGRATIONS: Dict[int, Tuple[Callable[[Mapping[str, Any]], Dict[str, Any]], int]] = {
    1: (migrate_v1_to_v2, 2),
}


def encode_dimensions(dimensions: Mapping[str, DimensionScore]) -> Dict[str, Any]:
    """Serialise dimension scores into a current-version document."""
    return {
        "schema_version": CURRENT_SCHEMA_VERSION,
        "dimensions": {
            name: score.model_dump(mode="json") for name, score in dimensions.items()
        },
    }


def decode_dimensions(document: Any) -> Dict[str, DimensionScore]:
    """Read a stored document of any known version into dimension scores.

    Raises:
        SubscoreSchemaError: If the version is unknown or the content invalid
    """
    if not document:
        return {}

    if not isinstance(document, dict):
        raise SubscoreSchemaError(
            f"Sub-score document must be a mapping, got {type(document).__name__}"
        )

    if "schema_version" in document:
        version = document["schema_version"]
        raw = document.get("dimensions") or {}
    else:
        version, raw = 1, document

    if not isinstance(version, int) or isinstance(version, bool):
        raise SubscoreSchemaError(f"Invalid sub-score schema version: {version!r}")
    if not isinstance(raw, dict):
        raise SubscoreSchemaError("Sub-score dimensions must be a mapping")

    while version != CURRENT_SCHEMA_VERSION:
        if version not in _MIGRATIONS:
            raise SubscoreSchemaError(f"Unsupported sub-score schema version: {version}")
        step, version = _MIGRATIONS[version]
        raw = step(raw)

    unknown = sorted(set(raw) - set(DIMENSIONS))
    if unknown:
        raise SubscoreSchemaError(f"Unknown sub-score dimensions: {', '.join(unknown)}")

    try:
        return {name: DimensionScore.model_validate(value) for name, value in raw.items()}
    except ValidationError as e:
        raise SubscoreSchemaError(f"Invalid sub-score content: {e}") from e

