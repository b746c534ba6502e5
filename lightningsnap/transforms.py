"""Key-value transformations recorded on snapshot DBIs."""

from __future__ import annotations

import json

# The transform recorded for the current dupsort_hack key-value encoding.
TRANSFORM_DUPSORT_HACK_V1 = "dupsort_hack_v1"
# No transformation.
TRANSFORM_NONE = ""

# LMDB's MDB_DUPSORT database flag.
DUPSORT = 0x04

_SUPPORTED = frozenset({TRANSFORM_NONE, TRANSFORM_DUPSORT_HACK_V1})


class TransformError(ValueError):
    """Raised when a DBI's transform does not fit its flags or schema."""


def _q(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def transform_supported(transform: str) -> bool:
    """Return whether ``transform`` is a known transform."""
    return transform in _SUPPORTED


def validate_transform(dbi, format_version: int, native_schema: bool) -> None:
    """Raise TransformError unless the DBI's transform is supported and consistent."""
    dbi_name = dbi.name
    flags = dbi.flags
    transform = dbi.transform

    if not transform_supported(transform):
        raise TransformError(
            f"snapshot dbi {_q(dbi_name)}: transform {_q(transform)} not supported"
        )
    if native_schema and transform != TRANSFORM_NONE:
        raise TransformError(
            f"snapshot dbi {_q(dbi_name)}: no transforms supported "
            f"for native schema, got {_q(transform)}"
        )
    # Version 3 is the first format with the transform field.
    if format_version >= 3:
        flags_dupsort = bool(flags & DUPSORT)
        transform_dupsort = transform == TRANSFORM_DUPSORT_HACK_V1
        if flags_dupsort and not transform_dupsort:
            raise TransformError(
                f"snapshot dbi {_q(dbi_name)}: dupsort DBI flag without expected "
                f"transform (got {_q(transform)}, expected {_q(TRANSFORM_DUPSORT_HACK_V1)})"
            )
        if not flags_dupsort and transform_dupsort:
            raise TransformError(
                f"snapshot dbi {_q(dbi_name)}: non-dupsort DBI flags with "
                f"unexpected dupsort transform (got {_q(transform)})"
            )