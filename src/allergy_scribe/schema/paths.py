# ============================================================================
# src/allergy_scribe/schema/paths.py
# ============================================================================
"""
Dotted field paths.

"allergyHistory.food.0.severity" parses into typed accessors:

    [Key("allergyHistory"), Key("food"), Index(0), Key("severity")]

and resolves against the descriptor tree, so a path is known to be
addressable before any record is touched.
"""

from dataclasses import dataclass
from typing import List, Tuple, Union

from .fields import ArrayField, FieldSpec, RecordField


class PathError(ValueError):
    """Path is malformed or does not exist in the schema."""
    pass


@dataclass(frozen=True)
class Key:
    name: str

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class Index:
    position: int

    def __str__(self):
        return str(self.position)


Accessor = Union[Key, Index]


def parse_path(path: str) -> List[Accessor]:
    """
    Split a dotted path into accessors. Purely numeric segments are indices.

    Raises:
        PathError: empty path or empty segment ("a..b", ".a")
    """
    if not isinstance(path, str) or not path.strip():
        raise PathError("path is empty")

    accessors: List[Accessor] = []
    for segment in path.strip().split("."):
        if not segment:
            raise PathError(f"empty segment in '{path}'")
        if segment.isascii() and segment.isdigit():
            accessors.append(Index(int(segment)))
        else:
            accessors.append(Key(segment))
    return accessors


def resolve_spec(root: RecordField, accessors: List[Accessor]) -> Tuple[FieldSpec, List[FieldSpec]]:
    """
    Walk the schema along the accessors.

    Returns:
        (descriptor at the path, descriptors of every container on the way)

    Raises:
        PathError: key not in a record, index into a non-array, or any
            accessor applied to a scalar
    """
    spec: FieldSpec = root
    trail: List[FieldSpec] = []
    walked: List[str] = []

    for accessor in accessors:
        where = ".".join(walked) or "<root>"
        trail.append(spec)

        if isinstance(accessor, Key):
            if not isinstance(spec, RecordField):
                raise PathError(f"'{where}' is not an object; cannot select '{accessor.name}'")
            if accessor.name not in spec.fields:
                raise PathError(f"'{accessor.name}' is not a field of {spec.name}")
            spec = spec.fields[accessor.name]
        else:
            if not isinstance(spec, ArrayField):
                raise PathError(f"'{where}' is not an array; cannot index [{accessor.position}]")
            spec = spec.item

        walked.append(str(accessor))

    return spec, trail


def join_path(accessors: List[Accessor]) -> str:
    return ".".join(str(a) for a in accessors)
