# ============================================================================
# src/allergy_scribe/schema/fields.py
# ============================================================================
"""
Schema Field Descriptors

The clinical extraction schema is a tree of tagged field descriptors:

    StringField  - free text
    BooleanField - true/false
    EnumField    - closed set of string values
    RecordField  - named sub-fields (ordered)
    ArrayField   - list of one item type

Descriptors carry no business logic. Validation, JSON Schema export and
path-addressed edits all walk this tree.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class FieldKind(str, Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    ENUM = "enum"
    RECORD = "record"
    ARRAY = "array"


@dataclass(frozen=True)
class FieldSpec:
    """Base descriptor. `nullable` means null is a legal value."""
    nullable: bool = True
    description: Optional[str] = None

    kind = None

    def describe(self) -> str:
        """Short human-readable description of the expected shape."""
        raise NotImplementedError


@dataclass(frozen=True)
class StringField(FieldSpec):
    kind = FieldKind.STRING

    def describe(self) -> str:
        return "string or null" if self.nullable else "string (required)"


@dataclass(frozen=True)
class BooleanField(FieldSpec):
    default: Optional[bool] = None

    kind = FieldKind.BOOLEAN

    def describe(self) -> str:
        return "boolean or null" if self.nullable else "boolean"


@dataclass(frozen=True)
class EnumField(FieldSpec):
    """
    Closed set of values.

    When `default` is set, an absent or null value normalizes to it. The
    default is always the most conservative member (e.g. "unclear", "low").
    """
    choices: Tuple[str, ...] = ()
    default: Optional[str] = None

    kind = FieldKind.ENUM

    def __post_init__(self):
        if self.default is not None and self.default not in self.choices:
            raise ValueError(f"Default {self.default!r} not in {self.choices}")

    def describe(self) -> str:
        suffix = " or null" if self.nullable else ""
        return f"one of {list(self.choices)}{suffix}"


@dataclass(frozen=True)
class RecordField(FieldSpec):
    name: str = "record"
    fields: Dict[str, FieldSpec] = field(default_factory=dict)

    kind = FieldKind.RECORD

    def describe(self) -> str:
        keys = ", ".join(self.fields)
        suffix = " or null" if self.nullable else ""
        return f"{self.name} object {{{keys}}}{suffix}"

    def __hash__(self):
        return hash((self.name, tuple(self.fields)))


@dataclass(frozen=True)
class ArrayField(FieldSpec):
    """Arrays are never null: absence normalizes to []."""
    item: FieldSpec = field(default_factory=StringField)
    nullable: bool = False

    kind = FieldKind.ARRAY

    def describe(self) -> str:
        return f"array of {self.item.describe()}"


# ----------------------------------------------------------------------------
# Small constructors so the schema definition reads like a table
# ----------------------------------------------------------------------------

def text(required: bool = False, description: Optional[str] = None) -> StringField:
    return StringField(nullable=not required, description=description)


def flag(default: bool = False, description: Optional[str] = None) -> BooleanField:
    return BooleanField(nullable=False, default=default, description=description)


def one_of(
    *choices: str,
    default: Optional[str] = None,
    nullable: bool = True,
    description: Optional[str] = None
) -> EnumField:
    return EnumField(
        nullable=nullable,
        choices=tuple(choices),
        default=default,
        description=description,
    )


def list_of(item: FieldSpec, description: Optional[str] = None) -> ArrayField:
    return ArrayField(item=item, description=description)


def record(
    type_name: str,
    fields: Dict[str, FieldSpec],
    nullable: bool = True,
    description: Optional[str] = None
) -> RecordField:
    return RecordField(name=type_name, nullable=nullable, fields=dict(fields), description=description)


def empty_value(spec: FieldSpec) -> Any:
    """
    The normalized value of an absent field.

    Arrays become [], defaulted enums/booleans their default, non-nullable
    records an empty-but-complete record, everything else None.
    """
    if isinstance(spec, ArrayField):
        return []
    if isinstance(spec, (EnumField, BooleanField)) and spec.default is not None:
        return spec.default
    if isinstance(spec, RecordField) and not spec.nullable:
        return empty_record(spec)
    return None


def empty_record(spec: RecordField) -> Dict[str, Any]:
    """
    Build the normalized empty form of a record.

    Only valid for records without required fields; used when an edit
    descends through a record that is currently null.
    """
    return {name: empty_value(child) for name, child in spec.fields.items()}


def has_required_fields(spec: RecordField) -> bool:
    """True if an empty record of this type could not pass validation."""
    for child in spec.fields.values():
        if isinstance(child, StringField) and not child.nullable:
            return True
        if isinstance(child, EnumField) and not child.nullable and child.default is None:
            return True
    return False
