"""
Grading schemas: the valid grade symbols of a grading scale.

Provides:
- GradeEntry / GradeSchema data classes
- Built-in university presets
- Loading schemas from JSON
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


class SchemaError(ValueError):
    """Raised when a grading schema is malformed."""


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class GradeEntry:
    """One grade symbol of a grading scale."""
    symbol: str
    points: float = 0.0
    credit_bearing: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "points": self.points,
            "credit_bearing": self.credit_bearing,
        }


@dataclass(frozen=True)
class GradeSchema:
    """
    Ordered, immutable set of grade symbols.

    Symbols are unique ignoring case. Order matters: fuzzy symbol matching
    accepts the first entry within reach.
    """
    entries: Tuple[GradeEntry, ...]
    name: str = ""
    _by_symbol: Dict[str, GradeEntry] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self):
        # Accept any iterable but store a tuple
        object.__setattr__(self, "entries", tuple(self.entries))
        index = {}
        for entry in self.entries:
            symbol = entry.symbol.strip()
            if not symbol:
                raise SchemaError("Grade symbols must be non-empty")
            key = symbol.upper()
            if key in index:
                raise SchemaError(f"Duplicate grade symbol in schema {self.name!r}: {entry.symbol!r}")
            index[key] = entry
        object.__setattr__(self, "_by_symbol", index)

    @property
    def symbols(self) -> List[str]:
        return [e.symbol for e in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __contains__(self, symbol: object) -> bool:
        return isinstance(symbol, str) and symbol.strip().upper() in self._by_symbol

    def get(self, symbol: str) -> Optional[GradeEntry]:
        """Case-insensitive lookup."""
        return self._by_symbol.get(symbol.strip().upper())

    def is_credit_bearing(self, symbol: str) -> bool:
        entry = self.get(symbol)
        return entry.credit_bearing if entry is not None else True

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[Tuple[str, bool]],
        name: str = ""
    ) -> 'GradeSchema':
        """Build a schema from ``(symbol, credit_bearing)`` pairs."""
        return cls(
            entries=tuple(GradeEntry(symbol=s, credit_bearing=cb) for s, cb in pairs),
            name=name,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GradeSchema':
        grades = data.get("grades")
        if not isinstance(grades, list) or not grades:
            raise SchemaError("Schema must contain a non-empty 'grades' list")

        entries = []
        for item in grades:
            if isinstance(item, str):
                entries.append(GradeEntry(symbol=item))
                continue
            try:
                entries.append(GradeEntry(
                    symbol=str(item["symbol"]),
                    points=float(item.get("points", 0.0)),
                    credit_bearing=bool(item.get("credit_bearing", True)),
                ))
            except (KeyError, TypeError, ValueError) as e:
                raise SchemaError(f"Invalid grade entry {item!r}: {e}") from e

        return cls(entries=tuple(entries), name=str(data.get("name", "")))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "grades": [e.to_dict() for e in self.entries],
        }


# ============================================================================
# Presets
# ============================================================================

DBATU = GradeSchema(
    name="DBATU",
    entries=(
        GradeEntry("EX", 10.0), GradeEntry("AA", 9.0), GradeEntry("AB", 8.5),
        GradeEntry("BB", 8.0), GradeEntry("BC", 7.5), GradeEntry("CC", 7.0),
        GradeEntry("CD", 6.5), GradeEntry("DD", 6.0), GradeEntry("DE", 5.5),
        GradeEntry("EE", 5.0), GradeEntry("EF", 0.0), GradeEntry("FF", 0.0),
        GradeEntry("AU", 0.0, credit_bearing=False),
    ),
)

SPPU = GradeSchema(
    name="SPPU",
    entries=(
        GradeEntry("O", 10.0), GradeEntry("A", 9.0), GradeEntry("B", 8.0),
        GradeEntry("C", 7.0), GradeEntry("D", 6.0), GradeEntry("E", 5.0),
        GradeEntry("F", 0.0), GradeEntry("AP", 0.0), GradeEntry("FX", 0.0),
        GradeEntry("II", 0.0),
        GradeEntry("PP", 0.0, credit_bearing=False),
        GradeEntry("NP", 0.0, credit_bearing=False),
    ),
)

PRESETS: Dict[str, GradeSchema] = {
    "DBATU": DBATU,
    "SPPU": SPPU,
}


def get_preset(name: str) -> GradeSchema:
    """Look up a built-in schema by name (case-insensitive)."""
    try:
        return PRESETS[name.strip().upper()]
    except KeyError:
        raise KeyError(
            f"Unknown grading preset: {name!r} (available: {', '.join(sorted(PRESETS))})"
        ) from None


def load_schema(source: Union[str, Path]) -> GradeSchema:
    """
    Resolve a schema from a preset name or a JSON file path.

    Args:
        source: Preset name (e.g. "DBATU") or path to a schema JSON file

    Returns:
        GradeSchema

    Raises:
        KeyError: Unknown preset and no such file
        SchemaError: The JSON file does not describe a valid schema
    """
    path = Path(source)
    if path.suffix.lower() == ".json" or path.exists():
        from .io import load_json
        schema = GradeSchema.from_dict(load_json(path))
        if not schema.name:
            schema = GradeSchema(entries=schema.entries, name=path.stem)
        logger.info(f"Loaded schema {schema.name!r} with {len(schema)} grades from {path}")
        return schema

    return get_preset(str(source))
