"""Record codec and key scheme.

Owner and Survey records live in the state store as canonical JSON under
plain keys:

- an Owner under its name
- a Survey under the decimal string of its survey number
- the two indices and the init marker under reserved keys (see config)

Decoding never raises for bad state. Absent, undecodable or schema-invalid
bytes decode to None (or an empty index), and the caller treats that as
"no such record". Legacy state written with zero values is accepted:
``aadhar: 0`` decodes as unset and ``null`` lists decode as empty.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from landledger.observability import LedgerLayer, get_logger

logger = get_logger("codec", LedgerLayer.CODEC)

SCHEMA_DIR = Path(__file__).resolve().parent / "schemas"

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


@dataclass
class Owner:
    """A land owner, keyed by name."""
    name: str
    aadhar: Optional[int] = None
    survey_numbers: List[int] = field(default_factory=list)

    def holds(self, survey_no: int) -> bool:
        return survey_no in self.survey_numbers

    def add_survey(self, survey_no: int) -> None:
        self.survey_numbers.append(survey_no)

    def remove_survey(self, survey_no: int) -> None:
        """Remove one occurrence, keeping the order of the rest. ValueError if absent."""
        self.survey_numbers.remove(survey_no)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "aadhar": self.aadhar,
            "surveyNumbers": list(self.survey_numbers),
        }


@dataclass
class Survey:
    """A surveyed parcel, keyed by survey number.

    ``owners`` is the ownership history: every buyer is appended and no
    name is ever removed, so the last entry is the current holder.
    """
    survey_no: int
    area: int
    location: str
    owners: List[str] = field(default_factory=list)

    @property
    def current_owner(self) -> Optional[str]:
        return self.owners[-1] if self.owners else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "surveyNo": self.survey_no,
            "area": self.area,
            "location": self.location,
            "owners": list(self.owners),
        }


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------

def owner_key(name: str) -> str:
    return name


def survey_key(survey_no: int) -> str:
    return str(int(survey_no))


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

@lru_cache(maxsize=1)
def _schema_registry(schema_dir: Path = SCHEMA_DIR) -> Registry:
    """Registry of the bundled schemas so cross-file $ref resolves."""
    resources = []
    for schema_path in sorted(schema_dir.glob("*.schema.json")):
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
        resource = Resource.from_contents(schema, default_specification=DRAFT202012)
        resources.append((schema["$id"], resource))
    return Registry().with_resources(resources)


@lru_cache(maxsize=None)
def schema_validator(name: str) -> Draft202012Validator:
    """Cached validator for ``schemas/<name>.schema.json``."""
    schema_path = SCHEMA_DIR / f"{name}.schema.json"
    schema = json.loads(schema_path.read_text(encoding="utf-8"))
    return Draft202012Validator(schema, registry=_schema_registry())


def schema_errors(obj: Any, name: str) -> List[str]:
    return [f"{e.json_path}: {e.message}" for e in schema_validator(name).iter_errors(obj)]


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def canonical_json_bytes(obj: Any) -> bytes:
    """Sorted keys, no whitespace, UTF-8. Floats are rejected."""
    def _reject_floats(o: Any, path: str = "") -> None:
        if isinstance(o, float):
            raise ValueError(f"Float not allowed in canonical JSON at {path}")
        if isinstance(o, dict):
            for k, v in o.items():
                _reject_floats(v, f"{path}.{k}")
        if isinstance(o, list):
            for i, v in enumerate(o):
                _reject_floats(v, f"{path}[{i}]")

    _reject_floats(obj)
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")


def encode_owner(owner: Owner) -> bytes:
    return canonical_json_bytes(owner.to_dict())


def encode_survey(survey: Survey) -> bytes:
    return canonical_json_bytes(survey.to_dict())


def encode_index(entries: List[Any]) -> bytes:
    return canonical_json_bytes(list(entries))


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def _load(raw: Optional[bytes], key: str, kind: str) -> Any:
    """Parse JSON and validate it. Returns None when either step fails."""
    if raw is None or raw == b"":
        return None
    try:
        obj = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("undecodable state treated as absent", key=key, kind=kind, reason=str(e))
        return None
    errors = schema_errors(obj, kind)
    if errors:
        logger.warning("invalid state treated as absent", key=key, kind=kind, reason=errors[0])
        return None
    return obj


def decode_owner(raw: Optional[bytes], name: str) -> Optional[Owner]:
    """Decode the owner stored under ``name``; None if there is no usable record."""
    obj = _load(raw, owner_key(name), "owner")
    if obj is None:
        return None
    aadhar = obj.get("aadhar")
    return Owner(
        name=obj.get("name") or name,
        aadhar=int(aadhar) if aadhar else None,
        survey_numbers=[int(n) for n in obj.get("surveyNumbers") or []],
    )


def decode_survey(raw: Optional[bytes], survey_no: int) -> Optional[Survey]:
    obj = _load(raw, survey_key(survey_no), "survey")
    if obj is None:
        return None
    return Survey(
        survey_no=int(obj.get("surveyNo") or survey_no),
        area=int(obj["area"]),
        location=obj.get("location") or "",
        owners=list(obj.get("owners") or []),
    )


def decode_owner_index(raw: Optional[bytes], key: str = "owner index") -> List[str]:
    obj = _load(raw, key, "owner-index")
    return list(obj or [])


def decode_survey_index(raw: Optional[bytes], key: str = "survey index") -> List[int]:
    obj = _load(raw, key, "survey-index")
    return [int(n) for n in obj or []]


def quote_wrap(payload: bytes) -> bytes:
    """Legacy single-quote framing of single-record query results."""
    return b"'" + payload + b"'"
