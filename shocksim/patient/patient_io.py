"""
Flat JSON import/export of PatientData.

Files use the camelCase keys of the case editor (``shockType``,
``resourceLevel``); snake_case keys are accepted on import as well.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from shocksim.core.constants import DIFFICULTY_SETTINGS
from shocksim.core.enums import DistributiveSubtype, ObstructiveSubtype, ShockType
from .patient import VOLEMIA_PRELOAD, PatientData

logger = logging.getLogger(__name__)

# JSON key -> PatientData attribute
FIELD_KEYS = {
    "initials": "initials",
    "age": "age",
    "weight": "weight",
    "conditions": "conditions",
    "difficulty": "difficulty",
    "resourceLevel": "resource_level",
    "shockType": "shock_type",
    "rvs": "rvs",
    "rvp": "rvp",
    "volemia": "volemia",
    "ivs": "ivs",
    "pvc": "pvc",
    "poap": "poap",
    "distributiveSubtype": "distributive_subtype",
    "obstructiveSubtype": "obstructive_subtype",
    "ongoingBleeding": "ongoing_bleeding",
}
REQUIRED_KEYS = ("shockType", "weight", "rvs", "rvp", "volemia", "ivs", "pvc", "poap")
NUMERIC_KEYS = ("age", "weight", "rvs", "rvp", "ivs", "pvc", "poap")
POSITIVE_KEYS = ("weight", "ivs")


class PatientDataError(ValueError):
    """Patient file rejected; `problems` lists every reason."""

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        super().__init__("Invalid patient data: " + "; ".join(self.problems))


def _canonical_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    attr_to_key = {attr: key for key, attr in FIELD_KEYS.items()}
    return {attr_to_key.get(k, k): v for k, v in data.items()}


def validate_patient_dict(data: Any) -> List[str]:
    """Every problem found in a decoded patient file (empty when valid)."""
    if not isinstance(data, dict):
        return ["Patient data must be a JSON object"]
    data = _canonical_keys(data)
    problems = []

    for key in REQUIRED_KEYS:
        if key not in data:
            problems.append(f"Missing field: {key}")

    for key in NUMERIC_KEYS:
        if key in data:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                problems.append(f"Field {key} must be a number, got {value!r}")
            elif key in POSITIVE_KEYS and value <= 0:
                problems.append(f"Field {key} must be positive, got {value!r}")
            elif value < 0:
                problems.append(f"Field {key} must not be negative, got {value!r}")

    if "shockType" in data:
        try:
            ShockType.from_label(data["shockType"])
        except ValueError:
            problems.append(f"Unknown shock type: {data['shockType']!r}")

    if "volemia" in data and data["volemia"] not in VOLEMIA_PRELOAD:
        problems.append(f"Unknown volemia: {data['volemia']!r}")

    if "difficulty" in data and data["difficulty"] not in DIFFICULTY_SETTINGS:
        problems.append(f"Unknown difficulty: {data['difficulty']!r}")

    conditions = data.get("conditions", [])
    if not isinstance(conditions, list) or not all(isinstance(c, str) for c in conditions):
        problems.append("Field conditions must be a list of strings")

    for key, enum in (("distributiveSubtype", DistributiveSubtype),
                      ("obstructiveSubtype", ObstructiveSubtype)):
        value = data.get(key)
        if value is not None and value not in {m.value for m in enum}:
            problems.append(f"Unknown {key}: {value!r}")
    return problems


def patient_from_dict(data: Dict[str, Any]) -> PatientData:
    problems = validate_patient_dict(data)
    if problems:
        raise PatientDataError(problems)
    data = _canonical_keys(data)
    kwargs = {FIELD_KEYS[k]: v for k, v in data.items() if k in FIELD_KEYS}
    unknown = sorted(k for k in data if k not in FIELD_KEYS)
    if unknown:
        logger.debug("Ignoring unknown patient fields: %s", ", ".join(unknown))
    return PatientData(**kwargs)


def patient_to_dict(patient: PatientData) -> Dict[str, Any]:
    data = {}
    for key, attr in FIELD_KEYS.items():
        value = getattr(patient, attr)
        if isinstance(value, (ShockType, DistributiveSubtype, ObstructiveSubtype)):
            value = value.value
        if value is None:
            continue
        data[key] = list(value) if isinstance(value, list) else value
    return data


def load_patient(path: Union[str, Path]) -> PatientData:
    """Read a patient file. Raises PatientDataError for malformed content."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PatientDataError([f"Malformed JSON: {exc}"]) from exc
    patient = patient_from_dict(data)
    logger.info("Loaded patient %s (%s) from %s", patient.initials, patient.shock_type.value, path)
    return patient


def export_patient(patient: PatientData, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.write_text(json.dumps(patient_to_dict(patient), ensure_ascii=False, indent=2),
                    encoding="utf-8")
    return path
