"""Risk checks for browser actions and a completeness gate before any submit."""
from __future__ import annotations

from dataclasses import dataclass, field

from autoapply.log import get_logger

log = get_logger(__name__)


@dataclass
class BrowserAction:
    type: str
    description: str
    selector: str = ""
    value: str = ""


@dataclass
class SafetyCheck:
    action: str
    risk_level: str
    requires_approval: bool
    reason: str


@dataclass
class SubmitValidation:
    can_submit: bool
    missing_fields: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


@dataclass
class FormFieldSpec:
    name: str
    label: str = ""
    required: bool = False


def evaluate_action(action: BrowserAction) -> SafetyCheck:
    kind = action.type.lower()
    desc = action.description.lower()

    if kind == "click" and ("submit" in desc or "apply" in desc):
        return SafetyCheck(action.description, "high", True, "Form submission - will apply to job")
    if kind == "upload" and ("resume" in desc or "cv" in desc):
        return SafetyCheck(action.description, "high", True, "Document upload - will share resume")
    if kind in ("fill", "select") and any(k in desc for k in ("email", "phone", "salary")):
        return SafetyCheck(action.description, "medium", False, "Filling sensitive personal information")
    return SafetyCheck(action.description, "low", False, "Standard form interaction")


def detect_suspicious_patterns(form_data: dict[str, str]) -> list[str]:
    warnings: list[str] = []
    values = [v for v in form_data.values() if isinstance(v, str)]
    if not values:
        return warnings
    if any(len(v) > 500 for v in values):
        warnings.append("Unusually long response - might be copy-pasted")
    if len(values) > 1 and len(set(values)) == 1:
        warnings.append("All fields have identical values")
    return warnings


def validate_before_submit(fields: list[FormFieldSpec], filled: dict[str, str]) -> SubmitValidation:
    missing = [f.label or f.name for f in fields if f.required and not filled.get(f.name)]
    warnings: list[str] = []
    if len(filled) < 3:
        warnings.append("Very few fields filled - form may be incomplete")
    if not any(isinstance(v, str) and "@" in v for v in filled.values()):
        warnings.append("No email address detected in form")
    warnings.extend(detect_suspicious_patterns(filled))
    for w in warnings:
        log.warning("[SECURITY] %s", w)
    return SubmitValidation(can_submit=not missing, missing_fields=missing, warnings=warnings)
