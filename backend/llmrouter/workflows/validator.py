# /llmrouter/workflows/validator.py

"""
Pure validation functions for parsed flows.

A runnable flow has at least one step, every step has a non-empty
instruction, step orders run 1..N without gaps, and the first step does not
consume previous output.

All functions are:
- Pure (no side effects)
- Deterministic (same input = same output)
- No AI calls
- No logging
"""

from typing import Optional, TypedDict

from llmrouter.models.flow import ParsedFlow


class FlowValidationError(ValueError):
    """Raised before execution when a flow cannot be run."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ValidationResult(TypedDict):
    """Result of a validation check."""
    is_valid: bool
    error_code: Optional[str]
    message: Optional[str]


def _invalid(error_code: str, message: str) -> ValidationResult:
    return {"is_valid": False, "error_code": error_code, "message": message}


def validate_flow(flow: ParsedFlow) -> ValidationResult:
    """
    Validate a parsed flow.

    Args:
        flow: The ParsedFlow produced by the parser (or built by hand)

    Returns:
        ValidationResult with is_valid=True if the flow can be executed
    """
    if not flow.steps:
        return _invalid("EMPTY_FLOW", "Flow must contain at least one step")

    for step in flow.steps:
        if not step.instruction or not step.instruction.strip():
            return _invalid("EMPTY_INSTRUCTION", f"Step {step.order} has no instruction")

    for expected, step in enumerate(flow.steps, start=1):
        if step.order != expected:
            return _invalid(
                "STEP_ORDER",
                f"Step {step.order} is out of sequence (expected step {expected})",
            )

    if flow.steps[0].uses_previous_output:
        return _invalid("FIRST_STEP_USES_PREVIOUS", "The first step cannot use previous output")

    return {"is_valid": True, "error_code": None, "message": None}


def ensure_valid_flow(flow: ParsedFlow) -> ParsedFlow:
    """Return the flow unchanged, or raise FlowValidationError."""
    result = validate_flow(flow)
    if not result["is_valid"]:
        raise FlowValidationError(result["message"] or "Invalid flow", result["error_code"])
    return flow
