"""Minimum-field contract per action, read from ACTION_SPECS."""

from ..tools.models import ACTION_SPECS, ACTIONABLE_CONFIDENCE, ParsedCommand

_REFERENCE_QUESTIONS = {
    "title": "Which {entity}?",
    "courseName": "Which course?",
    "videoNumber": "Which video number?",
    "priority": "What priority: high, medium or low?",
    "progress": "What progress percentage?",
}


def _present(value) -> bool:
    return value is not None and value != ""


def missing_fields(action: str, parameters: dict | None) -> list[str]:
    """Required groups with no value; alternatives are joined with "|"."""
    spec = ACTION_SPECS.get(action)
    if spec is None:
        return []
    parameters = parameters or {}
    missing = []
    for group in spec.required:
        if not any(_present(parameters.get(name)) for name in group):
            missing.append("|".join(group))
    return missing


def is_valid(action: str, parameters: dict | None) -> bool:
    if action not in ACTION_SPECS:
        return False
    return not missing_fields(action, parameters)


def is_actionable(command: ParsedCommand | None) -> bool:
    if command is None:
        return False
    return command.confidence >= ACTIONABLE_CONFIDENCE and is_valid(command.action, command.parameters)


def clarification_question(command: ParsedCommand) -> str | None:
    missing = missing_fields(command.action, command.parameters)
    if not missing:
        return None
    first = missing[0].split("|")[0]
    if command.action.startswith("create_") and first == "title":
        return f"What should the new {command.entity} be called?"
    return _REFERENCE_QUESTIONS.get(first, "Could you say that again with more detail?").format(
        entity=command.entity
    )
