import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from friendlink.rules.models import Rules

_FENCED_YAML = re.compile(r"^\s*```yaml\s*$(.*?)^\s*```", re.MULTILINE | re.DOTALL)


def _yaml_source(content: str) -> str:
    """The first ```yaml fenced block if there is one, else the whole text."""
    match = _FENCED_YAML.search(content)
    return match.group(1) if match else content


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.

    Missing sections fall back to the model defaults, so an empty file is a
    valid configuration.
    Raises FileNotFoundError if the file is missing.
    Raises ValueError if the YAML, its shape, or the schema is invalid.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    try:
        data = yaml.safe_load(_yaml_source(path.read_text()))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Rules file {path} must contain a mapping of sections")

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e
