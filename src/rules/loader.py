"""
Rules loader.

rules.yaml may be plain YAML or a markdown document carrying one
```yaml fenced block; only that block is read.
"""

from pathlib import Path

import yaml
from pydantic import ValidationError

from src.rules.models import Rules

FENCE_OPEN = "```yaml"
FENCE_CLOSE = "```"


def extract_yaml(content: str) -> str:
    """The first fenced yaml block, or the whole text when there is none."""
    lines = content.splitlines()
    starts = [i for i, line in enumerate(lines) if line.strip().startswith(FENCE_OPEN)]
    if not starts:
        return content

    body = []
    for line in lines[starts[0] + 1 :]:
        if line.strip().startswith(FENCE_CLOSE):
            break
        body.append(line)
    return "\n".join(body)


def parse_rules(content: str) -> Rules:
    """Validate rules text. Raises ValueError on bad YAML or schema."""
    try:
        data = yaml.safe_load(extract_yaml(content))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        return Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e


def load_rules(path: Path | str) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if the YAML or the schema is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")
    return parse_rules(path.read_text())
