import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from blogcms.rules.models import Rules

logger = logging.getLogger(__name__)


def extract_yaml_block(content: str) -> str:
    """
    Return the first ```yaml fenced block, or ``content`` when there is none.

    Lets the rules live inside a markdown document next to their prose.
    """
    block: list[str] = []
    in_block = False
    for line in content.splitlines():
        stripped = line.strip()
        if not in_block:
            in_block = stripped.startswith("```yaml")
            continue
        if stripped.startswith("```"):
            return "\n".join(block)
        block.append(line)
    return "\n".join(block) if in_block else content


def load_rules(path: str | Path) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if the file is empty, not YAML, or fails the schema.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    try:
        data = yaml.safe_load(extract_yaml_block(path.read_text()))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    if data is None:
        raise ValueError(f"Rules file is empty: {path}")

    try:
        rules = Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e

    logger.debug("Loaded rules v%s from %s", rules.project.rules_version, path)
    return rules
