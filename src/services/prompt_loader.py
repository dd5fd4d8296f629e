"""Load prompt templates from the project-level ``prompts/`` directory."""

from functools import lru_cache
from pathlib import Path

# Project root (parent of src/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
PROMPTS_DIR = _PROJECT_ROOT / "prompts"


@lru_cache(maxsize=None)
def load_prompt(name: str) -> str:
    """
    Read ``prompts/<name>.md``.

    Anything above a ``---`` separator is treated as authoring notes and
    dropped.

    Raises:
        FileNotFoundError: If the template does not exist
    """
    path = PROMPTS_DIR / f"{name}.md"
    if not path.exists():
        raise FileNotFoundError(f"Prompt template not found: {path}")
    template = path.read_text(encoding="utf-8")
    if "\n---\n" in template:
        template = template.split("\n---\n", 1)[-1]
    return template.strip()


def render_prompt(name: str, **variables: object) -> str:
    """Load a template and substitute ``{{ var }}`` placeholders.

    Missing or empty values render as ``N/A``.
    """
    prompt = load_prompt(name)
    for key, value in variables.items():
        text = "N/A" if value is None or value == "" else str(value)
        prompt = prompt.replace("{{ " + key + " }}", text)
    return prompt
