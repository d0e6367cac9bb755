"""Prompt templates shipped in ``prompts/templates/*.txt``.

Templates use string.Template ``$name`` placeholders, so the literal JSON
braces in the response schemas need no escaping.
"""

from functools import lru_cache
from pathlib import Path
from string import Template

TEMPLATES_DIR = Path(__file__).parent / "templates"


@lru_cache(maxsize=None)
def _template(name: str) -> Template:
    path = TEMPLATES_DIR / f"{name}.txt"
    if not path.exists():
        raise FileNotFoundError(f"Prompt template not found: {path}")
    return Template(path.read_text(encoding="utf-8"))


def template_names() -> list[str]:
    return sorted(p.stem for p in TEMPLATES_DIR.glob("*.txt"))


def render(name: str, **kwargs: str) -> str:
    """Render template ``name`` with every placeholder filled.

    Raises:
        FileNotFoundError: If the template does not exist
        KeyError: If a placeholder has no value
    """
    return _template(name).substitute(**kwargs)
