import json
from pathlib import Path

from pydantic import BaseModel

from classpilot.schemas.activity import ActivityType


class ActivityTemplate(BaseModel):
    template_id: str
    title: str
    type: ActivityType
    description: str
    instructions: str = ""
    tags: list[str] = []


# In-memory catalog loaded at startup
_catalog: dict[str, ActivityTemplate] = {}

TEMPLATES_FILE = Path(__file__).resolve().parent.parent / "data" / "templates.json"


def load_catalog(templates_file: Path | None = None) -> dict[str, ActivityTemplate]:
    global _catalog
    _catalog = {}
    path = templates_file or TEMPLATES_FILE
    if not path.exists():
        return _catalog

    for data in json.loads(path.read_text(encoding="utf-8")):
        # Handle camelCase keys from the shared JSON files
        template = ActivityTemplate(
            template_id=data.get("templateId", ""),
            title=data.get("title", ""),
            type=data.get("type", "assignment"),
            description=data.get("description", ""),
            instructions=data.get("instructions", ""),
            tags=data.get("tags", []),
        )
        _catalog[template.template_id] = template

    return _catalog


def get_catalog() -> dict[str, ActivityTemplate]:
    if not _catalog:
        load_catalog()
    return _catalog


def get_template(template_id: str) -> ActivityTemplate | None:
    return get_catalog().get(template_id)
