from fastapi import APIRouter, HTTPException

from classpilot.services.catalog import ActivityTemplate, get_catalog, get_template

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("", response_model=list[ActivityTemplate])
async def list_templates(
    search: str | None = None,
    tag: str | None = None,
):
    templates = list(get_catalog().values())

    if search:
        search_lower = search.lower()
        templates = [
            t
            for t in templates
            if search_lower in t.title.lower() or search_lower in t.description.lower()
        ]

    if tag:
        templates = [t for t in templates if tag in t.tags]

    return templates


@router.get("/{template_id}", response_model=ActivityTemplate)
async def get_template_detail(template_id: str):
    template = get_template(template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found in catalog")
    return template
