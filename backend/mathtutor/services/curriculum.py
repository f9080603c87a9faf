"""Curriculum writes shared by the admin and teacher endpoints."""

from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from mathtutor.core.app_exceptions import raise_bad_request
from mathtutor.core.logging import get_logger
from mathtutor.db.base import Base
from mathtutor.models import ContentItem, KnowledgeComponent

logger = get_logger(__name__)

NULLABLE_ITEM_FIELDS = frozenset(
    {"options", "correct_answer", "explanation", "knowledge_component_id"}
)


def ensure_knowledge_component(db: Session, kc_id: int | None) -> None:
    """400 when a referenced knowledge component does not exist."""
    if kc_id is not None and db.get(KnowledgeComponent, kc_id) is None:
        raise_bad_request(
            f"Knowledge component {kc_id} does not exist",
            {"knowledge_component_id": kc_id},
        )


def create_content_item(
    db: Session, data: dict[str, Any], teacher_id: int | None = None
) -> ContentItem:
    ensure_knowledge_component(db, data.get("knowledge_component_id"))
    item = ContentItem(**data, teacher_id=teacher_id)
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info(
        "Content item created",
        extra={"content_item_id": item.id, "teacher_id": teacher_id},
    )
    return item


def update_content_item(db: Session, item: ContentItem, changes: dict[str, Any]) -> ContentItem:
    # An explicit null only clears the optional columns
    changes = {k: v for k, v in changes.items() if v is not None or k in NULLABLE_ITEM_FIELDS}
    if "knowledge_component_id" in changes:
        ensure_knowledge_component(db, changes["knowledge_component_id"])
    for field, value in changes.items():
        setattr(item, field, value)
    db.commit()
    db.refresh(item)
    return item


def delete_many(db: Session, model: type[Base], ids: list[int]) -> tuple[int, list[int]]:
    """Delete rows by id in one statement. Returns (deleted, ids not found)."""
    wanted = list(dict.fromkeys(ids))
    found = set(db.scalars(select(model.id).where(model.id.in_(wanted))).all())
    if found:
        db.execute(delete(model).where(model.id.in_(found)))
    db.commit()
    logger.info(
        "Bulk delete",
        extra={"table": model.__tablename__, "deleted": len(found)},
    )
    return len(found), [i for i in wanted if i not in found]


def question_counts(db: Session, kc_ids: list[int], status: str | None = None) -> dict[int, int]:
    """Number of content items per knowledge component (one GROUP BY)."""
    if not kc_ids:
        return {}
    stmt = (
        select(ContentItem.knowledge_component_id, func.count(ContentItem.id))
        .where(ContentItem.knowledge_component_id.in_(kc_ids))
        .group_by(ContentItem.knowledge_component_id)
    )
    if status is not None:
        stmt = stmt.where(ContentItem.status == status)
    return dict(db.execute(stmt).all())


def create_content_items(
    db: Session, knowledge_component_id: int, items: list[dict[str, Any]]
) -> list[ContentItem]:
    """Create several questions for one knowledge component; all or nothing."""
    ensure_knowledge_component(db, knowledge_component_id)
    created = []
    for data in items:
        data = dict(data, knowledge_component_id=knowledge_component_id)
        hint = data.pop("hint", None)
        if hint:
            data["item_metadata"] = {**data.get("item_metadata", {}), "hint": hint}
        created.append(ContentItem(**data))
    db.add_all(created)
    db.commit()
    logger.info(
        "Content items created in bulk",
        extra={"knowledge_component_id": knowledge_component_id, "count": len(created)},
    )
    return created
