"""Read-only curriculum endpoints for every signed-in role."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from mathtutor.common.pagination import PaginationParams, paginate, pagination_params
from mathtutor.core.app_exceptions import raise_not_found
from mathtutor.core.dependencies import CurrentAccount
from mathtutor.db.session import get_db
from mathtutor.models import ContentItem, ContentStatus, KCStatus, KnowledgeComponent
from mathtutor.schemas.curriculum import (
    ContentItemResponse,
    KnowledgeComponentResponse,
    KnowledgeComponentSequenceItem,
    KnowledgeComponentsListResponse,
)
from mathtutor.services.curriculum import question_counts

router = APIRouter(tags=["Curriculum"])


def _approved_kc(db: Session, kc_id: int) -> KnowledgeComponent:
    kc = db.get(KnowledgeComponent, kc_id)
    if kc is None or kc.status != KCStatus.APPROVED.value:
        raise_not_found("Knowledge component", kc_id)
    return kc


@router.get(
    "/knowledge-components",
    response_model=KnowledgeComponentsListResponse,
    summary="List knowledge components",
)
async def list_knowledge_components(
    current_account: CurrentAccount,
    grade_level: Optional[int] = Query(None, ge=0, le=6),
    q: Optional[str] = Query(None, max_length=100, description="Search name or code"),
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db),
) -> KnowledgeComponentsListResponse:
    stmt = select(KnowledgeComponent).where(KnowledgeComponent.status == KCStatus.APPROVED.value)
    if grade_level is not None:
        stmt = stmt.where(KnowledgeComponent.grade_level == grade_level)
    if q:
        term = f"%{q.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(KnowledgeComponent.name).like(term),
                func.lower(KnowledgeComponent.curriculum_code).like(term),
            )
        )

    kcs, total = paginate(
        db,
        stmt.order_by(
            KnowledgeComponent.grade_level,
            KnowledgeComponent.curriculum_code,
            KnowledgeComponent.id,
        ),
        pagination,
    )
    return KnowledgeComponentsListResponse(
        items=[KnowledgeComponentResponse.model_validate(kc) for kc in kcs],
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
    )


@router.get(
    "/knowledge-components/sequence",
    response_model=list[KnowledgeComponentSequenceItem],
    summary="Curriculum sequence for a grade",
    description="Approved knowledge components in curriculum-code order with their approved question counts.",
)
async def get_knowledge_component_sequence(
    current_account: CurrentAccount,
    grade_level: int = Query(..., ge=0, le=6),
    db: Session = Depends(get_db),
) -> list[KnowledgeComponentSequenceItem]:
    kcs = db.scalars(
        select(KnowledgeComponent)
        .where(
            KnowledgeComponent.grade_level == grade_level,
            KnowledgeComponent.status == KCStatus.APPROVED.value,
        )
        .order_by(KnowledgeComponent.curriculum_code, KnowledgeComponent.id)
    ).all()
    counts = question_counts(db, [kc.id for kc in kcs], ContentStatus.APPROVED.value)
    return [
        KnowledgeComponentSequenceItem(
            **KnowledgeComponentResponse.model_validate(kc).model_dump(),
            question_count=counts.get(kc.id, 0),
        )
        for kc in kcs
    ]


@router.get(
    "/knowledge-components/{kc_id}",
    response_model=KnowledgeComponentResponse,
    summary="Get knowledge component",
)
async def get_knowledge_component(
    kc_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> KnowledgeComponentResponse:
    return KnowledgeComponentResponse.model_validate(_approved_kc(db, kc_id))


@router.get(
    "/knowledge-components/{kc_id}/content-items",
    response_model=list[ContentItemResponse],
    summary="Approved questions of a knowledge component",
)
async def list_kc_content_items(
    kc_id: int,
    current_account: CurrentAccount,
    difficulty: Optional[int] = Query(None, ge=1, le=5),
    db: Session = Depends(get_db),
) -> list[ContentItemResponse]:
    _approved_kc(db, kc_id)
    stmt = select(ContentItem).where(
        ContentItem.knowledge_component_id == kc_id,
        ContentItem.status == ContentStatus.APPROVED.value,
    )
    if difficulty is not None:
        stmt = stmt.where(ContentItem.difficulty == difficulty)
    items = db.scalars(stmt.order_by(ContentItem.difficulty, ContentItem.id)).all()
    return [ContentItemResponse.model_validate(i) for i in items]


@router.get(
    "/content-items/{item_id}",
    response_model=ContentItemResponse,
    summary="Get a question",
)
async def get_content_item(
    item_id: int,
    current_account: CurrentAccount,
    db: Session = Depends(get_db),
) -> ContentItemResponse:
    item = db.get(ContentItem, item_id)
    if item is None or item.status != ContentStatus.APPROVED.value:
        raise_not_found("Content item", item_id)
    return ContentItemResponse.model_validate(item)
