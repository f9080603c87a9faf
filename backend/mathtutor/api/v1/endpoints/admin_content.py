"""Admin endpoints for managing knowledge components and content items."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from mathtutor.common.pagination import PaginationParams, paginate, pagination_params
from mathtutor.core.app_exceptions import raise_not_found
from mathtutor.core.dependencies import require_roles
from mathtutor.core.logging import get_logger
from mathtutor.db.session import get_db
from mathtutor.models import AccountRole, ContentItem, KnowledgeComponent
from mathtutor.models.accounts import AccountMixin
from mathtutor.schemas.curriculum import (
    BulkContentItemsCreate,
    ContentItemCreate,
    ContentItemResponse,
    ContentItemsListResponse,
    ContentItemUpdate,
    ContentStatusName,
    ContentTypeName,
    DeleteMultipleRequest,
    DeleteMultipleResponse,
    KCStatusName,
    KnowledgeComponentCreate,
    KnowledgeComponentResponse,
    KnowledgeComponentsListResponse,
    KnowledgeComponentUpdate,
)
from mathtutor.services import curriculum

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin - Content"])

admin_only = require_roles(AccountRole.ADMIN)


# ============================================================================
# Knowledge components
# ============================================================================


def _get_kc(db: Session, kc_id: int) -> KnowledgeComponent:
    kc = db.get(KnowledgeComponent, kc_id)
    if kc is None:
        raise_not_found("Knowledge component", kc_id)
    return kc


@router.get(
    "/knowledge-components",
    response_model=KnowledgeComponentsListResponse,
    summary="List knowledge components (any status)",
)
async def admin_list_knowledge_components(
    grade_level: Optional[int] = Query(None, ge=0, le=6),
    kc_status: Optional[KCStatusName] = Query(None, alias="status"),
    q: Optional[str] = Query(None, max_length=100),
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> KnowledgeComponentsListResponse:
    stmt = select(KnowledgeComponent)
    if grade_level is not None:
        stmt = stmt.where(KnowledgeComponent.grade_level == grade_level)
    if kc_status:
        stmt = stmt.where(KnowledgeComponent.status == kc_status)
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
    "/knowledge-components/{kc_id}",
    response_model=KnowledgeComponentResponse,
    summary="Get knowledge component",
)
async def admin_get_knowledge_component(
    kc_id: int,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> KnowledgeComponentResponse:
    return KnowledgeComponentResponse.model_validate(_get_kc(db, kc_id))


@router.post(
    "/knowledge-components",
    response_model=KnowledgeComponentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create knowledge component",
)
async def admin_create_knowledge_component(
    request: KnowledgeComponentCreate,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> KnowledgeComponentResponse:
    # Duplicate curriculum codes surface as 409 through the IntegrityError handler
    kc = KnowledgeComponent(**request.model_dump())
    db.add(kc)
    db.commit()
    db.refresh(kc)
    logger.info("Knowledge component created", extra={"kc_id": kc.id, "code": kc.curriculum_code})
    return KnowledgeComponentResponse.model_validate(kc)


@router.put(
    "/knowledge-components/{kc_id}",
    response_model=KnowledgeComponentResponse,
    summary="Update knowledge component",
)
async def admin_update_knowledge_component(
    kc_id: int,
    request: KnowledgeComponentUpdate,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> KnowledgeComponentResponse:
    kc = _get_kc(db, kc_id)
    for field, value in request.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(kc, field, value)
    db.commit()
    db.refresh(kc)
    return KnowledgeComponentResponse.model_validate(kc)


@router.delete(
    "/knowledge-components/{kc_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete knowledge component",
    description="Questions of the component are kept and detached; knowledge states are removed.",
)
async def admin_delete_knowledge_component(
    kc_id: int,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> None:
    db.delete(_get_kc(db, kc_id))
    db.commit()


@router.post(
    "/knowledge-components/delete-multiple",
    response_model=DeleteMultipleResponse,
    summary="Delete several knowledge components",
)
async def admin_delete_knowledge_components(
    request: DeleteMultipleRequest,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> DeleteMultipleResponse:
    deleted, not_found = curriculum.delete_many(db, KnowledgeComponent, request.ids)
    return DeleteMultipleResponse(deleted=deleted, not_found=not_found)


# ============================================================================
# Content items
# ============================================================================


def _get_item(db: Session, item_id: int) -> ContentItem:
    item = db.get(ContentItem, item_id)
    if item is None:
        raise_not_found("Content item", item_id)
    return item


@router.get(
    "/content-items",
    response_model=ContentItemsListResponse,
    summary="List content items",
    description="Filter by type, knowledge component, difficulty and status; "
    "search matches the question text and the knowledge component name.",
)
async def admin_list_content_items(
    item_type: Optional[ContentTypeName] = Query(None, alias="type"),
    knowledge_component_id: Optional[int] = Query(None),
    difficulty: Optional[int] = Query(None, ge=1, le=5),
    item_status: Optional[ContentStatusName] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=200),
    pagination: PaginationParams = Depends(pagination_params),
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> ContentItemsListResponse:
    stmt = select(ContentItem)
    if item_type:
        stmt = stmt.where(ContentItem.type == item_type)
    if knowledge_component_id is not None:
        stmt = stmt.where(ContentItem.knowledge_component_id == knowledge_component_id)
    if difficulty is not None:
        stmt = stmt.where(ContentItem.difficulty == difficulty)
    if item_status:
        stmt = stmt.where(ContentItem.status == item_status)
    if search:
        term = f"%{search.lower()}%"
        stmt = stmt.outerjoin(
            KnowledgeComponent, KnowledgeComponent.id == ContentItem.knowledge_component_id
        ).where(
            or_(
                func.lower(ContentItem.content).like(term),
                func.lower(KnowledgeComponent.name).like(term),
            )
        )

    items, total = paginate(db, stmt.order_by(ContentItem.id.desc()), pagination)
    return ContentItemsListResponse(
        items=[ContentItemResponse.model_validate(i) for i in items],
        page=pagination.page,
        page_size=pagination.page_size,
        total=total,
    )


@router.get(
    "/content-items/{item_id}",
    response_model=ContentItemResponse,
    summary="Get content item (any status)",
)
async def admin_get_content_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> ContentItemResponse:
    return ContentItemResponse.model_validate(_get_item(db, item_id))


@router.post(
    "/content-items",
    response_model=ContentItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create content item",
)
async def admin_create_content_item(
    request: ContentItemCreate,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> ContentItemResponse:
    item = curriculum.create_content_item(db, request.model_dump())
    return ContentItemResponse.model_validate(item)


@router.post(
    "/content-items/bulk",
    response_model=list[ContentItemResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create several content items for one knowledge component",
    description="Every item is attached to `knowledge_component_id`; "
    "a per-item `knowledge_component_id` is ignored. Nothing is created if any item is invalid.",
)
async def admin_create_content_items_bulk(
    request: BulkContentItemsCreate,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> list[ContentItemResponse]:
    items = curriculum.create_content_items(
        db, request.knowledge_component_id, [i.model_dump() for i in request.items]
    )
    return [ContentItemResponse.model_validate(i) for i in items]


@router.put(
    "/content-items/{item_id}",
    response_model=ContentItemResponse,
    summary="Update content item",
)
async def admin_update_content_item(
    item_id: int,
    request: ContentItemUpdate,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> ContentItemResponse:
    item = _get_item(db, item_id)
    item = curriculum.update_content_item(db, item, request.model_dump(exclude_unset=True))
    return ContentItemResponse.model_validate(item)


@router.delete(
    "/content-items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete content item",
)
async def admin_delete_content_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> None:
    db.delete(_get_item(db, item_id))
    db.commit()


@router.post(
    "/content-items/delete-multiple",
    response_model=DeleteMultipleResponse,
    summary="Delete several content items",
)
async def admin_delete_content_items(
    request: DeleteMultipleRequest,
    db: Session = Depends(get_db),
    current_account: AccountMixin = Depends(admin_only),
) -> DeleteMultipleResponse:
    deleted, not_found = curriculum.delete_many(db, ContentItem, request.ids)
    return DeleteMultipleResponse(deleted=deleted, not_found=not_found)
