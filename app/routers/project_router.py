# app/routers/project_router.py
import logging
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

# 匯入核心依賴
from app.core.database import get_db
from app.core.security import get_current_user, require_roles
from app.models.user import User, UserRoleEnum
from app.models.project import ProjectStatusEnum

# 匯入 Service 和 Schemas
from app.services.project_service import ProjectService
from app.schemas.project_schema import (
    ProjectCreate, ProjectOut, ProjectUpdate, ProjectStatusUpdate,
    ProjectProgressUpdate, ProjectListOut, ProjectStatusChangeOut
)
from app.schemas.earnings_schema import EarningsOut

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/projects",
    tags=["Projects"],
    # (重要) 該模組下的所有 API 都至少需要登入
    dependencies=[Depends(get_current_user)] 
)

@router.post(
    "/", 
    response_model=ProjectOut, 
    status_code=status.HTTP_201_CREATED
)
async def create_new_project(
    project_data: ProjectCreate, # Request Body
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRoleEnum.client))
):
    """
    刊登新案件。
    
    - (權限) 僅限「雇主」角色。
    - (資料) 最高預算需大於或等於最低預算，技能標籤至少一個。
    """
    service = ProjectService(db)
    return await service.create_project(project_data=project_data, user=current_user)

@router.get("/", response_model=ProjectListOut)
async def search_all_projects(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    status_filter: Optional[ProjectStatusEnum] = Query(None, alias="status"),
    search: Optional[str] = None,
    skill: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """
    搜尋/篩選案件 (分頁)。
    
    支援依 狀態 (精確)、關鍵字 (標題/描述模糊)、技能標籤 進行篩選。
    雇主只會看到自己刊登的案件。
    """
    logger.info(f"Project search - status: {status_filter}, search: {search}, skill: {skill}, page: {page}")

    service = ProjectService(db)
    projects, total, total_pages = await service.search_projects(
        user=current_user,
        status=status_filter,
        search=search,
        skill=skill,
        page=page,
        limit=limit,
    )
    return ProjectListOut(
        projects=projects,
        current_page=page,
        total_pages=total_pages,
        total=total,
    )

@router.get("/my", response_model=List[ProjectOut])
async def read_my_projects(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    獲取當前登入雇主自己刊登的所有案件列表。
    """
    service = ProjectService(db)
    return await service.get_my_projects(current_user)

# 拿到特定的案件詳情
@router.get("/{project_id}", response_model=ProjectOut)
async def get_project_by_id(
    project_id: str,
    db: AsyncSession = Depends(get_db)
):
    """
    獲取單一案件的詳細資料。
    """
    service = ProjectService(db)
    return await service.get_project_details(project_id)

@router.put("/{project_id}", response_model=ProjectOut)
async def update_project_details(
    project_id: str,
    project_data: ProjectUpdate, # Request Body
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRoleEnum.client))
):
    """
    (雇主) 更新案件內容。已完成 / 已取消的案件無法修改。
    """
    service = ProjectService(db)
    return await service.update_project(
        project_id=project_id,
        data=project_data,
        user=current_user
    )

@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRoleEnum.client))
):
    """
    (雇主) 刪除案件 (進行中的案件無法刪除)。
    """
    service = ProjectService(db)
    await service.delete_project(project_id, current_user)

@router.patch("/{project_id}/status", response_model=ProjectStatusChangeOut)
async def update_project_status(
    project_id: str,
    status_data: ProjectStatusUpdate, # Request Body
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRoleEnum.client))
):
    """
    (雇主) 依轉移表更新案件狀態。

    完成案件時會同時入帳；入帳失敗不影響狀態變更，
    失敗原因放在 `earnings_error`。
    """
    service = ProjectService(db)
    result = await service.change_project_status(
        project_id=project_id,
        new_status=status_data.status,
        user=current_user
    )
    return ProjectStatusChangeOut(
        project=ProjectOut.model_validate(result.project),
        earnings=EarningsOut.model_validate(result.earnings) if result.earnings else None,
        earnings_error=result.earnings_error,
    )

@router.patch("/{project_id}/progress", response_model=ProjectOut)
async def update_project_progress(
    project_id: str,
    progress_data: ProjectProgressUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles(UserRoleEnum.freelancer))
):
    """
    (得標工作者) 回報案件進度 (0~100)。
    """
    service = ProjectService(db)
    return await service.update_progress(project_id, progress_data.progress, current_user)
