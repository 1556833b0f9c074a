# app/utils/lifecycle.py
# 案件 / 出價的狀態規則 (純函式，不碰資料庫)
from typing import Dict, FrozenSet

from app.models.project import ProjectStatusEnum
from app.models.bid import BidStatusEnum

# 案件狀態轉移表：key 為目前狀態，value 為可轉移的目標狀態
PROJECT_STATUS_TRANSITIONS: Dict[ProjectStatusEnum, FrozenSet[ProjectStatusEnum]] = {
    ProjectStatusEnum.open: frozenset({ProjectStatusEnum.in_progress, ProjectStatusEnum.cancelled}),
    ProjectStatusEnum.in_progress: frozenset({ProjectStatusEnum.completed, ProjectStatusEnum.cancelled}),
    # 完成 / 取消後不可再變更
    ProjectStatusEnum.completed: frozenset(),
    ProjectStatusEnum.cancelled: frozenset(),
}

# 不可再修改內容的案件狀態
PROJECT_LOCKED_FOR_UPDATE = frozenset({ProjectStatusEnum.completed, ProjectStatusEnum.cancelled})
# 不可刪除的案件狀態
PROJECT_LOCKED_FOR_DELETE = frozenset({ProjectStatusEnum.in_progress})

# 雇主可以透過「更新出價狀態」設定的狀態 (還價另有專用操作)
BID_DECISION_STATUSES = frozenset({BidStatusEnum.accepted, BidStatusEnum.rejected})
# 已被處理的出價
BID_FINAL_STATUSES = frozenset({BidStatusEnum.accepted, BidStatusEnum.rejected})

PROGRESS_MIN = 0
PROGRESS_MAX = 100


def can_transition(current: ProjectStatusEnum, target: ProjectStatusEnum) -> bool:
    """target 是否在 current 的允許轉移清單中"""
    return target in PROJECT_STATUS_TRANSITIONS.get(ProjectStatusEnum(current), frozenset())


def is_terminal(status: ProjectStatusEnum) -> bool:
    return not PROJECT_STATUS_TRANSITIONS[ProjectStatusEnum(status)]


def is_valid_progress(progress: int) -> bool:
    return PROGRESS_MIN <= progress <= PROGRESS_MAX
