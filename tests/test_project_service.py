import json

import pytest
from sqlalchemy import func, select

from app.core.exceptions import (
    ForbiddenError, InvalidRangeError, InvalidStateError, InvalidTransitionError, NotFoundError
)
from app.core.websocket_manager import manager, project_topic
from app.models.bid import BidStatusEnum
from app.models.earnings import Earnings, EarningsStatusEnum
from app.models.project import ProjectStatusEnum
from app.models.user import UserRoleEnum
from app.repositories.earnings_repo import EarningsRepository
from app.schemas.bid_schema import BidCreate
from app.schemas.project_schema import ProjectCreate, ProjectUpdate
from app.services.bid_service import BidService
from app.services.earnings_service import EarningsService
from app.services.project_service import ProjectService


async def count_earnings(db, project_id):
    stmt = select(func.count(Earnings.earnings_id)).where(Earnings.project_id == project_id)
    return (await db.execute(stmt)).scalar_one()


async def test_full_lifecycle_reconciles_single_earnings_row(db, client_user, freelancer, make_project):
    project = await make_project(client_user, min_budget=500, max_budget=1000)
    bid_service = BidService(db)
    project_service = ProjectService(db)

    bid = await bid_service.submit_bid(
        project.project_id,
        BidCreate(
            amount=600,
            proposal="Experienced front-end developer, I can deliver a polished page in a week.",
            delivery_time=7,
        ),
        freelancer,
    )
    await bid_service.update_bid_status(bid.bid_id, BidStatusEnum.accepted, client_user)

    awarded = await project_service.get_project_details(project.project_id)
    assert awarded.status == ProjectStatusEnum.in_progress
    assert awarded.selected_freelancer_id == freelancer.user_id
    assert awarded.final_bid_amount == 600

    await project_service.update_progress(project.project_id, 100, freelancer)
    pending = await EarningsRepository(db).get_by_project_and_freelancer(project.project_id, freelancer.user_id)
    assert pending.status == EarningsStatusEnum.pending
    assert pending.amount == 600

    result = await project_service.change_project_status(
        project.project_id, ProjectStatusEnum.completed, client_user
    )

    assert result.project.status == ProjectStatusEnum.completed
    assert result.project.completion_date is not None
    assert result.earnings_error is None
    assert result.earnings.earnings_id == pending.earnings_id
    assert result.earnings.status == EarningsStatusEnum.completed
    assert await count_earnings(db, project.project_id) == 1


async def test_progress_100_twice_creates_one_row(db, client_user, freelancer, make_in_progress_project):
    project = await make_in_progress_project(client_user, freelancer)
    service = ProjectService(db)

    await service.update_progress(project.project_id, 100, freelancer)
    await service.update_progress(project.project_id, 100, freelancer)

    assert await count_earnings(db, project.project_id) == 1


async def test_progress_does_not_change_status(db, client_user, freelancer, make_in_progress_project):
    project = await make_in_progress_project(client_user, freelancer)

    updated = await ProjectService(db).update_progress(project.project_id, 100, freelancer)

    assert updated.progress == 100
    assert updated.status == ProjectStatusEnum.in_progress


async def test_progress_publishes_event(db, client_user, freelancer, make_in_progress_project, fake_websocket):
    project = await make_in_progress_project(client_user, freelancer)
    ws = fake_websocket()
    await manager.connect(project_topic(project.project_id), client_user.user_id, ws)

    await ProjectService(db).update_progress(project.project_id, 40, freelancer)

    event = json.loads(ws.sent[-1])
    assert event["event"] == "progress_updated"
    assert event["data"]["progress"] == 40
    assert await count_earnings(db, project.project_id) == 0


@pytest.mark.parametrize("progress", [-1, 101])
async def test_progress_out_of_range(db, client_user, freelancer, make_in_progress_project, progress):
    project = await make_in_progress_project(client_user, freelancer)
    with pytest.raises(InvalidRangeError):
        await ProjectService(db).update_progress(project.project_id, progress, freelancer)


async def test_progress_checks(db, client_user, freelancer, other_freelancer, make_project, make_in_progress_project):
    service = ProjectService(db)
    with pytest.raises(NotFoundError):
        await service.update_progress("missing", 10, freelancer)

    open_project = await make_project(client_user)
    with pytest.raises(InvalidStateError):
        await service.update_progress(open_project.project_id, 10, freelancer)

    project = await make_in_progress_project(client_user, freelancer)
    with pytest.raises(ForbiddenError):
        await service.update_progress(project.project_id, 10, other_freelancer)


async def test_open_to_completed_is_invalid_transition(db, client_user, make_project):
    project = await make_project(client_user)

    with pytest.raises(InvalidTransitionError) as exc_info:
        await ProjectService(db).change_project_status(project.project_id, ProjectStatusEnum.completed, client_user)

    assert exc_info.value.status_code == 409
    assert exc_info.value.current_status == "open"
    assert exc_info.value.attempted_status == "completed"


async def test_terminal_status_cannot_change(db, client_user, freelancer, make_in_progress_project):
    project = await make_in_progress_project(client_user, freelancer, status=ProjectStatusEnum.cancelled)
    with pytest.raises(InvalidTransitionError):
        await ProjectService(db).change_project_status(project.project_id, ProjectStatusEnum.in_progress, client_user)


async def test_start_requires_selected_freelancer(db, client_user, make_project):
    project = await make_project(client_user)
    with pytest.raises(InvalidStateError):
        await ProjectService(db).change_project_status(project.project_id, ProjectStatusEnum.in_progress, client_user)


async def test_only_owner_changes_status(db, client_user, freelancer, make_in_progress_project):
    project = await make_in_progress_project(client_user, freelancer)
    with pytest.raises(ForbiddenError):
        await ProjectService(db).change_project_status(project.project_id, ProjectStatusEnum.completed, freelancer)


async def test_completion_without_pending_row_creates_completed_row(db, client_user, freelancer, make_in_progress_project):
    project = await make_in_progress_project(client_user, freelancer, amount=900)

    result = await ProjectService(db).change_project_status(
        project.project_id, ProjectStatusEnum.completed, client_user
    )

    assert result.earnings.status == EarningsStatusEnum.completed
    assert result.earnings.amount == 900
    assert result.earnings.client_id == client_user.user_id


async def test_completion_survives_earnings_failure(db, client_user, freelancer, make_in_progress_project, monkeypatch):
    project = await make_in_progress_project(client_user, freelancer)

    async def broken(self, project):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr(EarningsService, "_complete_earnings", broken)

    result = await ProjectService(db).change_project_status(
        project.project_id, ProjectStatusEnum.completed, client_user
    )

    assert result.project.status == ProjectStatusEnum.completed
    assert result.earnings is None
    assert result.earnings_error == "ledger unavailable"
    assert await count_earnings(db, project.project_id) == 0


async def test_duplicate_insert_rolls_back_only_savepoint(db, client_user, freelancer, make_in_progress_project, monkeypatch):
    project = await make_in_progress_project(client_user, freelancer)
    service = ProjectService(db)
    await service.update_progress(project.project_id, 100, freelancer)

    # 查不到既有紀錄 -> 重複寫入 -> 唯一鍵衝突
    async def not_found(self, project_id, freelancer_id):
        return None

    monkeypatch.setattr(EarningsRepository, "get_by_project_and_freelancer", not_found)

    result = await service.change_project_status(project.project_id, ProjectStatusEnum.completed, client_user)

    assert result.earnings_error is not None
    monkeypatch.undo()
    reloaded = await service.get_project_details(project.project_id)
    assert reloaded.status == ProjectStatusEnum.completed
    assert await count_earnings(db, project.project_id) == 1


async def test_create_project_requires_client(db, client_user, freelancer):
    data = ProjectCreate(
        title="Data pipeline",
        description="Build an ETL pipeline that loads CSV exports nightly.",
        min_budget=100,
        max_budget=300,
        duration=30,
        skills=["python", " sql ", "python"],
    )
    service = ProjectService(db)

    project = await service.create_project(data, client_user)
    assert project.status == ProjectStatusEnum.open
    assert project.skills == ["python", "sql"]
    assert project.client.name == client_user.name

    with pytest.raises(ForbiddenError):
        await service.create_project(data, freelancer)


async def test_search_projects_scopes_clients(db, client_user, freelancer, make_user, make_project):
    other_client = await make_user(UserRoleEnum.client)
    await make_project(client_user, title="Python scraper", skills=["python"])
    await make_project(other_client, title="React dashboard", skills=["react"])
    service = ProjectService(db)

    own, total, _ = await service.search_projects(client_user)
    assert total == 1 and own[0].client_id == client_user.user_id

    everything, total, pages = await service.search_projects(freelancer, limit=1)
    assert total == 2 and pages == 2 and len(everything) == 1

    by_skill, total, _ = await service.search_projects(freelancer, skill="react")
    assert total == 1 and by_skill[0].title == "React dashboard"

    by_text, total, _ = await service.search_projects(freelancer, search="scraper")
    assert total == 1


async def test_update_project_rules(db, client_user, freelancer, make_project, make_in_progress_project):
    service = ProjectService(db)
    project = await make_project(client_user)

    updated = await service.update_project(project.project_id, ProjectUpdate(max_budget=1500), client_user)
    assert updated.max_budget == 1500

    with pytest.raises(InvalidRangeError):
        await service.update_project(project.project_id, ProjectUpdate(max_budget=100), client_user)

    done = await make_in_progress_project(client_user, freelancer, status=ProjectStatusEnum.completed)
    with pytest.raises(InvalidStateError):
        await service.update_project(done.project_id, ProjectUpdate(duration=10), client_user)


async def test_delete_project_rules(db, client_user, freelancer, make_project, make_in_progress_project):
    service = ProjectService(db)

    running = await make_in_progress_project(client_user, freelancer)
    with pytest.raises(InvalidStateError):
        await service.delete_project(running.project_id, client_user)

    project = await make_project(client_user)
    await service.delete_project(project.project_id, client_user)
    with pytest.raises(NotFoundError):
        await service.get_project_details(project.project_id)


async def test_update_project_ignores_explicit_nulls(db, client_user, make_project):
    project = await make_project(client_user, min_budget=500, max_budget=1000)
    service = ProjectService(db)

    data = ProjectUpdate.model_validate({"min_budget": None, "title": None, "duration": 20})
    updated = await service.update_project(project.project_id, data, client_user)

    assert updated.min_budget == 500
    assert updated.title == "Build a landing page"
    assert updated.duration == 20


async def test_completed_project_can_be_deleted_and_keeps_earnings(db, client_user, freelancer, make_in_progress_project):
    project = await make_in_progress_project(client_user, freelancer, amount=640)
    project_id = project.project_id
    service = ProjectService(db)

    await service.change_project_status(project_id, ProjectStatusEnum.completed, client_user)
    await service.delete_project(project_id, client_user)

    with pytest.raises(NotFoundError):
        await service.get_project_details(project_id)
    earnings = await EarningsRepository(db).get_by_project_and_freelancer(project_id, freelancer.user_id)
    assert earnings is not None
    assert earnings.amount == 640
    assert earnings.status == EarningsStatusEnum.completed

    # 案件已刪除，收入列表仍可查詢與匯出
    listed = await EarningsService(db).list_earnings(freelancer)
    assert [item.project_id for item in listed] == [project_id]
    assert listed[0].project is None
    content, _, _ = await EarningsService(db).export_earnings(freelancer, export_format="csv")
    assert project_id in content
