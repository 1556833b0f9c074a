import json

import pytest
from sqlalchemy import select

from app.core.exceptions import ForbiddenError, InvalidStateError, NotFoundError
from app.core.websocket_manager import manager, project_topic
from app.models.bid import BidStatusEnum
from app.models.notification import Notification
from app.models.project import ProjectStatusEnum
from app.models.user import UserRoleEnum
from app.schemas.bid_schema import BidCreate
from app.services.bid_service import BidService

PROPOSAL = "I have shipped a dozen landing pages with modern tooling and can start today."


def bid_data(amount=800, delivery_time=10):
    return BidCreate(amount=amount, proposal=PROPOSAL, delivery_time=delivery_time)


async def test_submit_bid_creates_pending_bid_and_tracks_id(db, client_user, freelancer, make_project):
    project = await make_project(client_user)

    bid = await BidService(db).submit_bid(project.project_id, bid_data(), freelancer)

    assert bid.status == BidStatusEnum.pending
    assert bid.freelancer_id == freelancer.user_id
    await db.refresh(project)
    assert project.bid_ids == [bid.bid_id]


async def test_submit_bid_publishes_after_commit(db, client_user, freelancer, make_project, fake_websocket):
    project = await make_project(client_user)
    ws = fake_websocket()
    await manager.connect(project_topic(project.project_id), client_user.user_id, ws)

    bid = await BidService(db).submit_bid(project.project_id, bid_data(), freelancer)

    event = json.loads(ws.sent[0])
    assert event["event"] == "bid_received"
    assert event["data"]["message"] == "New bid received"
    assert event["data"]["bid"]["bid_id"] == bid.bid_id


async def test_submit_bid_notifies_client(db, client_user, freelancer, make_project):
    project = await make_project(client_user)
    await BidService(db).submit_bid(project.project_id, bid_data(), freelancer)

    result = await db.execute(select(Notification).where(Notification.user_id == client_user.user_id))
    assert len(result.scalars().all()) == 1


async def test_submit_bid_on_missing_project(db, freelancer):
    with pytest.raises(NotFoundError):
        await BidService(db).submit_bid("missing", bid_data(), freelancer)


async def test_submit_bid_on_closed_project(db, client_user, freelancer, make_project):
    project = await make_project(client_user, status=ProjectStatusEnum.cancelled)
    with pytest.raises(InvalidStateError):
        await BidService(db).submit_bid(project.project_id, bid_data(), freelancer)


async def test_only_freelancers_can_bid(db, client_user, make_project):
    project = await make_project(client_user)
    with pytest.raises(ForbiddenError):
        await BidService(db).submit_bid(project.project_id, bid_data(), client_user)


async def test_accept_bid_awards_project(db, client_user, freelancer, make_project, make_bid):
    project = await make_project(client_user)
    bid = await make_bid(project, freelancer, amount=750)

    accepted = await BidService(db).update_bid_status(bid.bid_id, BidStatusEnum.accepted, client_user)

    assert accepted.status == BidStatusEnum.accepted
    await db.refresh(project)
    assert project.status == ProjectStatusEnum.in_progress
    assert project.selected_freelancer_id == freelancer.user_id
    assert project.final_bid_amount == 750
    assert project.start_date is not None


async def test_accept_bid_sends_awarded_notification(db, client_user, freelancer, make_project, make_bid):
    project = await make_project(client_user, title="Mobile app redesign")
    bid = await make_bid(project, freelancer)

    await BidService(db).update_bid_status(bid.bid_id, BidStatusEnum.accepted, client_user)

    result = await db.execute(select(Notification).where(Notification.user_id == freelancer.user_id))
    notification = result.scalars().one()
    assert "Mobile app redesign" in notification.title


async def test_second_accept_is_rejected(db, client_user, freelancer, other_freelancer, make_project, make_bid):
    project = await make_project(client_user)
    first = await make_bid(project, freelancer)
    second = await make_bid(project, other_freelancer)
    service = BidService(db)

    await service.update_bid_status(first.bid_id, BidStatusEnum.accepted, client_user)

    with pytest.raises(InvalidStateError):
        await service.update_bid_status(second.bid_id, BidStatusEnum.accepted, client_user)

    # 其他出價維持原狀
    await db.refresh(second)
    assert second.status == BidStatusEnum.pending


async def test_only_owner_can_decide(db, client_user, freelancer, make_user, make_project, make_bid):
    stranger = await make_user(UserRoleEnum.client)
    project = await make_project(client_user)
    bid = await make_bid(project, freelancer)

    with pytest.raises(ForbiddenError):
        await BidService(db).update_bid_status(bid.bid_id, BidStatusEnum.accepted, stranger)


async def test_decision_status_must_be_accept_or_reject(db, client_user, freelancer, make_project, make_bid):
    project = await make_project(client_user)
    bid = await make_bid(project, freelancer)

    with pytest.raises(InvalidStateError):
        await BidService(db).update_bid_status(bid.bid_id, BidStatusEnum.countered, client_user)


async def test_ownership_checked_before_decision_status(db, client_user, freelancer, make_user, make_project, make_bid):
    stranger = await make_user(UserRoleEnum.client)
    project = await make_project(client_user)
    bid = await make_bid(project, freelancer)
    service = BidService(db)

    with pytest.raises(ForbiddenError):
        await service.update_bid_status(bid.bid_id, BidStatusEnum.pending, stranger)
    with pytest.raises(NotFoundError):
        await service.update_bid_status("missing", BidStatusEnum.pending, client_user)


async def test_processed_bid_cannot_be_reprocessed(db, client_user, freelancer, make_project, make_bid):
    project = await make_project(client_user)
    bid = await make_bid(project, freelancer)
    service = BidService(db)

    await service.update_bid_status(bid.bid_id, BidStatusEnum.rejected, client_user)

    with pytest.raises(InvalidStateError):
        await service.update_bid_status(bid.bid_id, BidStatusEnum.accepted, client_user)


async def test_reject_clears_counter_offer(db, client_user, freelancer, make_project, make_bid):
    project = await make_project(client_user)
    bid = await make_bid(project, freelancer)
    service = BidService(db)
    await service.create_counter_offer(bid.bid_id, 600, "Can you do 600?", client_user)

    rejected = await service.update_bid_status(bid.bid_id, BidStatusEnum.rejected, client_user)

    assert rejected.status == BidStatusEnum.rejected
    assert rejected.counter_offer is None


async def test_counter_offer_flow(db, client_user, freelancer, make_project, make_bid, fake_websocket):
    project = await make_project(client_user)
    bid = await make_bid(project, freelancer, amount=900)
    service = BidService(db)
    ws = fake_websocket()
    await manager.connect(project_topic(project.project_id), client_user.user_id, ws)

    countered = await service.create_counter_offer(bid.bid_id, 700, "Budget is tight, 700?", client_user)
    assert countered.status == BidStatusEnum.countered
    assert countered.counter_offer["amount"] == 700
    assert countered.counter_offer["timestamp"] is not None

    accepted = await service.accept_counter_offer(bid.bid_id, freelancer)
    assert accepted.amount == 700
    assert accepted.status == BidStatusEnum.pending
    assert accepted.counter_offer is None

    events = [json.loads(message)["event"] for message in ws.sent]
    assert events[-1] == "counter_offer_accepted"


async def test_counter_offer_on_processed_bid(db, client_user, freelancer, make_project, make_bid):
    project = await make_project(client_user)
    bid = await make_bid(project, freelancer, status=BidStatusEnum.rejected)

    with pytest.raises(InvalidStateError):
        await BidService(db).create_counter_offer(bid.bid_id, 600, "Can you do 600?", client_user)


async def test_accept_counter_requires_countered_bid(db, client_user, freelancer, make_project, make_bid):
    project = await make_project(client_user)
    bid = await make_bid(project, freelancer)

    with pytest.raises(InvalidStateError):
        await BidService(db).accept_counter_offer(bid.bid_id, freelancer)


async def test_accept_counter_only_by_bid_owner(db, client_user, freelancer, other_freelancer, make_project, make_bid):
    project = await make_project(client_user)
    bid = await make_bid(project, freelancer)
    service = BidService(db)
    await service.create_counter_offer(bid.bid_id, 600, "Can you do 600?", client_user)

    with pytest.raises(ForbiddenError):
        await service.accept_counter_offer(bid.bid_id, other_freelancer)


async def test_bid_stats(db, client_user, freelancer, other_freelancer, make_project, make_bid):
    project = await make_project(client_user)
    await make_bid(project, freelancer, amount=600, delivery_time=5)
    await make_bid(project, other_freelancer, amount=1000, delivery_time=20, status=BidStatusEnum.rejected)

    stats = await BidService(db).get_bid_stats(project.project_id, client_user)

    assert stats.basic_stats.total_bids == 2
    assert stats.basic_stats.average_amount == 800
    assert stats.basic_stats.min_amount == 600
    assert stats.basic_stats.max_amount == 1000
    assert stats.status_distribution == {"pending": 1, "rejected": 1}
    assert stats.delivery_time_ranges == {"0-7": 1, "7-15": 0, "15-30": 1, "30+": 0}


async def test_list_freelancer_bids_is_private(db, client_user, freelancer, other_freelancer, make_project, make_bid):
    project = await make_project(client_user)
    await make_bid(project, freelancer)
    service = BidService(db)

    bids = await service.list_freelancer_bids(freelancer.user_id, freelancer)
    assert len(bids) == 1
    assert bids[0].project.project_id == project.project_id

    with pytest.raises(ForbiddenError):
        await service.list_freelancer_bids(freelancer.user_id, other_freelancer)
