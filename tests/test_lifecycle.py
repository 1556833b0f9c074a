import pytest

from app.models.project import ProjectStatusEnum
from app.utils.lifecycle import (
    PROJECT_STATUS_TRANSITIONS, can_transition, is_terminal, is_valid_progress
)


@pytest.mark.parametrize("current, target", [
    (ProjectStatusEnum.open, ProjectStatusEnum.in_progress),
    (ProjectStatusEnum.open, ProjectStatusEnum.cancelled),
    (ProjectStatusEnum.in_progress, ProjectStatusEnum.completed),
    (ProjectStatusEnum.in_progress, ProjectStatusEnum.cancelled),
])
def test_allowed_transitions(current, target):
    assert can_transition(current, target)


@pytest.mark.parametrize("current, target", [
    (ProjectStatusEnum.open, ProjectStatusEnum.completed),
    (ProjectStatusEnum.open, ProjectStatusEnum.open),
    (ProjectStatusEnum.in_progress, ProjectStatusEnum.open),
    (ProjectStatusEnum.completed, ProjectStatusEnum.cancelled),
    (ProjectStatusEnum.cancelled, ProjectStatusEnum.open),
])
def test_rejected_transitions(current, target):
    assert not can_transition(current, target)


def test_accepts_raw_status_values():
    assert can_transition("in-progress", ProjectStatusEnum.completed)


def test_terminal_statuses_have_no_exits():
    assert is_terminal(ProjectStatusEnum.completed)
    assert is_terminal(ProjectStatusEnum.cancelled)
    assert not is_terminal(ProjectStatusEnum.open)
    assert set(PROJECT_STATUS_TRANSITIONS) == set(ProjectStatusEnum)


def test_progress_bounds():
    assert is_valid_progress(0)
    assert is_valid_progress(100)
    assert not is_valid_progress(-1)
    assert not is_valid_progress(101)
