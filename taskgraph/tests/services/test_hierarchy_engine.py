from datetime import datetime, timedelta, timezone

import pytest

from taskgraph.core.exceptions import (
    DependencyNotSatisfiedError,
    DuplicateTitleError,
    InvalidDateError,
    ParentAlreadyCompletedError,
    ParentNotFoundError,
)
from taskgraph.schemas.task import TaskCreate, TaskPriority, TaskStatus
from taskgraph.services.hierarchy import ALL_SUBTASKS_COMPLETED


def in_days(days: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


@pytest.fixture
def chain(make_task, make_subtask):
    """root -> child -> grandchild -> great_grandchild"""
    root = make_task(title="Root")
    child = make_subtask(root.id, title="Child")
    grandchild = make_subtask(child.id, title="Grandchild")
    great = make_subtask(grandchild.id, title="Great-grandchild")
    return root, child, grandchild, great


def test_complete_cascades_down_with_causes(service, chain):
    root, child, grandchild, great = chain
    changed = service.engine.complete(root.id)
    assert changed == {root.id, child.id, grandchild.id, great.id}

    repo = service.repository
    assert repo.get(root.id).termination_cause == "Manual"
    assert repo.get(child.id).termination_cause == "ParentCompleted:Manual"
    assert repo.get(grandchild.id).termination_cause == "GrandParentCompleted:Manual"
    assert repo.get(great.id).termination_cause == "GrandParentCompleted:Manual"
    for task_id in changed:
        loaded = repo.get(task_id)
        assert loaded.completed is True
        assert loaded.status == TaskStatus.COMPLETED
        assert loaded.completed_at is not None

def test_complete_with_three_children_completes_every_descendant(service, make_task, make_subtask):
    root = make_task()
    children = [make_subtask(root.id) for _ in range(3)]
    grandchildren = [make_subtask(c.id) for c in children]

    service.engine.complete(root.id)
    repo = service.repository
    assert {repo.get(c.id).termination_cause for c in children} == {"ParentCompleted:Manual"}
    assert {repo.get(g.id).termination_cause for g in grandchildren} == {"GrandParentCompleted:Manual"}

def test_cascade_skips_already_completed_descendants(service, chain, make_subtask):
    root, child, grandchild, _ = chain
    other = make_subtask(child.id, title="Other")
    service.engine.complete(grandchild.id, "Done early")
    service.engine.complete(root.id)
    # внук уже был завершён и свою причину сохраняет
    assert service.repository.get(grandchild.id).termination_cause == "Done early"
    assert service.repository.get(child.id).termination_cause == "ParentCompleted:Manual"
    assert service.repository.get(other.id).termination_cause == "GrandParentCompleted:Manual"

def test_completing_leaf_completes_single_child_ancestors(service, chain):
    root, child, grandchild, great = chain
    changed = service.engine.complete(great.id)
    assert changed == {root.id, child.id, grandchild.id, great.id}
    assert service.repository.get(root.id).termination_cause == ALL_SUBTASKS_COMPLETED
    assert service.repository.get(grandchild.id).termination_cause == ALL_SUBTASKS_COMPLETED

@pytest.mark.parametrize("order", [(0, 1), (1, 0)])
def test_parent_completes_after_last_subtask_in_any_order(service, make_task, make_subtask, order):
    parent = make_task()
    subtasks = [make_subtask(parent.id), make_subtask(parent.id)]
    first, second = (subtasks[i] for i in order)

    service.engine.complete(first.id)
    assert service.repository.is_completed(parent.id) is False
    service.engine.complete(second.id)
    loaded = service.repository.get(parent.id)
    assert loaded.completed is True
    assert loaded.termination_cause == ALL_SUBTASKS_COMPLETED

def test_reopen_parent_reopens_direct_children_only(service, chain):
    root, child, grandchild, great = chain
    service.engine.complete(root.id)
    changed = service.engine.reopen(root.id)

    repo = service.repository
    assert changed == {root.id, child.id}
    assert repo.is_completed(root.id) is False
    assert repo.is_completed(child.id) is False
    assert repo.is_completed(grandchild.id) is True
    assert repo.is_completed(great.id) is True
    reopened = repo.get(child.id)
    assert reopened.status == TaskStatus.TODO
    assert reopened.termination_cause is None
    assert reopened.completed_at is None

def test_reopen_leaf_reopens_ancestors_to_root(service, chain, make_subtask):
    root, child, grandchild, great = chain
    sibling = make_subtask(root.id, title="Sibling")
    service.engine.complete(root.id)

    changed = service.engine.reopen(great.id)
    assert changed == {great.id, grandchild.id, child.id, root.id}
    for task_id in changed:
        assert service.repository.is_completed(task_id) is False
    assert service.repository.is_completed(sibling.id) is True

def test_open_dependency_blocks_completion(service, make_task):
    blocked, blocker = make_task(), make_task(title="Blocker")
    service.repository.add_dependency(blocked.id, blocker.id)
    with pytest.raises(DependencyNotSatisfiedError, match="Blocker"):
        service.engine.complete(blocked.id)
    service.engine.complete(blocker.id)
    service.engine.complete(blocked.id)
    assert service.repository.is_completed(blocked.id) is True

def test_delete_subtree_returns_removed_ids(service, chain):
    root, child, grandchild, great = chain
    removed, attachments = service.engine.delete_subtree(child.id)
    assert removed == [child.id, grandchild.id, great.id]
    assert attachments == []
    assert service.repository.get(root.id).subtask_ids == []

def test_subtask_inherits_parent_fields(service, make_task):
    deadline = in_days(10)
    parent = make_task(deadline=deadline, category_id="work", priority=TaskPriority.HIGH)
    child = service.engine.add_subtask(
        parent.id, TaskCreate(title="Inherit", category_id="home", priority=TaskPriority.LOW),
    )
    assert child.parent_id == parent.id
    assert child.deadline == parent.deadline
    assert child.category_id == "work"
    assert child.priority == TaskPriority.HIGH
    assert child.status == TaskStatus.TODO
    assert child.id in service.repository.get(parent.id).subtask_ids

def test_subtask_default_title_is_unique(service, make_task):
    parent = make_task()
    first = service.engine.add_subtask(parent.id, TaskCreate())
    assert first.title == "Subtask"
    with pytest.raises(DuplicateTitleError):
        service.engine.add_subtask(parent.id, TaskCreate())

def test_subtask_deadline_after_parent_deadline_rejected(service, make_task):
    parent = make_task(deadline=in_days(5))
    with pytest.raises(InvalidDateError):
        service.engine.add_subtask(parent.id, TaskCreate(deadline=in_days(6)))
    assert service.repository.get(parent.id).subtask_ids == []

def test_subtask_deadline_before_parent_creation_rejected(service, make_task):
    parent = make_task(deadline=in_days(5))
    with pytest.raises(InvalidDateError):
        service.engine.add_subtask(parent.id, TaskCreate(deadline=in_days(-1)))

def test_subtask_close_to_parent_deadline_warns_parent(service, make_task):
    parent = make_task(deadline=in_days(5))
    service.repository.append_warning(parent.id, "Budget not approved")
    child_deadline = parent.deadline - timedelta(hours=2)
    child = service.engine.add_subtask(parent.id, TaskCreate(deadline=child_deadline))

    assert child.deadline == child_deadline
    warnings = service.repository.get(parent.id).warnings
    assert len(warnings) == 2
    assert warnings[0] == "Budget not approved"
    assert warnings[1].startswith("Subtask deadline is very close to the parent's deadline")

    service.engine.add_subtask(parent.id, TaskCreate(title="Second close", deadline=child_deadline - timedelta(hours=1)))
    assert len(service.repository.get(parent.id).warnings) == 3

def test_subtask_needs_existing_open_parent(service, make_task):
    with pytest.raises(ParentNotFoundError):
        service.engine.add_subtask("missing", TaskCreate())
    parent = make_task()
    service.engine.complete(parent.id)
    with pytest.raises(ParentAlreadyCompletedError):
        service.engine.add_subtask(parent.id, TaskCreate())
