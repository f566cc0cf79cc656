import pytest

from taskgraph.core.exceptions import DuplicateTitleError
from taskgraph.services.uniqueness import UniquenessValidator, normalize_title


def test_normalize_title_trims_and_ignores_case():
    assert normalize_title("  Weekly Report ") == "weekly report"
    assert normalize_title(None) == ""

def test_title_taken_case_insensitively(service, make_task):
    make_task(title="Weekly Report")
    validator = UniquenessValidator(service.repository)
    assert validator.is_available("weekly report") is False
    assert validator.is_available("  WEEKLY REPORT  ") is False
    assert validator.is_available("Monthly Report") is True

def test_blank_title_is_not_a_conflict(service, make_task):
    make_task()
    assert UniquenessValidator(service.repository).is_available("   ") is True

def test_excluded_task_does_not_conflict_with_itself(service, make_task):
    task = make_task(title="Rename me")
    validator = UniquenessValidator(service.repository)
    validator.check_available("RENAME ME", exclude_id=task.id)
    validator.check_available("Renamed", exclude_id=task.id)

def test_check_available_raises_with_readable_message(service, make_task):
    make_task(title="Taken")
    other = make_task(title="Other")
    validator = UniquenessValidator(service.repository)
    with pytest.raises(DuplicateTitleError) as exc_info:
        validator.check_available("taken", exclude_id=other.id)
    assert exc_info.value.message == "A task titled 'taken' already exists. Please choose a unique title."
