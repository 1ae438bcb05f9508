from datetime import datetime
from unittest.mock import create_autospec

import pytest

from contest_tracker import errors, models
from contest_tracker.interactors import ContestInteractor
from contest_tracker.repositories import ContestRepository
from contest_tracker.validators import ContestValidator


@pytest.fixture
def deps():
    repo = create_autospec(ContestRepository, instance=True)
    validator = create_autospec(ContestValidator, instance=True)
    return repo, validator, ContestInteractor(repo, validator)


def _contest(**overrides):
    fields = dict(
        description="Round 2019-01",
        start=datetime(2019, 1, 1),
        end=datetime(2019, 1, 31),
        open=True,
    )
    fields.update(overrides)
    return models.Contest(**fields)


def test_create_open_contest(deps):
    repo, validator, interactor = deps
    repo.get_open_contests.return_value = []
    contest = _contest()

    assert interactor.create_contest(contest) is contest

    validator.validate.assert_called_once_with(contest)
    repo.store.assert_called_once_with(contest)


def test_create_open_contest_while_another_is_open(deps):
    repo, _, interactor = deps
    repo.get_open_contests.return_value = [1]

    with pytest.raises(errors.OpenContestAlreadyExists):
        interactor.create_contest(_contest())
    repo.store.assert_not_called()


def test_create_closed_contest_skips_open_check(deps):
    repo, _, interactor = deps
    interactor.create_contest(_contest(open=False))
    repo.get_open_contests.assert_not_called()
    repo.store.assert_called_once()


def test_create_invalid_contest(deps):
    repo, validator, interactor = deps
    validator.validate.side_effect = errors.InvalidContest("start must not be after end")

    with pytest.raises(errors.InvalidContest):
        interactor.create_contest(_contest(start=datetime(2019, 1, 31), end=datetime(2019, 1, 1)))
    repo.get_open_contests.assert_not_called()
    repo.store.assert_not_called()


def test_update_contest(deps):
    repo, validator, interactor = deps
    contest = _contest(id=1, open=False)

    interactor.update_contest(contest)

    validator.validate.assert_called_once_with(contest)
    repo.store.assert_called_once_with(contest)


@pytest.mark.parametrize("contest", [
    _contest(open=False),
    _contest(open=True),
    _contest(start=datetime(2019, 2, 1), end=datetime(2019, 1, 1), description=""),
])
def test_update_contest_without_id(deps, contest):
    repo, validator, interactor = deps
    with pytest.raises(errors.ContestIDMissing):
        interactor.update_contest(contest)
    validator.validate.assert_not_called()
    repo.store.assert_not_called()


def test_update_keeps_own_open_flag(deps):
    repo, _, interactor = deps
    repo.get_open_contests.return_value = [1]
    interactor.update_contest(_contest(id=1, open=True))
    repo.store.assert_called_once()


def test_update_cannot_open_second_contest(deps):
    repo, _, interactor = deps
    repo.get_open_contests.return_value = [1]
    with pytest.raises(errors.OpenContestAlreadyExists):
        interactor.update_contest(_contest(id=2, open=True))


def test_validator_rules():
    validator = ContestValidator()
    validator.validate(_contest())
    validator.validate(_contest(start=datetime(2019, 1, 1), end=datetime(2019, 1, 1)))
    with pytest.raises(errors.InvalidContest):
        validator.validate(_contest(start=datetime(2019, 1, 31), end=datetime(2019, 1, 1)))
    with pytest.raises(errors.InvalidContest):
        validator.validate(_contest(description="  "))
