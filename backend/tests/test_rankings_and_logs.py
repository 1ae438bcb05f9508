"""Ranking and contest-log rules against a real SQLite database."""

from datetime import timedelta

import pytest

from contest_tracker import errors, models
from contest_tracker.interactors import ContestLogInteractor, RankingInteractor
from contest_tracker.repositories import (
    ContestLogRepository,
    ContestRepository,
    RankingRepository,
    UserRepository,
)
from contest_tracker.validators import ContestLogValidator


@pytest.fixture
def env(handler):
    users = UserRepository(handler)
    contests = ContestRepository(handler)
    logs = ContestLogRepository(handler)
    rankings = RankingRepository(handler)
    ranking_interactor = RankingInteractor(rankings, contests, logs)
    log_interactor = ContestLogInteractor(logs, contests, rankings, ranking_interactor, ContestLogValidator())

    alice = users.store(models.User(email="alice@bar.com", display_name="Alice", password="x"))
    bob = users.store(models.User(email="bob@bar.com", display_name="Bob", password="x"))
    now = models.utcnow()
    contest = contests.store(models.Contest(
        description="Round 1", start=now - timedelta(days=1), end=now + timedelta(days=1), open=True,
    ))
    return {
        "contests": contests,
        "rankings": rankings,
        "ranking": ranking_interactor,
        "logs": log_interactor,
        "alice": alice,
        "bob": bob,
        "contest": contest,
    }


def _log(env, user="alice", **overrides):
    fields = dict(
        contest_id=env["contest"].id,
        user_id=env[user].id,
        language="jpn",
        medium_id=int(models.Medium.BOOK),
        amount=10,
        description="novel",
    )
    fields.update(overrides)
    return models.ContestLog(**fields)


def test_registration_adds_global_ranking(env):
    created = env["ranking"].create_ranking(env["alice"].id, env["contest"].id, ["jpn", "kor"])
    assert sorted(r.language for r in created) == ["glo", "jpn", "kor"]
    assert all(r.amount == 0 for r in created)


@pytest.mark.parametrize("languages", [[], ["xxx"], ["glo"], ["jpn", "jpn"]])
def test_registration_rejects_bad_languages(env, languages):
    with pytest.raises(errors.InvalidRegistration):
        env["ranking"].create_ranking(env["alice"].id, env["contest"].id, languages)


def test_registration_twice(env):
    env["ranking"].create_ranking(env["alice"].id, env["contest"].id, ["jpn"])
    with pytest.raises(errors.AlreadyRegistered):
        env["ranking"].create_ranking(env["alice"].id, env["contest"].id, ["kor"])


def test_registration_requires_open_contest(env):
    now = models.utcnow()
    closed = env["contests"].store(models.Contest(description="old", start=now, end=now, open=False))
    with pytest.raises(errors.ContestNotOpen):
        env["ranking"].create_ranking(env["alice"].id, closed.id, ["jpn"])
    with pytest.raises(errors.NotFound):
        env["ranking"].create_ranking(env["alice"].id, 999, ["jpn"])


def test_logs_update_rankings(env):
    env["ranking"].create_ranking(env["alice"].id, env["contest"].id, ["jpn", "kor"])
    logs = env["logs"]
    logs.store_log(_log(env, amount=10))
    logs.store_log(_log(env, language="kor", medium_id=int(models.Medium.COMIC), amount=50))

    amounts = {r.language: r.amount for r in env["rankings"].find_by_contest_and_user(env["contest"].id, env["alice"].id)}
    assert amounts == {"jpn": 10.0, "kor": 10.0, "glo": 20.0}

    board = env["ranking"].rankings_for_contest(env["contest"].id)
    assert [(r.user_display_name, r.amount) for r in board] == [("Alice", 20.0)]
    assert [r.amount for r in env["ranking"].rankings_for_contest(env["contest"].id, "kor")] == [10.0]


def test_log_requires_registration_for_language(env):
    env["ranking"].create_ranking(env["alice"].id, env["contest"].id, ["jpn"])
    with pytest.raises(errors.UserNotRegistered):
        env["logs"].store_log(_log(env, language="kor"))
    with pytest.raises(errors.UserNotRegistered):
        env["logs"].store_log(_log(env, user="bob"))


def test_log_requires_running_contest(env):
    now = models.utcnow()
    env["contests"].store(models.Contest(
        id=env["contest"].id, description="Round 1",
        start=now + timedelta(days=1), end=now + timedelta(days=2), open=True,
    ))
    with pytest.raises(errors.ContestNotRunning):
        env["logs"].store_log(_log(env))


@pytest.mark.parametrize("overrides", [
    {"amount": -1},
    {"amount": float("nan")},
    {"amount": float("inf")},
    {"language": "glo"},
    {"language": "xxx"},
    {"medium_id": 99},
])
def test_log_validation(env, overrides):
    env["ranking"].create_ranking(env["alice"].id, env["contest"].id, ["jpn"])
    with pytest.raises(errors.InvalidContestLog):
        env["logs"].store_log(_log(env, **overrides))


def test_update_and_delete_log_are_owner_only(env):
    env["ranking"].create_ranking(env["alice"].id, env["contest"].id, ["jpn"])
    log = env["logs"].store_log(_log(env, amount=10))

    with pytest.raises(errors.Forbidden):
        env["logs"].update_log(_log(env, user="bob", id=log.id, amount=99))
    with pytest.raises(errors.Forbidden):
        env["logs"].delete_log(log.id, env["bob"].id)

    env["logs"].update_log(_log(env, id=log.id, amount=25))
    glo = env["ranking"].rankings_for_contest(env["contest"].id)[0]
    assert glo.amount == 25.0

    env["logs"].delete_log(log.id, env["alice"].id)
    assert env["logs"].fetch_logs(env["contest"].id, env["alice"].id) == []
    assert env["ranking"].rankings_for_contest(env["contest"].id)[0].amount == 0.0


def test_update_log_requires_id(env):
    with pytest.raises(errors.ContestLogIDMissing):
        env["logs"].update_log(_log(env))


def test_current_registration(env):
    assert env["ranking"].current_registration(env["alice"].id) is None
    env["ranking"].create_ranking(env["alice"].id, env["contest"].id, ["kor", "jpn"])

    registration = env["ranking"].current_registration(env["alice"].id)
    assert registration.contest_id == env["contest"].id
    assert registration.languages == ["glo", "jpn", "kor"]


def test_rankings_for_registration(env):
    with pytest.raises(errors.NotFound):
        env["ranking"].rankings_for_registration(env["contest"].id, env["alice"].id)
    env["ranking"].create_ranking(env["alice"].id, env["contest"].id, ["jpn"])
    assert len(env["ranking"].rankings_for_registration(env["contest"].id, env["alice"].id)) == 2
