"""Repository classes encapsulating database operations.

Each repository is small and focused on a single entity (users,
contests, contest logs, rankings). `store` follows upsert-by-identity
semantics: an entity without an id is inserted and receives its generated
id, an entity with an id replaces the stored row. Absence is reported
with `errors.NotFound` so callers can tell it apart from other failures.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import bindparam, func, text
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select

from . import errors, models
from .database import SQLHandler


def _insert_or_replace(handler: SQLHandler, entity, model):
    """Insert `entity` or overwrite the row with the same id."""
    with handler.session() as session:
        if entity.id is None:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity
        existing = session.get(model, entity.id)
        if existing is None:
            raise errors.NotFound(f"{model.__name__.lower()} {entity.id} not found")
        for name, value in entity.model_dump(exclude={"id", "created_at"}).items():
            setattr(existing, name, value)
        if hasattr(existing, "updated_at"):
            existing.updated_at = models.utcnow()
        session.add(existing)
        session.commit()
        return entity


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, handler: SQLHandler):
        self.handler = handler

    def store(self, user: models.User) -> models.User:
        """Create or update a user. A duplicate email raises `EmailAlreadyTaken`."""
        try:
            return _insert_or_replace(self.handler, user, models.User)
        except IntegrityError as e:
            raise errors.EmailAlreadyTaken() from e

    def update_password(self, user: models.User):
        """Overwrite only the password hash of an existing user."""
        statement = text("UPDATE users SET password = :password, updated_at = :now WHERE id = :id").bindparams(
            bindparam("now", type_=models.AwareDateTime),
        )
        affected = self.handler.execute(
            statement,
            password=user.password, now=models.utcnow(), id=user.id,
        )
        if affected == 0:
            raise errors.NotFound(f"user {user.id} not found")

    def find_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email, ignoring case, or `None` if not found."""
        with self.handler.session() as session:
            stmt = select(models.User).where(func.lower(col(models.User.email)) == models.normalize_email(email))
            return session.exec(stmt).first()

    def find_by_id(self, user_id: int) -> models.User:
        with self.handler.session() as session:
            user = session.get(models.User, user_id)
        if user is None:
            raise errors.NotFound(f"user {user_id} not found")
        return user


class ContestRepository:
    """Persistence for contests and the open/running lookups."""
    def __init__(self, handler: SQLHandler):
        self.handler = handler

    def store(self, contest: models.Contest) -> models.Contest:
        """Create or update a contest.

        A second open contest violates the partial unique index and is
        reported as `OpenContestAlreadyExists`.
        """
        try:
            return _insert_or_replace(self.handler, contest, models.Contest)
        except IntegrityError as e:
            raise errors.OpenContestAlreadyExists() from e

    def get_open_contests(self) -> List[int]:
        """Return the ids of all open contests."""
        with self.handler.session() as session:
            stmt = select(models.Contest.id).where(models.Contest.open == True)  # noqa: E712
            return list(session.exec(stmt).all())

    def get_running_contests(self, now: Optional[datetime] = None) -> List[int]:
        """Return the ids of open contests whose window contains `now`."""
        now = now or models.utcnow()
        with self.handler.session() as session:
            stmt = select(models.Contest.id).where(
                models.Contest.open == True,  # noqa: E712
                models.Contest.start <= now,
                models.Contest.end >= now,
            )
            return list(session.exec(stmt).all())

    def find_all(self) -> List[models.Contest]:
        """Return every contest, newest start first."""
        with self.handler.session() as session:
            stmt = select(models.Contest).order_by(col(models.Contest.start).desc(), col(models.Contest.id).desc())
            contests = list(session.exec(stmt).all())
        if not contests:
            raise errors.NotFound("no contests found")
        return contests

    def find_recent(self, count: int) -> List[models.Contest]:
        """Return the `count` contests with the latest start."""
        with self.handler.session() as session:
            stmt = (
                select(models.Contest)
                .order_by(col(models.Contest.start).desc(), col(models.Contest.id).desc())
                .limit(count)
            )
            return list(session.exec(stmt).all())

    def find_by_id(self, contest_id: int) -> models.Contest:
        with self.handler.session() as session:
            contest = session.get(models.Contest, contest_id)
        if contest is None:
            raise errors.NotFound(f"contest {contest_id} not found")
        return contest


class ContestLogRepository:
    """CRUD operations for `ContestLog` records."""
    def __init__(self, handler: SQLHandler):
        self.handler = handler

    def store(self, log: models.ContestLog) -> models.ContestLog:
        return _insert_or_replace(self.handler, log, models.ContestLog)

    def find_by_id(self, log_id: int) -> models.ContestLog:
        with self.handler.session() as session:
            log = session.get(models.ContestLog, log_id)
        if log is None:
            raise errors.NotFound(f"contest log {log_id} not found")
        return log

    def find_all(self, contest_id: int, user_id: int) -> List[models.ContestLog]:
        """Return the logs matching both `contest_id` and `user_id`."""
        with self.handler.session() as session:
            stmt = (
                select(models.ContestLog)
                .where(models.ContestLog.contest_id == contest_id, models.ContestLog.user_id == user_id)
                .order_by(col(models.ContestLog.id))
            )
            return list(session.exec(stmt).all())

    def delete(self, log_id: int):
        affected = self.handler.execute("DELETE FROM contest_logs WHERE id = :id", id=log_id)
        if affected == 0:
            raise errors.NotFound(f"contest log {log_id} not found")


@dataclass
class RankingView:
    """A leaderboard row joined with the user's display name."""
    id: int
    contest_id: int
    user_id: int
    user_display_name: str
    language: str
    amount: float


class RankingRepository:
    """Rankings double as contest registrations: one row per language."""
    def __init__(self, handler: SQLHandler):
        self.handler = handler

    def store_registration(self, contest_id: int, user_id: int, languages: List[str]) -> List[models.Ranking]:
        """Insert one zero ranking per language in a single transaction.

        Any clash with an existing row rolls back the whole registration
        and raises `AlreadyRegistered`.
        """
        rankings = [
            models.Ranking(contest_id=contest_id, user_id=user_id, language=language, amount=0)
            for language in languages
        ]
        try:
            with self.handler.session() as session:
                session.add_all(rankings)
                session.commit()
                for ranking in rankings:
                    session.refresh(ranking)
        except IntegrityError as e:
            raise errors.AlreadyRegistered() from e
        return rankings

    def update_amounts(self, rankings: Iterable[models.Ranking]):
        """Write the `amount` of every given ranking in a single transaction."""
        with self.handler.session() as session:
            now = models.utcnow()
            for ranking in rankings:
                existing = session.get(models.Ranking, ranking.id)
                if existing is None:
                    raise errors.NotFound(f"ranking {ranking.id} not found")
                existing.amount = ranking.amount
                existing.updated_at = now
                session.add(existing)
            session.commit()

    def find_all(self, contest_id: int, language: str) -> List[RankingView]:
        """Leaderboard for one contest and language, highest amount first."""
        rows = self.handler.query(
            """
            SELECT rankings.id, rankings.contest_id, rankings.user_id,
                   users.display_name AS user_display_name,
                   rankings.language, rankings.amount
            FROM rankings
            INNER JOIN users ON users.id = rankings.user_id
            WHERE rankings.contest_id = :contest_id AND rankings.language = :language
            ORDER BY rankings.amount DESC, rankings.id ASC
            """,
            contest_id=contest_id, language=language,
        )
        return [RankingView(**row) for row in rows]

    def find_by_contest_and_user(self, contest_id: int, user_id: int) -> List[models.Ranking]:
        with self.handler.session() as session:
            stmt = (
                select(models.Ranking)
                .where(models.Ranking.contest_id == contest_id, models.Ranking.user_id == user_id)
                .order_by(col(models.Ranking.id))
            )
            return list(session.exec(stmt).all())

    def get_all_languages_for_contest_and_user(self, contest_id: int, user_id: int) -> List[str]:
        with self.handler.session() as session:
            stmt = select(models.Ranking.language).where(
                models.Ranking.contest_id == contest_id, models.Ranking.user_id == user_id
            )
            return list(session.exec(stmt).all())

    def registration_for(self, contest_ids: List[int], user_id: int) -> Optional[int]:
        """Return the first of `contest_ids` the user registered for, if any."""
        if not contest_ids:
            return None
        with self.handler.session() as session:
            stmt = (
                select(models.Ranking.contest_id)
                .where(col(models.Ranking.contest_id).in_(contest_ids), models.Ranking.user_id == user_id)
                .order_by(col(models.Ranking.contest_id).desc())
            )
            return session.exec(stmt).first()
