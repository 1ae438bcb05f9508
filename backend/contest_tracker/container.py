"""Dependency container.

The container builds every shared collaborator lazily, the first time it
is asked for, and hands out that same instance for the rest of the
process. Each accessor goes through its own lock-guarded once-cell so
concurrent first use from several request threads still yields exactly
one instance.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar

from fastapi import FastAPI, status

from . import handlers, interactors, repositories, validators
from .config import Settings
from .database import SQLHandler
from .models import Role
from .reporting import ErrorReporter
from .router import Route, Router
from .security import JWTGenerator, PasswordHasher

logger = logging.getLogger("contest_tracker.container")

T = TypeVar("T")


class StartupError(RuntimeError):
    """A collaborator the process cannot serve without failed to initialize."""


class Once(Generic[T]):
    """A value computed at most once, on first access."""

    def __init__(self):
        self._lock = threading.Lock()
        self._built = False
        self._value: Optional[T] = None

    def get(self, factory: Callable[[], T]) -> T:
        if not self._built:
            with self._lock:
                if not self._built:
                    self._value = factory()
                    self._built = True
        return self._value


@dataclass
class Repositories:
    user: repositories.UserRepository
    contest: repositories.ContestRepository
    contest_log: repositories.ContestLogRepository
    ranking: repositories.RankingRepository


@dataclass
class Interactors:
    session: interactors.SessionInteractor
    user: interactors.UserInteractor
    contest: interactors.ContestInteractor
    ranking: interactors.RankingInteractor
    contest_log: interactors.ContestLogInteractor


@dataclass
class Handlers:
    health: handlers.HealthHandler
    session: handlers.SessionHandler
    user: handlers.UserHandler
    contest: handlers.ContestHandler
    ranking: handlers.RankingHandler
    contest_log: handlers.ContestLogHandler


class Container:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._error_reporter = Once()
        self._sql_handler = Once()
        self._jwt_generator = Once()
        self._password_hasher = Once()
        self._repositories = Once()
        self._interactors = Once()
        self._handlers = Once()
        self._router = Once()
        self._app = Once()

    def init(self):
        """Build the collaborators the process cannot run without."""
        self.error_reporter()
        self.sql_handler()

    def error_reporter(self) -> ErrorReporter:
        def build():
            try:
                return ErrorReporter(self.settings.ERROR_REPORTER_DSN)
            except ValueError as e:
                logger.critical("failed to initialize error reporter: %s", e)
                raise StartupError(f"failed to initialize error reporter: {e}") from e
        return self._error_reporter.get(build)

    def sql_handler(self) -> SQLHandler:
        def build():
            try:
                handler = SQLHandler(
                    self.settings.DATABASE_URL,
                    self.settings.DATABASE_MAX_IDLE_CONNS,
                    self.settings.DATABASE_MAX_OPEN_CONNS,
                )
                handler.ping()
                handler.create_tables()
            except Exception as e:
                logger.critical("failed to initialize connection pool with database: %s", e)
                raise StartupError(f"failed to initialize database: {e}") from e
            return handler
        return self._sql_handler.get(build)

    def jwt_generator(self) -> JWTGenerator:
        return self._jwt_generator.get(
            lambda: JWTGenerator(self.settings.JWT_SECRET, self.settings.JWT_ALGORITHM)
        )

    def password_hasher(self) -> PasswordHasher:
        return self._password_hasher.get(PasswordHasher)

    def repositories(self) -> Repositories:
        def build():
            handler = self.sql_handler()
            return Repositories(
                user=repositories.UserRepository(handler),
                contest=repositories.ContestRepository(handler),
                contest_log=repositories.ContestLogRepository(handler),
                ranking=repositories.RankingRepository(handler),
            )
        return self._repositories.get(build)

    def interactors(self) -> Interactors:
        def build():
            repos = self.repositories()
            ranking = interactors.RankingInteractor(repos.ranking, repos.contest, repos.contest_log)
            return Interactors(
                session=interactors.SessionInteractor(
                    repos.user, self.password_hasher(), self.jwt_generator(), self.settings.SESSION_LENGTH
                ),
                user=interactors.UserInteractor(repos.user, self.password_hasher()),
                contest=interactors.ContestInteractor(repos.contest, validators.ContestValidator()),
                ranking=ranking,
                contest_log=interactors.ContestLogInteractor(
                    repos.contest_log, repos.contest, repos.ranking, ranking, validators.ContestLogValidator()
                ),
            )
        return self._interactors.get(build)

    def handlers(self) -> Handlers:
        def build():
            its = self.interactors()
            return Handlers(
                health=handlers.HealthHandler(),
                session=handlers.SessionHandler(its.session),
                user=handlers.UserHandler(its.user),
                contest=handlers.ContestHandler(its.contest),
                ranking=handlers.RankingHandler(its.ranking),
                contest_log=handlers.ContestLogHandler(its.contest_log),
            )
        return self._handlers.get(build)

    def routes(self) -> List[Route]:
        h = self.handlers()
        created = status.HTTP_201_CREATED
        return [
            # service infra
            Route("GET", "/ping", h.health.ping),

            # session
            Route("POST", "/login", h.session.login),
            Route("POST", "/register", h.session.register, status_code=created),
            Route("POST", "/refresh", h.session.refresh, Role.USER),

            # users
            Route("POST", "/users/update_password", h.user.update_password, Role.USER),
            Route("POST", "/users/profile", h.user.update_profile, Role.USER),

            # contests
            Route("GET", "/contests", h.contest.all),
            Route("GET", "/contests/{contest_id}", h.contest.get),
            Route("POST", "/contests", h.contest.create, Role.ADMIN, status_code=created),
            Route("PUT", "/contests/{contest_id}", h.contest.update, Role.ADMIN),

            # rankings
            Route("GET", "/rankings/current", h.ranking.current_registration, Role.USER),
            Route("GET", "/rankings/registration", h.ranking.rankings_for_registration),
            Route("POST", "/rankings", h.ranking.create, Role.USER, status_code=created),
            Route("GET", "/rankings", h.ranking.get),

            # contest logs
            Route("POST", "/contest_logs", h.contest_log.create, Role.USER, status_code=created),
            Route("GET", "/contest_logs", h.contest_log.get, Role.USER),
            Route("PUT", "/contest_logs/{log_id}", h.contest_log.update, Role.USER),
            Route("DELETE", "/contest_logs/{log_id}", h.contest_log.delete, Role.USER,
                  status_code=status.HTTP_204_NO_CONTENT),
        ]

    def router(self) -> Router:
        return self._router.get(
            lambda: Router(
                self.jwt_generator(),
                self.error_reporter(),
                self.settings.CORS_ALLOWED_ORIGINS,
                self.routes(),
            )
        )

    def app(self) -> FastAPI:
        def build():
            app = self.router().build()
            app.state.container = self
            return app
        return self._app.get(build)
