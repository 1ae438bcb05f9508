"""HTTP handlers.

Handlers are intentionally thin: they bind request bodies and query
parameters, call an interactor and shape the response. Errors are raised
as `DomainError`s and turned into status codes by the router. Each
handler class is constructed once by the container and its bound
methods are registered as FastAPI endpoints.
"""

from typing import List, Optional

from fastapi import Depends, Response, status

from . import errors, models, schemas
from .auth import session_user
from .security import SessionUser


class HealthHandler:
    def ping(self):
        """Lightweight health check for uptime monitoring."""
        return {"status": "pong"}


class SessionHandler:
    """Logging in, registering and refreshing tokens."""
    def __init__(self, session_interactor):
        self.session_interactor = session_interactor

    def login(self, payload: schemas.LoginIn) -> schemas.SessionOut:
        user, token = self.session_interactor.create_session(payload.email, payload.password)
        return schemas.SessionOut(token=token, user=schemas.UserOut.model_validate(user))

    def register(self, payload: schemas.RegisterIn):
        """Create a regular user with default preferences."""
        user = models.User(
            email=str(payload.email),
            display_name=payload.display_name.strip(),
            password=payload.password,
            role=int(models.Role.USER),
            preferences=models.Preferences().model_dump(),
        )
        self.session_interactor.create_user(user)
        return Response(status_code=status.HTTP_201_CREATED)

    def refresh(self, user: SessionUser = Depends(session_user)) -> schemas.SessionOut:
        latest, token = self.session_interactor.refresh_session(user)
        return schemas.SessionOut(token=token, user=schemas.UserOut.model_validate(latest))


class UserHandler:
    def __init__(self, user_interactor):
        self.user_interactor = user_interactor

    def update_password(self, payload: schemas.UpdatePasswordIn, user: SessionUser = Depends(session_user)):
        self.user_interactor.update_password(user.email, payload.current_password, payload.new_password)
        return {"status": "ok"}

    def update_profile(self, payload: schemas.UpdateProfileIn, user: SessionUser = Depends(session_user)) -> schemas.UserOut:
        updated = self.user_interactor.update_profile(user.id, payload.display_name, payload.preferences)
        return schemas.UserOut.model_validate(updated)


class ContestHandler:
    def __init__(self, contest_interactor):
        self.contest_interactor = contest_interactor

    def all(self, limit: Optional[int] = None) -> List[schemas.ContestOut]:
        """List contests, newest first; `limit` returns only the most recent ones."""
        if limit is not None:
            contests = self.contest_interactor.recent(max(limit, 0))
        else:
            try:
                contests = self.contest_interactor.all()
            except errors.NotFound:
                contests = []
        return [schemas.ContestOut.model_validate(c) for c in contests]

    def get(self, contest_id: int) -> schemas.ContestOut:
        return schemas.ContestOut.model_validate(self.contest_interactor.find(contest_id))

    def create(self, payload: schemas.ContestIn) -> schemas.ContestOut:
        contest = models.Contest(**payload.model_dump())
        return schemas.ContestOut.model_validate(self.contest_interactor.create_contest(contest))

    def update(self, contest_id: int, payload: schemas.ContestIn) -> schemas.ContestOut:
        contest = models.Contest(id=contest_id, **payload.model_dump())
        return schemas.ContestOut.model_validate(self.contest_interactor.update_contest(contest))


class RankingHandler:
    def __init__(self, ranking_interactor):
        self.ranking_interactor = ranking_interactor

    def current_registration(self, user: SessionUser = Depends(session_user)) -> schemas.RegistrationOut:
        registration = self.ranking_interactor.current_registration(user.id)
        if registration is None:
            raise errors.NotFound("no registration for the current contest")
        return schemas.RegistrationOut.model_validate(registration)

    def rankings_for_registration(self, contest_id: int, user_id: int) -> List[schemas.RankingOut]:
        rankings = self.ranking_interactor.rankings_for_registration(contest_id, user_id)
        return [schemas.RankingOut.model_validate(r) for r in rankings]

    def create(self, payload: schemas.RankingIn, user: SessionUser = Depends(session_user)) -> List[schemas.RankingOut]:
        rankings = self.ranking_interactor.create_ranking(user.id, payload.contest_id, payload.languages)
        return [schemas.RankingOut.model_validate(r) for r in rankings]

    def get(self, contest_id: int, language: Optional[str] = None) -> List[schemas.LeaderboardOut]:
        rows = self.ranking_interactor.rankings_for_contest(contest_id, language)
        return [schemas.LeaderboardOut.model_validate(r) for r in rows]


class ContestLogHandler:
    def __init__(self, contest_log_interactor):
        self.contest_log_interactor = contest_log_interactor

    def create(self, payload: schemas.ContestLogIn, user: SessionUser = Depends(session_user)) -> schemas.ContestLogOut:
        if payload.contest_id is None:
            raise errors.InvalidContestLog("contest_id is required")
        log = models.ContestLog(user_id=user.id, **payload.model_dump())
        return schemas.ContestLogOut.from_log(self.contest_log_interactor.store_log(log))

    def get(self, contest_id: int, user_id: int) -> List[schemas.ContestLogOut]:
        logs = self.contest_log_interactor.fetch_logs(contest_id, user_id)
        return [schemas.ContestLogOut.from_log(log) for log in logs]

    def update(self, log_id: int, payload: schemas.ContestLogIn, user: SessionUser = Depends(session_user)) -> schemas.ContestLogOut:
        log = models.ContestLog(id=log_id, user_id=user.id, **payload.model_dump())
        return schemas.ContestLogOut.from_log(self.contest_log_interactor.update_log(log))

    def delete(self, log_id: int, user: SessionUser = Depends(session_user)):
        self.contest_log_interactor.delete_log(log_id, user.id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
