"""Business rules coordinating repositories and services.

Interactors are what the HTTP handlers call. They validate input, enforce
the rules that span entities (one open contest, ownership of logs,
registration before logging) and persist through the repositories. Every
collaborator is injected so tests can hand in doubles.
"""

import logging
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from . import errors, models
from .security import SessionClaims, SessionUser

logger = logging.getLogger("contest_tracker.interactors")

MIN_PASSWORD_LENGTH = 6


@contextmanager
def persistence(context: str):
    """Wrap database failures into a non-ignorable `InternalError`."""
    try:
        yield
    except SQLAlchemyError as e:
        raise errors.wrap_error(e, context) from e


class SessionInteractor:
    """Registration, login and token refresh."""
    def __init__(self, user_repository, password_hasher, jwt_generator, session_length: timedelta):
        self.user_repository = user_repository
        self.password_hasher = password_hasher
        self.jwt_generator = jwt_generator
        self.session_length = session_length

    def create_user(self, user: models.User):
        """Persist a new user, hashing the password first if needed.

        A user that already carries an id is an update in disguise and is
        rejected with `UserIDPresent`.
        """
        if user.id:
            raise errors.UserIDPresent(f"user with an id ({user.id}) could not be created")
        user.email = models.normalize_email(user.email)
        if user.password and not self.password_hasher.is_hashed(user.password):
            user.password = self.password_hasher.hash(user.password)
        with persistence("could not store user"):
            self.user_repository.store(user)
        logger.info("user created id=%s", user.id)

    def create_session(self, email: str, password: str) -> Tuple[models.User, str]:
        """Check credentials and issue a token for the stored user."""
        with persistence("could not look up user"):
            user = self.user_repository.find_by_email(email)
        if user is None:
            raise errors.UserDoesNotExist()
        if not self.password_hasher.compare(user.password, password):
            raise errors.PasswordIncorrect()
        return user, self._token_for(user)

    def refresh_session(self, user) -> Tuple[models.User, str]:
        """Issue a fresh token built from the stored state of `user`.

        Only the email of the caller is used; the role and other fields are
        re-read from the database so a stale or forged claim cannot survive
        a refresh.
        """
        with persistence("could not look up user"):
            latest = self.user_repository.find_by_email(user.email)
        if latest is None:
            raise errors.UserDoesNotExist()
        return latest, self._token_for(latest)

    def _token_for(self, user: models.User) -> str:
        claims = SessionClaims(user=SessionUser.from_user(user))
        return self.jwt_generator.new_token(self.session_length, claims)


class UserInteractor:
    """Profile and password changes of an authenticated user."""
    def __init__(self, user_repository, password_hasher):
        self.user_repository = user_repository
        self.password_hasher = password_hasher

    def update_password(self, email: str, current_password: str, new_password: str):
        with persistence("could not look up user"):
            user = self.user_repository.find_by_email(email)
        if user is None:
            raise errors.UserDoesNotExist()
        if not self.password_hasher.compare(user.password, current_password):
            raise errors.PasswordIncorrect()
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise errors.InvalidPassword(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        user.password = self.password_hasher.hash(new_password)
        with persistence("could not update password"):
            self.user_repository.update_password(user)

    def update_profile(self, user_id: int, display_name: str, preferences: Optional[models.Preferences] = None) -> models.User:
        if not display_name or not display_name.strip():
            raise errors.InvalidProfile("display name is required")
        with persistence("could not update profile"):
            user = self.user_repository.find_by_id(user_id)
            user.display_name = display_name.strip()
            if preferences is not None:
                user.preferences = preferences.model_dump()
            return self.user_repository.store(user)


class ContestInteractor:
    def __init__(self, contest_repository, validator):
        self.contest_repository = contest_repository
        self.validator = validator

    def create_contest(self, contest: models.Contest) -> models.Contest:
        """Validate and store a new contest.

        An open contest is refused while another one is open. The lookup
        and the insert are not atomic; the partial unique index on `open`
        turns a lost race into the same `OpenContestAlreadyExists`.
        """
        self.validator.validate(contest)
        if contest.open:
            with persistence("could not look up open contests"):
                open_ids = self.contest_repository.get_open_contests()
            if open_ids:
                raise errors.OpenContestAlreadyExists()
        with persistence("could not store contest"):
            self.contest_repository.store(contest)
        logger.info("contest created id=%s open=%s", contest.id, contest.open)
        return contest

    def update_contest(self, contest: models.Contest) -> models.Contest:
        if not contest.id:
            raise errors.ContestIDMissing()
        self.validator.validate(contest)
        if contest.open:
            with persistence("could not look up open contests"):
                others = [i for i in self.contest_repository.get_open_contests() if i != contest.id]
            if others:
                raise errors.OpenContestAlreadyExists()
        with persistence("could not store contest"):
            self.contest_repository.store(contest)
        return contest

    def recent(self, count: int) -> List[models.Contest]:
        with persistence("could not load contests"):
            return self.contest_repository.find_recent(count)

    def all(self) -> List[models.Contest]:
        with persistence("could not load contests"):
            return self.contest_repository.find_all()

    def find(self, contest_id: int) -> models.Contest:
        with persistence("could not load contest"):
            return self.contest_repository.find_by_id(contest_id)


@dataclass
class RankingRegistration:
    """A user's enrolment in a contest: the contest window and languages."""
    contest_id: int
    start: datetime
    end: datetime
    languages: List[str] = field(default_factory=list)


class RankingInteractor:
    """Contest registrations and the leaderboards derived from logs."""
    def __init__(self, ranking_repository, contest_repository, contest_log_repository):
        self.ranking_repository = ranking_repository
        self.contest_repository = contest_repository
        self.contest_log_repository = contest_log_repository

    def create_ranking(self, user_id: int, contest_id: int, languages: List[str]) -> List[models.Ranking]:
        """Register `user_id` for an open contest in the given languages.

        A global ranking is always added next to the per-language ones.
        """
        codes = self._language_codes(languages)
        with persistence("could not register for contest"):
            contest = self.contest_repository.find_by_id(contest_id)
            if not contest.open:
                raise errors.ContestNotOpen()
            if self.ranking_repository.get_all_languages_for_contest_and_user(contest_id, user_id):
                raise errors.AlreadyRegistered()
            created = self.ranking_repository.store_registration(
                contest_id, user_id, [code.value for code in codes + [models.LanguageCode.GLOBAL]]
            )
        logger.info("user %s registered for contest %s in %s", user_id, contest_id, [c.value for c in codes])
        return created

    @staticmethod
    def _language_codes(languages: List[str]) -> List[models.LanguageCode]:
        if not languages:
            raise errors.InvalidRegistration("at least one language is required")
        codes = []
        for raw in languages:
            try:
                code = models.LanguageCode(raw)
            except ValueError:
                raise errors.InvalidRegistration(f"unknown language: {raw}")
            if code == models.LanguageCode.GLOBAL:
                raise errors.InvalidRegistration("the global ranking is added automatically")
            if code in codes:
                raise errors.InvalidRegistration(f"duplicate language: {raw}")
            codes.append(code)
        return codes

    def update_ranking(self, contest_id: int, user_id: int):
        """Recompute every ranking of the registration from the user's logs."""
        with persistence("could not update rankings"):
            rankings = self.ranking_repository.find_by_contest_and_user(contest_id, user_id)
            if not rankings:
                raise errors.UserNotRegistered()
            totals = defaultdict(float)
            for log in self.contest_log_repository.find_all(contest_id, user_id):
                adjusted = log.adjusted_amount()
                totals[log.language] += adjusted
                totals[models.LanguageCode.GLOBAL.value] += adjusted
            for ranking in rankings:
                ranking.amount = round(totals.get(ranking.language, 0.0), 2)
            self.ranking_repository.update_amounts(rankings)

    def current_registration(self, user_id: int) -> Optional[RankingRegistration]:
        """Return the registration for the currently open contest, if any."""
        with persistence("could not load registration"):
            open_ids = self.contest_repository.get_open_contests()
            contest_id = self.ranking_repository.registration_for(open_ids, user_id)
            if contest_id is None:
                return None
            contest = self.contest_repository.find_by_id(contest_id)
            languages = self.ranking_repository.get_all_languages_for_contest_and_user(contest_id, user_id)
        return RankingRegistration(contest_id=contest.id, start=contest.start, end=contest.end, languages=sorted(languages))

    def rankings_for_registration(self, contest_id: int, user_id: int) -> List[models.Ranking]:
        with persistence("could not load rankings"):
            rankings = self.ranking_repository.find_by_contest_and_user(contest_id, user_id)
        if not rankings:
            raise errors.NotFound("registration not found")
        return rankings

    def rankings_for_contest(self, contest_id: int, language: Optional[str] = None):
        language = language or models.LanguageCode.GLOBAL.value
        with persistence("could not load rankings"):
            return self.ranking_repository.find_all(contest_id, language)


class ContestLogInteractor:
    def __init__(self, contest_log_repository, contest_repository, ranking_repository, ranking_interactor, validator):
        self.contest_log_repository = contest_log_repository
        self.contest_repository = contest_repository
        self.ranking_repository = ranking_repository
        self.ranking_interactor = ranking_interactor
        self.validator = validator

    def store_log(self, log: models.ContestLog) -> models.ContestLog:
        """Create or update a log and refresh the owner's rankings.

        Updates keep the contest of the stored log and are only allowed for
        its owner. The contest must be running and the user registered for
        the log's language.
        """
        with persistence("could not store contest log"):
            if log.id:
                existing = self.contest_log_repository.find_by_id(log.id)
                if existing.user_id != log.user_id:
                    raise errors.Forbidden("contest log belongs to another user")
                log.contest_id = existing.contest_id
            self.validator.validate(log)
            if log.contest_id not in self.contest_repository.get_running_contests():
                raise errors.ContestNotRunning()
            languages = self.ranking_repository.get_all_languages_for_contest_and_user(log.contest_id, log.user_id)
            if log.language not in languages:
                raise errors.UserNotRegistered()
            self.contest_log_repository.store(log)
        self.ranking_interactor.update_ranking(log.contest_id, log.user_id)
        return log

    def update_log(self, log: models.ContestLog) -> models.ContestLog:
        if not log.id:
            raise errors.ContestLogIDMissing()
        return self.store_log(log)

    def delete_log(self, log_id: int, user_id: int):
        with persistence("could not delete contest log"):
            existing = self.contest_log_repository.find_by_id(log_id)
            if existing.user_id != user_id:
                raise errors.Forbidden("contest log belongs to another user")
            self.contest_log_repository.delete(log_id)
        self.ranking_interactor.update_ranking(existing.contest_id, existing.user_id)

    def fetch_logs(self, contest_id: int, user_id: int) -> List[models.ContestLog]:
        with persistence("could not load contest logs"):
            return self.contest_log_repository.find_all(contest_id, user_id)
