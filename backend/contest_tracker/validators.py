"""Field-level validation for contests and contest logs.

Validators are plain objects with a `validate` method so interactors can
be handed a different implementation in tests.
"""

import math

from . import errors, models


class ContestValidator:
    def validate(self, contest: models.Contest):
        """Raise `InvalidContest` when a required field is missing or start > end."""
        if not contest.description or not contest.description.strip():
            raise errors.InvalidContest("description is required")
        if contest.start is None or contest.end is None:
            raise errors.InvalidContest("start and end are required")
        if models.as_utc(contest.start) > models.as_utc(contest.end):
            raise errors.InvalidContest("start must not be after end")


class ContestLogValidator:
    def validate(self, log: models.ContestLog):
        if log.amount is None or not math.isfinite(log.amount) or log.amount < 0:
            raise errors.InvalidContestLog("amount must be a finite number >= 0")
        try:
            language = models.LanguageCode(log.language)
        except ValueError:
            raise errors.InvalidContestLog(f"unknown language: {log.language}")
        if language == models.LanguageCode.GLOBAL:
            raise errors.InvalidContestLog("logs must be recorded in a specific language")
        try:
            models.Medium(log.medium_id)
        except ValueError:
            raise errors.InvalidContestLog(f"unknown medium: {log.medium_id}")
        if log.contest_id is None or log.user_id is None:
            raise errors.InvalidContestLog("contest and user are required")
