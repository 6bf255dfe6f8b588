"""
Error kinds raised by the plan generation engine.

Every error carries a short ``kind`` tag and a plain message that is safe to
show a user. Raw text-model output is never placed in a message.
"""


class CoachError(Exception):
    """Base class for all engine failures."""

    kind = "CoachError"

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def user_message(self):
        return f"{self.message} [{self.kind}]"


class NoActiveGoal(CoachError):
    kind = "NoActiveGoal"

    def __init__(self, user_id):
        super().__init__(f"User {user_id} has no active goal. Set a goal before generating a plan.")
        self.user_id = user_id


class NoCandidatesAvailable(CoachError):
    kind = "NoCandidatesAvailable"

    def __init__(self, label, detail=""):
        message = f"No {label} candidates available after filtering"
        if detail:
            message += f" ({detail})"
        super().__init__(message + ".")
        self.label = label


class GenerationParseFailure(CoachError):
    kind = "GenerationParseFailure"


class ConstraintViolation(CoachError):
    kind = "ConstraintViolation"

    def __init__(self, errors, warnings=None):
        errors = list(errors or [])
        super().__init__(f"Generated plan broke {len(errors)} constraint(s).")
        self.errors = errors
        self.warnings = list(warnings or [])


class GenerationExhausted(CoachError):
    kind = "GenerationExhausted"

    def __init__(self, label, attempts, errors):
        errors = list(errors or [])
        message = f"Could not generate a valid {label} after {attempts} attempt(s)"
        if errors:
            message += f"; last problems: {'; '.join(errors[:5])}"
        super().__init__(message + ".")
        self.label = label
        self.attempts = attempts
        self.errors = errors


class DuplicateSession(CoachError):
    kind = "DuplicateSession"

    def __init__(self, user_id, date):
        super().__init__(f"A workout session already exists for user {user_id} on {date}.")
        self.user_id = user_id
        self.date = date


class ImmutableItem(CoachError):
    kind = "ImmutableItem"
