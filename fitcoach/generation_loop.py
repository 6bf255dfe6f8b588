"""
Bounded generate -> validate -> retry loop as an explicit state machine.
"""

from fitcoach.errors import ConstraintViolation, GenerationExhausted, GenerationParseFailure


ATTEMPT = "attempt"
GENERATE = "generate"
VALIDATE = "validate"
ACCEPTED = "accepted"
RETRY = "retry"
FAILED = "failed"

TERMINAL_STATES = (ACCEPTED, FAILED)


class GenerationLoop:
    """
    Drives one generation request to ACCEPTED or FAILED.

    Args:
        label: what is being generated ("workout", "meal plan", ...).
        generate: callable(previous_errors) -> candidate; may raise
            GenerationParseFailure.
        validate: callable(candidate) -> validation result dict.
        max_attempts: how many generate calls are allowed.

    Attempts run strictly one after another. Parse failures and validation
    errors become the ``previous_errors`` fed to the next attempt; any other
    exception propagates unretried.
    """

    def __init__(self, label, generate, validate, max_attempts=3):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.label = label
        self.generate = generate
        self.validate = validate
        self.max_attempts = max_attempts

        self.state = ATTEMPT
        self.attempts = 0
        self.candidate = None
        self.result = None
        self.last_errors = []
        self.history = []

    @property
    def done(self):
        return self.state in TERMINAL_STATES

    def step(self):
        """Perform one transition and return the new state."""
        if self.state == ATTEMPT:
            if self.attempts >= self.max_attempts:
                self.state = FAILED
            else:
                self.attempts += 1
                self.state = GENERATE

        elif self.state == GENERATE:
            try:
                self.candidate = self.generate(list(self.last_errors))
            except GenerationParseFailure as e:
                self.candidate = None
                self._reject([e.message], "parse_failure")
            else:
                self.state = VALIDATE

        elif self.state == VALIDATE:
            self.result = self.validate(self.candidate)
            if self.result.get("valid"):
                self.history.append({"attempt": self.attempts, "outcome": "accepted", "errors": []})
                self.state = ACCEPTED
            else:
                violation = ConstraintViolation(
                    [v["message"] if isinstance(v, dict) else str(v) for v in self.result.get("errors", [])],
                    self.result.get("warnings"),
                )
                self._reject(violation.errors, "constraint_violation")

        elif self.state == RETRY:
            next_step = "retrying..." if self.attempts < self.max_attempts else "no attempts left."
            print(f"  ⚠ {self.label} attempt {self.attempts} rejected ({len(self.last_errors)} problem(s)), {next_step}")
            self.state = ATTEMPT

        return self.state

    def _reject(self, errors, outcome):
        self.last_errors = list(errors)
        self.history.append({"attempt": self.attempts, "outcome": outcome, "errors": list(errors)})
        self.state = RETRY

    def run(self):
        """Step until terminal; return the accepted candidate or raise GenerationExhausted."""
        while not self.done:
            self.step()
        if self.state == FAILED:
            raise GenerationExhausted(self.label, self.attempts, self.last_errors)
        return self.candidate
