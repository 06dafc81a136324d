"""Domain errors shared by the authoring wizard, the correction triage and the roster boundary."""


class ClasspilotError(Exception):
    pass


class ValidationError(ClasspilotError):
    """An Activity, Question or Submission is malformed.

    ``fields`` maps each offending field (dotted path for nested items, e.g.
    ``questions.2.prompt``) to a human-readable message.
    """

    def __init__(self, fields: dict[str, str]):
        self.fields = dict(fields)
        super().__init__("Invalid fields: " + ", ".join(self.fields))


class GenerationFailure(ClasspilotError):
    """The content service timed out or failed; the draft is left untouched."""


class GradingFailure(ClasspilotError):
    """The grading service timed out or failed; the submission stays pending."""

    def __init__(self, message: str, submission_id: str | None = None):
        self.submission_id = submission_id
        super().__init__(message)


class RosterError(ClasspilotError):
    pass


class InvalidTransitionError(ClasspilotError):
    pass
