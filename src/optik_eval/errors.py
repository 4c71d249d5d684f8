# optik_eval/errors.py
"""
Hard failures of the evaluation pipeline.

Per-student problems (no booklet key, no document-type key, never scanned)
are not errors: they are recorded as a status on the ScoredResult.
"""


class ExamDataError(ValueError):
    """Base class for inputs that make a whole evaluation impossible."""


class NoRecordsError(ExamDataError):
    """The optical file contained no parsable (non-blank) lines."""


class EmptyAnswerKeyError(ExamDataError):
    """No answer key was supplied, or it contains no booklets."""


class EmptyRosterError(ExamDataError):
    """The roster has no rows."""


class RosterColumnError(ExamDataError):
    """A mandatory roster column (national ID) could not be located."""
