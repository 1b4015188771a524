"""
Exception hierarchy for the mood diary domain.
"""

from typing import Dict, List, Optional


class MoodDiaryError(Exception):
    """Base class for all mood diary errors."""
    pass


class ValidationError(MoodDiaryError):
    """Raised when an entry breaks the MoodEntry invariants."""

    def __init__(self, field_errors: Dict[str, List[str]]):
        self.field_errors = field_errors
        details = "; ".join(
            f"{field}: {', '.join(problems)}" for field, problems in field_errors.items()
        )
        super().__init__(f"Invalid mood entry ({details})")


class ParseError(MoodDiaryError):
    """Raised when the persisted store is not a valid JSON array."""
    pass


class AnalysisError(MoodDiaryError):
    """Raised when image feature extraction fails."""

    def __init__(self, message: str = "Failed to analyze image", cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class ImportFormatError(MoodDiaryError):
    """Raised when an import file is not a valid mood diary export."""
    pass
