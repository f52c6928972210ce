"""Error taxonomy for the intake and matching pipeline.

Extraction gaps are not errors: extractors return empty values instead.
"""


class PipelineError(Exception):
    """Base class for pipeline errors."""


class InvalidTaskInput(PipelineError, ValueError):
    """Malformed payload or unknown queue. Raised synchronously from enqueue."""


class BackendUnavailable(PipelineError):
    """Queue, cache or store infrastructure cannot be reached."""


class HandlerTimeout(PipelineError):
    """A handler ran longer than its allowed duration."""


class TaskNotFound(PipelineError, KeyError):
    pass


class ProfileNotFound(PipelineError, KeyError):
    pass


class PostingNotFound(PipelineError, KeyError):
    pass


class DocumentReadError(PipelineError):
    """The source document could not be turned into text."""


def describe(exc: BaseException) -> str:
    """Human-readable error string surfaced through task status."""
    message = str(exc)
    if isinstance(exc, KeyError) and exc.args:
        message = str(exc.args[0])
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__
