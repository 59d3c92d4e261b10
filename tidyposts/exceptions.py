"""Exception hierarchy shared by the tutorial pipelines."""


class TidyPostsError(Exception):
    """Base class for errors raised by tidyposts."""


class DataFetchError(TidyPostsError):
    """A public dataset could not be downloaded or parsed."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class DataValidationError(TidyPostsError, ValueError):
    """A table does not have the shape a step expects."""


class PipelineStateError(TidyPostsError, RuntimeError):
    """A pipeline step was called before the step it depends on."""
