"""Domain exceptions."""


class DocsyncError(Exception):
    """Base class for errors surfaced to the user."""


class CommentNotFoundError(DocsyncError):
    """Raised when a local comment id does not exist."""

    def __init__(self, comment_id: str):
        super().__init__(f"Comment {comment_id} not found")
        self.comment_id = comment_id


class SaveError(DocsyncError):
    """A save attempt failed; the edit buffer is left untouched."""


class BranchCreationError(SaveError):
    """The isolated branch for this session could not be created."""


class ContentWriteError(SaveError):
    """The content commit to the target branch failed."""


class UnsavedChangesError(DocsyncError):
    """A branch switch would discard edits that were never committed."""
