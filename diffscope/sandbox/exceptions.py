class SandboxError(Exception):
    """Base class for sandbox policy violations. `error_type` is the stable code."""

    error_type = "sandbox_error"

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class PathEscapeError(SandboxError):
    error_type = "path_escape"

    def __init__(self, candidate: str):
        super().__init__(f"Path {candidate} escapes the repository root", candidate)


class SymLinkError(SandboxError):
    error_type = "symlink_rejected"

    def __init__(self, path: str):
        super().__init__(f"Path contains symlink: {path}", path)


class NotAFileError(SandboxError):
    error_type = "not_a_file"

    def __init__(self, path: str):
        super().__init__(f"Path {path} is not a file", path)


class NotADirectoryPathError(SandboxError):
    error_type = "not_a_directory"

    def __init__(self, path: str):
        super().__init__(f"Path {path} is not a directory", path)


class PathNotFoundError(SandboxError):
    error_type = "not_found"

    def __init__(self, path: str):
        super().__init__(f"Path {path} does not exist", path)


class SizeLimitExceededError(SandboxError):
    error_type = "size_limit_exceeded"

    def __init__(self, path: str, limit: int, actual: int):
        super().__init__(
            f"File {path} is {actual} bytes, exceeding the maximum allowed size of {limit} bytes",
            path,
        )
        self.limit = limit
        self.actual = actual
