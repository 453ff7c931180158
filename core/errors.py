"""Exception types raised while reconciling a repository."""


class RepostatError(Exception):
    """Base class for repostat errors."""


class RepositoryReadError(RepostatError):
    """
    The repository directory could not be listed.

    Fatal: the whole reconciliation run is aborted.
    """


class CorruptDatabaseError(RepostatError):
    """
    The repository database is unreadable or contains malformed records.

    Fatal: the whole reconciliation run is aborted.
    """


class InvalidPackageFilename(RepostatError):
    """A file in the repository does not follow the package filename grammar."""


class DuplicateVersionWarning(RepostatError):
    """Two package files of the same name carry an identical version."""


class NetworkError(RepostatError):
    """
    The remote metadata service failed to answer a lookup.

    Covers connection failures, HTTP errors and error bodies. Timeouts are
    reported separately as the built-in TimeoutError.
    """
