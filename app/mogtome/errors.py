"""Error taxonomy for a roster sync cycle.

Fetch, load and validation errors abort before anything is written.
PersistenceWriteError may leave earlier batches of the same cycle committed.
Each stage writes its events right after its member batch, so if that event
write fails the stage's joins or updates are on disk without their events,
and the next cycle sees no transition to announce again.
NotificationError never aborts a cycle; the orchestrator logs it.
"""


class SyncError(Exception):
    """Base class for every error raised by a sync cycle."""


class SourceFetchError(SyncError):
    """The live roster could not be fetched or parsed."""


class ArchiveLoadError(SyncError):
    """The archived snapshot could not be read from the store."""


class DataQualityError(SyncError):
    """The fresh roster failed a sanity check and must not be diffed."""


class PersistenceWriteError(SyncError):
    """A write to the store failed; earlier writes may already be committed."""


class NotificationError(SyncError):
    """Events could not be delivered downstream."""
