"""PostgreSQL access: batched inserts, event store and student directory."""

from .batch_insert import BatchInsertError, BatchMetrics, InsertResult
from .event_store import WRITE_ERRORS, EventStore, EventStoreError
from .student_directory import InMemoryStudentDirectory, PostgresStudentDirectory, RosterEntry

# batch_insert() itself is imported from merit_ingest.db.batch_insert so the
# package attribute stays the submodule
__all__ = [
    "BatchInsertError",
    "BatchMetrics",
    "InsertResult",
    "EventStore",
    "EventStoreError",
    "WRITE_ERRORS",
    "InMemoryStudentDirectory",
    "PostgresStudentDirectory",
    "RosterEntry",
]
