"""SQLAlchemy table definitions for the replication history schema.

Uses SQLAlchemy Core (not ORM) for explicit control over the purge
statements. Table names and schema come from configuration, so tables are
built per database rather than declared at module level.
"""

from dataclasses import dataclass

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
)


@dataclass(frozen=True)
class HistoryTables:
    """History and progress tables of one replication service."""

    metadata: MetaData
    history: Table
    progress: Table


def build_tables(
    *,
    history_table: str = "history",
    progress_table: str = "trep_commit_seqno",
    schema: str | None = None,
) -> HistoryTables:
    """Build table objects for the configured names.

    Only the columns the purge reads are required to exist. The
    remaining columns are declared so create_all() produces a usable
    development schema.

    Args:
        history_table: Append-only history table name
        progress_table: Per-channel commit progress table name
        schema: Schema (database) holding both tables
    """
    metadata = MetaData(schema=schema)

    # === Applied event history ===

    history = Table(
        history_table,
        metadata,
        Column("seqno", BigInteger, primary_key=True),
        Column("fragno", Integer, primary_key=True, default=0),
        Column("source_id", String(128)),
        Column("eventid", String(128)),
        Column("processed_tstamp", DateTime, nullable=False, index=True),
    )

    # === Commit progress, one row per replication channel ===

    progress = Table(
        progress_table,
        metadata,
        Column("task_id", Integer, primary_key=True),
        Column("seqno", BigInteger, nullable=False),
        Column("eventid", String(128)),
        Column("update_timestamp", DateTime),
    )

    return HistoryTables(metadata=metadata, history=history, progress=progress)
