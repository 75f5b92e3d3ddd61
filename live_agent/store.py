"""Append-only segment storage backed by SQLAlchemy.

Every channel (group) gets its own table named ``<prefix><channel id>``,
created on first write. Rows are never updated or deleted; retractions are
recorded by appending (see :mod:`live_agent.recall`).
"""
import csv
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Union

from sqlalchemy import Engine, MetaData, Select, Table, create_engine, inspect, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.schema import CreateIndex, CreateTable

from .config import DatabaseConfig
from .logger import get_logger
from .schema import Segment, log_table, row_to_segment, segment_table
from .timeutil import now_str, tz_from_offset

# Create logger for this module
logger = get_logger(__name__)

Query = Union[str, Select]


class SegmentStore:
    def __init__(self, engine: Engine, config: DatabaseConfig, utc_offset_hours: int = 8) -> None:
        self.engine = engine
        self.config = config
        self.tz = tz_from_offset(utc_offset_hours)
        self.metadata = MetaData()
        self._tables: dict[int, Table] = {}
        self._lock = threading.RLock()
        self.log_table: Table = log_table(config.log_table_name, self.metadata)

    @classmethod
    def from_config(cls, config: DatabaseConfig, utc_offset_hours: int = 8) -> "SegmentStore":
        engine = create_engine(config.url, pool_size=config.max_connections)
        return cls(engine, config, utc_offset_hours)

    def dispose(self) -> None:
        self.engine.dispose()

    def table_name(self, channel_id: int) -> str:
        return f"{self.config.group_table_prefix}{int(channel_id)}"

    def _create_if_missing(self, table: Table) -> None:
        """Run create-if-missing DDL for a table and its indexes in one transaction."""
        try:
            with self.engine.begin() as conn:
                conn.execute(CreateTable(table, if_not_exists=True))
                for index in table.indexes:
                    conn.execute(CreateIndex(index, if_not_exists=True))
        except SQLAlchemyError:
            # A concurrent first writer may win the race between the existence
            # check and the catalog insert; an existing table is success.
            if not inspect(self.engine).has_table(table.name):
                raise
            logger.debug(f"Table {table.name} was created concurrently")

    def ensure_channel_table(self, channel_id: int) -> Table:
        """Create the channel's table and indexes if absent. Idempotent."""
        table = self._tables.get(channel_id)
        if table is not None:
            return table
        with self._lock:
            table = self._tables.get(channel_id)
            if table is None:
                table = segment_table(self.table_name(channel_id), self.metadata)
                try:
                    self._create_if_missing(table)
                except SQLAlchemyError:
                    # Unregister so the next write can define the table again
                    self.metadata.remove(table)
                    raise
                self._tables[channel_id] = table
                created = True
            else:
                created = False
        if created:
            logger.debug(f"Provisioned segment table {table.name}")
        return table

    def _existing_table(self, channel_id: int) -> Optional[Table]:
        """Table for reads; never provisions a table that was not written to."""
        table = self._tables.get(channel_id)
        if table is not None:
            return table
        if not inspect(self.engine).has_table(self.table_name(channel_id)):
            return None
        return self.ensure_channel_table(channel_id)

    def insert(self, channel_id: int, segment: Segment) -> int:
        """Append one segment and return its auto_id. Storage errors propagate."""
        table = self.ensure_channel_table(channel_id)
        with self.engine.begin() as conn:
            result = conn.execute(
                table.insert().values(
                    message_id=segment.message_id,
                    time=segment.time,
                    sender_id=segment.sender_id,
                    sender_name=segment.sender_name,
                    type=segment.kind.value,
                    content=segment.content,
                    interpret=segment.interpretation,
                )
            )
            return result.inserted_primary_key[0]

    def _recent_select(self, table: Table, n: int) -> Select:
        # "Recent n" counts message events (distinct times), not rows, so a
        # multi-part message is never cut in half
        recent_times = (
            select(table.c.time).distinct().order_by(table.c.time.desc()).limit(n)
        ).scalar_subquery()
        return (
            select(
                table.c.message_id,
                table.c.time,
                table.c.sender_id,
                table.c.sender_name,
                table.c.type,
                table.c.content,
                table.c.interpret,
            )
            .where(table.c.time.in_(recent_times))
            .order_by(table.c.time.asc(), table.c.auto_id.asc())
        )

    def history_query(self, channel_id: int, n: int) -> Select:
        return self._recent_select(self.ensure_channel_table(channel_id), n)

    def load_recent(self, channel_id: int, n: int) -> list[Segment]:
        """Segments of the n most recent distinct timestamps, oldest first."""
        if n < 1:
            return []
        table = self._existing_table(channel_id)
        if table is None:
            return []
        with self.engine.connect() as conn:
            rows = conn.execute(self._recent_select(table, n)).all()
        return [row_to_segment(row) for row in rows]

    def find_by_message_id(self, channel_id: int, message_id: int) -> list[Segment]:
        """All segments sharing a message id, in storage order."""
        table = self._existing_table(channel_id)
        if table is None:
            return []
        query = (
            select(table)
            .where(table.c.message_id == message_id)
            .order_by(table.c.auto_id.asc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(query).all()
        return [row_to_segment(row) for row in rows]

    def export_csv(self, query: Query, destination_path: Union[str, Path]) -> Path:
        """Write the result of a read query to a CSV file with a header row.

        The file only appears once the query has fully succeeded.
        """
        statement = text(query) if isinstance(query, str) else query
        with self.engine.connect() as conn:
            result = conn.execute(statement)
            header = list(result.keys())
            rows = result.all()

        destination = Path(destination_path)
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                writer.writerow(header)
                writer.writerows(rows)
            os.replace(tmp_path, destination)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.info(f"Exported {len(rows)} rows to {destination}")
        return destination

    def export_history_csv(self, channel_id: int, n: int, destination_path: Union[str, Path]) -> Path:
        return self.export_csv(self.history_query(channel_id, n), destination_path)

    # Shared log table

    def ensure_log_table(self) -> None:
        self._create_if_missing(self.log_table)

    def write_log(self, level: str, content: str, time: Optional[str] = None) -> None:
        # No logging here: this is the sink of the database log handler
        with self.engine.begin() as conn:
            conn.execute(
                self.log_table.insert().values(
                    time=time or now_str(self.tz), level=level, content=content
                )
            )

    def log_query(self, n: int) -> Select:
        table = self.log_table
        recent_times = (
            select(table.c.time).distinct().order_by(table.c.time.desc()).limit(n)
        ).scalar_subquery()
        return (
            select(table.c.time, table.c.level, table.c.content)
            .where(table.c.time.in_(recent_times))
            .order_by(table.c.time.asc(), table.c.auto_id.asc())
        )

    def load_recent_logs(self, n: int) -> list[tuple[str, str, str]]:
        if n < 1:
            return []
        with self.engine.connect() as conn:
            return [tuple(row) for row in conn.execute(self.log_query(n)).all()]

    def export_log_csv(self, n: int, destination_path: Union[str, Path]) -> Path:
        return self.export_csv(self.log_query(n), destination_path)
