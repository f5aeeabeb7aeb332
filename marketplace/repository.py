"""Document stores holding the accounts/items/orders snapshot.

Three adapters implement the ``DocumentStore`` port:

- ``InMemoryDocumentStore``: a dict kept in the process, for tests and demos.
- ``JsonFileDocumentStore``: the ``data.json`` file the marketplace has
  always used, rewritten atomically (temp file + rename).
- ``SqlDocumentStore``: one SQLAlchemy row per collection holding its JSON
  document, for deployments with a real database.

All of them share the single-writer discipline of ``BaseDocumentStore``:
``transaction()`` holds a process-wide lock for one load-mutate-save cycle,
so two concurrent orders can never read the same stock and both decrement
it. If the block raises, the snapshot is discarded and nothing is written.
"""

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import JSON, String, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, mapped_column

from .domain import DocumentStore, Snapshot
from .exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

COLLECTIONS = ("accounts", "items", "orders")


class BaseDocumentStore(DocumentStore):
    """Lock discipline shared by every store.

    Subclasses implement ``_read_document`` and ``_write_document``; errors
    they raise (I/O, malformed JSON, database errors) surface as
    ``StoreUnavailable``.
    """

    def __init__(self):
        self._lock = threading.Lock()

    def _read_document(self) -> Optional[dict]:
        raise NotImplementedError()

    def _write_document(self, document: dict) -> None:
        raise NotImplementedError()

    def load(self) -> Snapshot:
        try:
            return Snapshot.from_document(self._read_document())
        except StoreUnavailable:
            raise
        except (OSError, ValueError, KeyError, TypeError, SQLAlchemyError) as e:
            logger.error("snapshot load failed", extra={"error": repr(e)})
            raise StoreUnavailable(f"cannot load snapshot: {e}") from e

    def save(self, snapshot: Snapshot) -> None:
        try:
            self._write_document(snapshot.to_document())
        except (OSError, TypeError, SQLAlchemyError) as e:
            logger.error("snapshot save failed", extra={"error": repr(e)})
            raise StoreUnavailable(f"cannot save snapshot: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator[Snapshot]:
        """Serialized load-mutate-save of one snapshot.

        Not reentrant: a nested transaction from the same thread blocks.

        Yields:
            Snapshot: A fresh copy the caller may mutate freely.
        """
        with self._lock:
            snapshot = self.load()
            yield snapshot
            self.save(snapshot)

    @contextmanager
    def read(self) -> Iterator[Snapshot]:
        """Serialized read-only view; changes to the snapshot are dropped."""
        with self._lock:
            yield self.load()


class InMemoryDocumentStore(BaseDocumentStore):
    """Keeps the serialized document in memory.

    Each load rebuilds entities from the stored document so callers never
    share objects across operations.
    """

    def __init__(self, document: Optional[dict] = None):
        super().__init__()
        self._document = json.loads(json.dumps(document)) if document else None

    def _read_document(self) -> Optional[dict]:
        return self._document

    def _write_document(self, document: dict) -> None:
        self._document = document


class JsonFileDocumentStore(BaseDocumentStore):
    """Stores the snapshot as an indented JSON file.

    A missing file is an empty marketplace (first run). A file that cannot
    be read or parsed is an error, never silently treated as empty.
    """

    def __init__(self, path: str | os.PathLike):
        super().__init__()
        self.path = Path(path)

    def _read_document(self) -> Optional[dict]:
        if not self.path.exists():
            return None
        with self.path.open("r", encoding="utf-8") as fh:
            return json.load(fh)

    def _write_document(self, document: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise


# ---- SQLAlchemy ----
class Base(DeclarativeBase):
    pass


class Document(Base):
    """SQLAlchemy model holding one collection of the snapshot.

    Attributes:
        name: Collection name (``accounts``, ``items`` or ``orders``), primary key.
        body: JSON list of the collection's documents.
    """

    __tablename__ = "documents"
    name = mapped_column(String(32), primary_key=True)
    body = mapped_column(JSON, nullable=False, default=list)


class SqlDocumentStore(BaseDocumentStore):
    """Snapshot store backed by a relational database.

    ``transaction()`` runs inside a single database transaction and loads the
    rows with ``SELECT ... FOR UPDATE`` so several processes sharing the
    database serialize as well (SQLite ignores the clause; the in-process
    lock still applies).
    """

    def __init__(self, url: str, **engine_kwargs):
        super().__init__()
        engine_kwargs.setdefault("pool_pre_ping", True)
        self.engine = create_engine(url, **engine_kwargs)

    def init_db(self) -> None:
        """Create the ``documents`` table and its rows if missing."""
        try:
            Base.metadata.create_all(self.engine)
            with Session(self.engine) as s:
                for name in COLLECTIONS:
                    if s.get(Document, name) is None:
                        s.add(Document(name=name, body=[]))
                s.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailable(f"cannot initialize database: {e}") from e

    @staticmethod
    def _rows_to_document(rows) -> dict:
        return {r.name: r.body for r in rows}

    @staticmethod
    def _merge(s: Session, document: dict) -> None:
        for name in COLLECTIONS:
            s.merge(Document(name=name, body=document.get(name, [])))

    def _read_document(self) -> Optional[dict]:
        with Session(self.engine) as s:
            return self._rows_to_document(s.scalars(select(Document)).all())

    def _write_document(self, document: dict) -> None:
        with Session(self.engine) as s:
            self._merge(s, document)
            s.commit()

    @contextmanager
    def transaction(self) -> Iterator[Snapshot]:
        with self._lock, Session(self.engine) as s:
            try:
                rows = s.scalars(select(Document).with_for_update()).all()
                snapshot = Snapshot.from_document(self._rows_to_document(rows))
            except SQLAlchemyError as e:
                raise StoreUnavailable(f"cannot load snapshot: {e}") from e

            yield snapshot

            try:
                self._merge(s, snapshot.to_document())
                s.commit()
            except SQLAlchemyError as e:
                s.rollback()
                raise StoreUnavailable(f"cannot save snapshot: {e}") from e
