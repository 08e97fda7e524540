"""Indexed store for large results, with optional persistence.

Everything lives in memory for fast access: a sorted key index for prefix
lookups, a hash map for deduplicated content and a lazily rebuilt search
index. A ``ContentStorage`` backend, when given, keeps the content across runs.
"""

from __future__ import annotations

import bisect
import dataclasses
import struct
import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ariadne.storage.models import (
    ContentKey,
    ContentResult,
    ContentStorage,
    LineRange,
    QueryOptions,
    Result,
    ResultKey,
    ResultMetadata,
    SearchMatch,
    StoredContent,
    StoreOptions,
)
from ariadne.storage.sqlite import StorageError

_DEFAULT_SUMMARY_LENGTH = 200
_DEFAULT_SUMMARY_LINES = 5

_MASK = (1 << 64) - 1
_P1 = 11400714785932984049
_P2 = 14029467366897019727
_P3 = 1609587929392839161
_P4 = 9650029242287828579
_P5 = 2870177450012600261


def _rotl(value: int, bits: int) -> int:
    return ((value << bits) | (value >> (64 - bits))) & _MASK


def _round(acc: int, lane: int) -> int:
    acc = (acc + lane * _P2) & _MASK
    return (_rotl(acc, 31) * _P1) & _MASK


def _merge(acc: int, value: int) -> int:
    acc ^= _round(0, value)
    return (acc * _P1 + _P4) & _MASK


def _xxh64(data: bytes, seed: int = 0) -> int:
    """64-bit xxHash of the data."""
    length = len(data)
    stripes_end = length - length % 32
    if length >= 32:
        v1 = (seed + _P1 + _P2) & _MASK
        v2 = (seed + _P2) & _MASK
        v3 = seed & _MASK
        v4 = (seed - _P1) & _MASK
        for a, b, c, d in struct.iter_unpack("<4Q", data[:stripes_end]):
            v1 = _round(v1, a)
            v2 = _round(v2, b)
            v3 = _round(v3, c)
            v4 = _round(v4, d)
        h = (_rotl(v1, 1) + _rotl(v2, 7) + _rotl(v3, 12) + _rotl(v4, 18)) & _MASK
        for v in (v1, v2, v3, v4):
            h = _merge(h, v)
    else:
        stripes_end = 0
        h = (seed + _P5) & _MASK
    h = (h + length) & _MASK

    tail = data[stripes_end:]
    lanes_end = len(tail) - len(tail) % 8
    for (lane,) in struct.iter_unpack("<Q", tail[:lanes_end]):
        h ^= _round(0, lane)
        h = (_rotl(h, 27) * _P1 + _P4) & _MASK
    rest = tail[lanes_end:]
    if len(rest) >= 4:
        (word,) = struct.unpack_from("<I", rest)
        h ^= (word * _P1) & _MASK
        h = (_rotl(h, 23) * _P2 + _P3) & _MASK
        rest = rest[4:]
    for byte in rest:
        h ^= (byte * _P5) & _MASK
        h = (_rotl(h, 11) * _P1) & _MASK

    h ^= h >> 33
    h = (h * _P2) & _MASK
    h ^= h >> 29
    h = (h * _P3) & _MASK
    h ^= h >> 32
    return h


def compute_content_hash(content: str) -> str:
    """Hex digest (big-endian xxHash64) of the content, used for deduplication."""
    return _xxh64(content.encode("utf-8")).to_bytes(8, "big").hex()


def generate_result_summary(content: str, opts: Optional[StoreOptions] = None) -> str:
    """The first lines of content, limited in line count and length."""
    opts = opts or StoreOptions()
    max_lines = opts.summary_lines if opts.summary_lines > 0 else _DEFAULT_SUMMARY_LINES
    max_len = opts.summary_length if opts.summary_length > 0 else _DEFAULT_SUMMARY_LENGTH

    summary = ""
    taken = 0
    for line in content.split("\n"):
        if taken >= max_lines or len(summary) >= max_len:
            break
        summary = f"{summary}\n{line}" if summary else line
        taken += 1

    if len(summary) > max_len:
        summary = summary[:max_len] + "..."
    return summary


def count_result_lines(content: str) -> int:
    """Number of lines in content; zero for empty content."""
    if not content:
        return 0
    return content.count("\n") + 1


def compose_result_key(key: ResultKey) -> str:
    """The flat ``session:key`` form of a result key."""
    return f"{key.session_id}:{key.key}"


def _find_all(text: str, pattern: str) -> list[int]:
    """All (possibly overlapping) positions of pattern in text."""
    if not pattern:
        return []
    positions = []
    index = text.find(pattern)
    while index != -1:
        positions.append(index)
        index = text.find(pattern, index + 1)
    return positions


class _KeyIndex:
    """Maps flat keys to result keys and answers prefix queries in key order."""

    def __init__(self) -> None:
        self._values: dict[str, ResultKey] = {}
        self._sorted: list[str] = []

    def insert(self, flat: str, key: ResultKey) -> None:
        if flat not in self._values:
            bisect.insort(self._sorted, flat)
        self._values[flat] = key

    def get(self, flat: str) -> Optional[ResultKey]:
        return self._values.get(flat)

    def delete(self, flat: str) -> None:
        if self._values.pop(flat, None) is not None:
            self._sorted.pop(bisect.bisect_left(self._sorted, flat))

    def starts_with(self, prefix: str) -> list[str]:
        start = bisect.bisect_left(self._sorted, prefix)
        matches = []
        for flat in self._sorted[start:]:
            if not flat.startswith(prefix):
                break
            matches.append(flat)
        return matches


@dataclass
class _SearchSpan:
    key: ResultKey
    start: int
    end: int


class ResultStore:
    """Stores large results in memory, optionally persisted to a ContentStorage.

    The store takes ownership of ``content_db``: ``close()`` closes it.
    """

    def __init__(self, content_db: Optional[ContentStorage] = None) -> None:
        self._lock = threading.RLock()
        self._key_index = _KeyIndex()
        self._key_to_hash: dict[str, str] = {}
        self._content_index: dict[str, Result] = {}
        self._session_index: dict[str, list[str]] = {}

        self._search_text = ""
        self._search_spans: list[_SearchSpan] = []
        self._search_dirty = True

        self._content_db = content_db
        if content_db is not None:
            try:
                self._load_from_content_storage()
            except Exception as exc:
                raise StorageError(f"failed to load from SQLite: {exc}") from exc

    def __enter__(self) -> ResultStore:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def store(
        self, key: ResultKey, content: str, opts: Optional[StoreOptions] = None
    ) -> ResultMetadata:
        """Store content under a key and return its metadata."""
        opts = dataclasses.replace(opts) if opts is not None else StoreOptions()
        if opts.summary_length <= 0:
            opts.summary_length = _DEFAULT_SUMMARY_LENGTH
        if opts.summary_lines <= 0:
            opts.summary_lines = _DEFAULT_SUMMARY_LINES

        content_hash = compute_content_hash(content)
        flat = compose_result_key(key)
        now = datetime.now()
        meta = ResultMetadata(
            key=key,
            content_hash=content_hash,
            summary=generate_result_summary(content, opts),
            line_count=count_result_lines(content),
            byte_size=len(content.encode("utf-8")),
            created_at=now,
            accessed_at=now,
            access_count=1,
        )

        with self._lock:
            existing = self._content_index.get(content_hash)
            if existing is not None:
                existing.metadata.accessed_at = now
                existing.metadata.access_count += 1
                meta = dataclasses.replace(existing.metadata, key=key)
            else:
                self._content_index[content_hash] = Result(
                    metadata=dataclasses.replace(meta), content=content
                )
            self._key_index.insert(flat, key)
            self._key_to_hash[flat] = content_hash
            self._add_to_session_index(key)
            self._search_dirty = True
            content_db = self._content_db

        if content_db is not None:
            record = ContentResult(
                session_id=meta.key.session_id,
                key=meta.key.key,
                content_hash=meta.content_hash,
                content=content,
                summary=meta.summary,
                line_count=meta.line_count,
                byte_size=meta.byte_size,
                created_at=int(meta.created_at.timestamp()),
                accessed_at=int(meta.accessed_at.timestamp()),
                access_count=meta.access_count,
            )
            try:
                content_db.store_result(record)
            except Exception as exc:
                raise StorageError(f"failed to persist to SQLite: {exc}") from exc

        return meta

    def get(self, key: ResultKey) -> Optional[Result]:
        """Full content and metadata for a key, recording the access; None if absent."""
        flat = compose_result_key(key)
        with self._lock:
            content_hash = self._key_to_hash.get(flat)
            if content_hash is None:
                return None
            stored = self._content_index.get(content_hash)
            if stored is None:
                return None
            now = datetime.now()
            stored.metadata.accessed_at = now
            stored.metadata.access_count += 1
            metadata = dataclasses.replace(stored.metadata, key=key)
            content = stored.content
            content_db = self._content_db

        if content_db is not None:
            try:
                content_db.update_result_access(key.session_id, key.key)
            except Exception as exc:
                print(f"storage: failed to update access tracking: {exc}", file=sys.stderr)

        return Result(metadata=metadata, content=content)

    def get_metadata(self, key: ResultKey) -> Optional[ResultMetadata]:
        """Metadata for a key without touching access tracking; None if absent."""
        flat = compose_result_key(key)
        with self._lock:
            content_hash = self._key_to_hash.get(flat)
            if content_hash is None:
                return None
            stored = self._content_index.get(content_hash)
            if stored is None:
                return None
            return dataclasses.replace(stored.metadata, key=key)

    def get_lines(self, key: ResultKey, line_range: LineRange) -> str:
        """An inclusive, 1-indexed line range of stored content; empty if absent."""
        result = self.get(key)
        if result is None:
            return ""
        lines = result.content.split("\n")
        start = max(line_range.start - 1, 0)
        end = min(line_range.end, len(lines))
        if start >= end:
            return ""
        return "\n".join(lines[start:end])

    def search(self, session_id: str, pattern: str, limit: int = 0) -> list[SearchMatch]:
        """Find a pattern across the session's stored content."""
        with self._lock:
            if self._search_dirty:
                self._rebuild_search_index(session_id)
            text = self._search_text
            spans = list(self._search_spans)

        if not text:
            return []

        matches: list[SearchMatch] = []
        for pos in _find_all(text, pattern):
            if limit > 0 and len(matches) >= limit:
                break
            span = next(
                (
                    s
                    for s in spans
                    if s.key.session_id == session_id and s.start <= pos < s.end
                ),
                None,
            )
            if span is None:
                continue
            before = text[:pos]
            line_start = before.rfind("\n") + 1
            line_end = text.find("\n", pos)
            if line_end == -1:
                line_end = len(text)
            matches.append(
                SearchMatch(
                    key=span.key,
                    position=pos - span.start,
                    line=before.count("\n") + 1,
                    context=text[line_start:line_end],
                )
            )
        return matches

    def get_by_prefix(self, session_id: str, prefix: str) -> list[ResultMetadata]:
        """Metadata of every result in the session whose key starts with prefix."""
        results = []
        with self._lock:
            for flat in self._key_index.starts_with(f"{session_id}:{prefix}"):
                content_hash = self._key_to_hash.get(flat)
                if content_hash is None:
                    continue
                stored = self._content_index.get(content_hash)
                if stored is None:
                    continue
                result_key = self._key_index.get(flat)
                results.append(dataclasses.replace(stored.metadata, key=result_key))
        return results

    def delete(self, key: ResultKey) -> None:
        """Remove a stored result."""
        flat = compose_result_key(key)
        with self._lock:
            content_hash = self._key_to_hash.pop(flat, None)
            if content_hash is None:
                return
            self._content_index.pop(content_hash, None)
            self._key_index.delete(flat)
            keys = self._session_index.get(key.session_id)
            if keys is not None and key.key in keys:
                keys.remove(key.key)
            self._search_dirty = True
            content_db = self._content_db

        if content_db is not None:
            try:
                content_db.delete_result(key.session_id, key.key)
            except Exception as exc:
                raise StorageError(f"failed to delete from SQLite: {exc}") from exc

    def delete_session(self, session_id: str) -> None:
        """Remove every stored result of a session."""
        with self._lock:
            keys = self._session_index.pop(session_id, None)
            if keys is None:
                return
            for name in keys:
                flat = compose_result_key(ResultKey(session_id, name))
                content_hash = self._key_to_hash.pop(flat, None)
                if content_hash is not None:
                    self._content_index.pop(content_hash, None)
                self._key_index.delete(flat)
            self._search_dirty = True
            content_db = self._content_db

        if content_db is not None:
            try:
                content_db.delete_session_results(session_id)
            except Exception as exc:
                raise StorageError(f"failed to delete session from SQLite: {exc}") from exc

    def list(self, session_id: str, opts: Optional[QueryOptions] = None) -> list[ResultMetadata]:
        """Metadata of the session's stored content, paginated."""
        opts = opts or QueryOptions()
        with self._lock:
            results = [
                dataclasses.replace(stored.metadata)
                for stored in self._content_index.values()
                if stored.metadata.key.session_id == session_id
            ]
        if 0 < opts.offset < len(results):
            results = results[opts.offset:]
        elif opts.offset >= len(results):
            return []
        if 0 < opts.limit < len(results):
            results = results[:opts.limit]
        return results

    def close(self) -> None:
        """Drop in-memory state and close the persistence backend."""
        with self._lock:
            self._content_index = {}
            self._key_to_hash = {}
            self._session_index = {}
            self._key_index = _KeyIndex()
            self._search_text = ""
            self._search_spans = []
            self._search_dirty = True
            content_db, self._content_db = self._content_db, None
        closer = getattr(content_db, "close", None)
        if callable(closer):
            closer()

    def store_content(self, key: ContentKey, content: str) -> StoredContent:
        """Store content under its type and path and return a reference to it."""
        meta = self.store(ResultKey(key.content_type, key.path), content, StoreOptions())
        return StoredContent(
            reference=key.path,
            lines=meta.line_count,
            bytes=meta.byte_size,
            preview=meta.summary,
        )

    def _add_to_session_index(self, key: ResultKey) -> None:
        keys = self._session_index.setdefault(key.session_id, [])
        if key.key not in keys:
            keys.append(key.key)

    def _rebuild_search_index(self, session_id: str) -> None:
        parts: list[str] = []
        spans: list[_SearchSpan] = []
        offset = 0
        for stored in self._content_index.values():
            if stored.metadata.key.session_id != session_id:
                continue
            parts.append(stored.content + "\x00")
            end = offset + len(stored.content)
            spans.append(_SearchSpan(stored.metadata.key, offset, end))
            offset = end + 1
        self._search_text = "".join(parts)
        self._search_spans = spans
        self._search_dirty = False

    def _load_from_content_storage(self) -> None:
        assert self._content_db is not None
        records = self._content_db.load_all_results()
        with self._lock:
            for record in records:
                key = ResultKey(record.session_id, record.key)
                meta = ResultMetadata(
                    key=key,
                    content_hash=record.content_hash,
                    summary=record.summary,
                    line_count=record.line_count,
                    byte_size=record.byte_size,
                    created_at=datetime.fromtimestamp(record.created_at),
                    accessed_at=datetime.fromtimestamp(record.accessed_at),
                    access_count=record.access_count,
                )
                self._content_index[meta.content_hash] = Result(
                    metadata=meta, content=record.content
                )
                flat = compose_result_key(key)
                self._key_index.insert(flat, key)
                self._key_to_hash[flat] = meta.content_hash
                self._add_to_session_index(key)