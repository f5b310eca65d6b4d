"""In-memory, channel based log shown to application users.

Entries are collapsed when the same message repeats, enriched with a shared
context (user, uri, model...) and flushed to the ``log_messages`` table on
``save()``. Each entry is mirrored to the stdlib logger
``erpia_core.minilog.<channel>`` so operators see the same stream.
"""

from __future__ import annotations
import logging
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol

from erpia_core.core.config import settings

DEFAULT_CHANNEL = 'system'
MESSAGE_LIMIT = 5000

_LEVELS = {
    'critical': logging.CRITICAL,
    'error': logging.ERROR,
    'warning': logging.WARNING,
    'notice': logging.INFO,
    'info': logging.INFO,
    'debug': logging.DEBUG,
}


class LogStorage(Protocol):
    def persist(self, entries: List[Dict[str, Any]]) -> bool: ...


class MiniLogStorage:
    """Writes entries as ``LogMessage`` rows.

    Debug entries are never stored and the system channel only keeps
    critical and error entries.
    """

    def persist(self, entries: List[Dict[str, Any]]) -> bool:
        from erpia_core.db.session import SessionLocal
        from erpia_core.models.log_message import LogMessage

        db = SessionLocal()
        try:
            for entry in entries:
                if entry['level'] == 'debug':
                    continue
                if entry['channel'] == DEFAULT_CHANNEL and entry['level'] not in ('critical', 'error'):
                    continue
                ctx = entry['context']
                db.add(LogMessage(
                    channel=entry['channel'],
                    level=entry['level'],
                    message=entry['message'],
                    context=ctx or None,
                    model=ctx.get('model-class'),
                    model_id=_as_text(ctx.get('model-id')),
                    user_id=_as_text(ctx.get('user')),
                    client_ip=_as_text(ctx.get('ip')),
                    uri=_as_text(ctx.get('uri')),
                    count=entry['count'],
                    time=datetime.fromtimestamp(entry['time']),
                ))
            db.commit()
            return True
        except Exception:
            db.rollback()
            logging.getLogger(__name__).error("failed to persist log entries", exc_info=True)
            return False
        finally:
            db.close()


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _interpolate(message: str, context: Dict[str, Any]) -> str:
    for key, value in context.items():
        if key.startswith('%') and key.endswith('%'):
            message = message.replace(key, str(value))
    return message


class MiniLog:
    _context: Dict[str, Any] = {}
    _entries: List[Dict[str, Any]] = []
    _disabled = False
    _storage: Optional[LogStorage] = None

    def __init__(self, channel: str = ''):
        self.channel = channel or DEFAULT_CHANNEL
        self._logger = logging.getLogger(f'erpia_core.minilog.{self.channel}')

    # -- class level state ---------------------------------------------------
    @classmethod
    def clear(cls, channel: str = '') -> None:
        if not channel:
            cls._entries.clear()
            return
        cls._entries[:] = [e for e in cls._entries if e['channel'] != channel]

    @classmethod
    def get_context(cls, key: str) -> Any:
        return cls._context.get(key, '')

    @classmethod
    def set_context(cls, key: str, value: Any) -> None:
        cls._context[key] = value

    @classmethod
    def clear_context(cls) -> None:
        cls._context.clear()

    @classmethod
    def set_enabled(cls, enabled: bool = True) -> None:
        cls._disabled = not enabled

    @classmethod
    def set_storage(cls, storage: LogStorage) -> None:
        cls._storage = storage

    @classmethod
    def read(cls, channel: str = '', levels: Iterable[str] = ()) -> List[Dict[str, Any]]:
        levels = list(levels)
        out = []
        for entry in cls._entries:
            if channel and entry['channel'] != channel:
                continue
            if levels and entry['level'] not in levels:
                continue
            out.append(entry)
        return out

    @classmethod
    def save(cls, channel: str = '') -> bool:
        if cls._storage is None:
            cls._storage = MiniLogStorage()
        entries = list(cls._entries) if not channel else cls.read(channel)
        cls.clear(channel)
        # Storage may log on its own; keep those lines out of the buffer.
        cls.set_enabled(False)
        try:
            return cls._storage.persist(entries)
        finally:
            cls.set_enabled(True)

    # -- per channel ---------------------------------------------------------
    def critical(self, message: str, context: Dict[str, Any] | None = None) -> None:
        self._log('critical', message, context)

    def error(self, message: str, context: Dict[str, Any] | None = None) -> None:
        self._log('error', message, context)

    def warning(self, message: str, context: Dict[str, Any] | None = None) -> None:
        self._log('warning', message, context)

    def notice(self, message: str, context: Dict[str, Any] | None = None) -> None:
        self._log('notice', message, context)

    def info(self, message: str, context: Dict[str, Any] | None = None) -> None:
        self._log('info', message, context)

    def debug(self, message: str, context: Dict[str, Any] | None = None) -> None:
        if settings.debug:
            self._log('debug', message, context)

    def _log(self, level: str, message: str, context: Dict[str, Any] | None) -> None:
        if not message or MiniLog._disabled:
            return
        context = dict(context or {})
        full_context = {**context, **MiniLog._context}
        text = _interpolate(message, context)
        self._logger.log(_LEVELS[level], text)

        for entry in MiniLog._entries:
            if (entry['channel'] == self.channel and entry['level'] == level
                    and entry['message'] == text and entry['context'] == full_context):
                entry['count'] += 1
                return

        MiniLog._entries.append({
            'channel': self.channel,
            'context': full_context,
            'count': 1,
            'level': level,
            'message': text,
            'original': message,
            'time': context.get('time', time.time()),
        })
        if len(MiniLog._entries) > MESSAGE_LIMIT:
            MiniLog.save(self.channel)


def log(channel: str = '') -> MiniLog:
    return MiniLog(channel)
