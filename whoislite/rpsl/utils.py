#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+

import enum

from collections import defaultdict
from typing import Dict, Iterable, List, NamedTuple, Optional, Set, Tuple

from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError

from whoislite import app, db
from whoislite.dbutils import BatchWriter
from whoislite.util import _sha512

from .models import RpslObject, RpslOrigin, RpslMntBy

ALLOWED_KEYS = {
    'aut-num',
    'as-set',
    'organisation',
    'mntner',
    'role',
    'route',
    'route6',
}

# object types that feed the derived indices
ORIGIN_KEYS = {'route', 'route6'}
MNTBY_KEYS = {'role', 'aut-num', 'as-set'}

DELETE_CHUNK_SIZE = 500


class RpslState(enum.Enum):
    IDLE = 0
    ACCUMULATING = 1
    SUPPRESSING = 2


class RpslBlock(NamedTuple):
    key: str
    value: str
    text: str


def _rpsl_attribute_values(text: str, attr: str) -> List[str]:
    """ Returns every value of an attribute in a block, without trailing comments """
    values: List[str] = []
    for line in text.splitlines():
        name, sep, value = line.partition(':')
        if not sep or name.strip().lower() != attr:
            continue
        value = value.split('#', 1)[0].strip()
        if value:
            values.append(value)
    return values


class RpslParser:
    """
    Splits a stream of RPSL text into blocks separated by blank lines.

    Call feed() with each line; it returns a finished RpslBlock when a blank
    line closes one. Call finish() at the end of the stream for the last one.
    A block whose first line repeats a (key, value) pair seen earlier in the
    same stream is suppressed until the next blank line.
    """

    def __init__(self):
        self.state = RpslState.IDLE
        self.key: Optional[str] = None
        self.value: Optional[str] = None
        self.lines: List[str] = []
        self.seen: Set[Tuple[str, str]] = set()
        self.duplicates = 0

    def _reset(self) -> None:
        self.state = RpslState.IDLE
        self.key = None
        self.value = None
        self.lines = []

    def _close(self) -> Optional[RpslBlock]:
        block = None
        if self.state == RpslState.ACCUMULATING and self.lines:
            block = RpslBlock(self.key, self.value, ''.join([line + '\n' for line in self.lines]))
        self._reset()
        return block

    def _open(self, line: str) -> None:
        parts = line.split(None, 1)
        if len(parts) < 2:
            app.logger.warning('invalid RPSL line format: %s', line.strip())
            self.state = RpslState.SUPPRESSING
            return
        key = parts[0].strip()
        if key.endswith(':'):
            key = key[:-1]
        value = parts[1].strip()
        if key in ALLOWED_KEYS:
            if (key, value.lower()) in self.seen:
                app.logger.warning('object %s already exists in %s', value, key)
                self.duplicates += 1
                self.state = RpslState.SUPPRESSING
                return
            self.seen.add((key, value.lower()))
        self.key = key
        self.value = value
        self.state = RpslState.ACCUMULATING

    def feed(self, line: str) -> Optional[RpslBlock]:
        if line.startswith('#') or line.startswith('%'):
            return None
        if not line.strip():
            return self._close()
        if self.state == RpslState.SUPPRESSING:
            return None
        if self.state == RpslState.IDLE:
            self._open(line)
            if self.state != RpslState.ACCUMULATING:
                return None
        self.lines.append(line.strip())
        return None

    def finish(self) -> Optional[RpslBlock]:
        return self._close()


class RpslContext:
    """ Writes blocks from one file and removes whatever the file no longer has """

    def __init__(self, url: Optional[str] = None):
        self.url = url
        self.writer = BatchWriter(app.config.get('BATCH_SIZE', 1000))
        self.stats: Dict[str, int] = defaultdict(int)

        # everything seen in this file, case-folded like the NOCASE columns
        self.objects: Set[Tuple[str, str]] = set()
        self.origins: Set[Tuple[str, str]] = set()
        self.mntbys: Set[Tuple[str, str, str]] = set()

        stmt = insert(RpslObject.__table__)
        self._stmt_object = stmt.on_conflict_do_update(index_elements=['key', 'value'],
                                                       set_={'block': stmt.excluded.block,
                                                             'source_url': stmt.excluded.source_url})
        stmt = insert(RpslOrigin.__table__)
        self._stmt_origin = stmt.on_conflict_do_update(index_elements=['origin', 'route'],
                                                       set_={'source_url': stmt.excluded.source_url})
        stmt = insert(RpslMntBy.__table__)
        self._stmt_mntby = stmt.on_conflict_do_update(index_elements=['mntby', 'key', 'value'],
                                                      set_={'source_url': stmt.excluded.source_url})

    def _needs_write(self, block: RpslBlock) -> bool:
        row = db.session.query(RpslObject.block, RpslObject.source_url)\
                        .filter(RpslObject.key == block.key)\
                        .filter(RpslObject.value == block.value)\
                        .first()
        if not row:
            self.stats['inserted'] += 1
            return True
        if _sha512(row.block) != _sha512(block.text):
            app.logger.info('update RPSL record for [%s : %s]', block.key, block.value)
            self.stats['updated'] += 1
            return True
        if row.source_url != self.url:
            self.stats['moved'] += 1
            return True
        self.stats['unchanged'] += 1
        return False

    def save(self, block: RpslBlock) -> None:
        if block.key not in ALLOWED_KEYS:
            return
        self.stats['blocks'] += 1
        self.objects.add((block.key, block.value.lower()))
        write = self._needs_write(block)
        if write:
            self.writer.add('rpsl', self._stmt_object, {'key': block.key,
                                                        'value': block.value,
                                                        'block': block.text,
                                                        'source_url': self.url})

        if block.key in ORIGIN_KEYS:
            for origin in _rpsl_attribute_values(block.text, 'origin'):
                self.origins.add((origin.lower(), block.value.lower()))
                if write:
                    self.writer.add('origin', self._stmt_origin, {'origin': origin,
                                                                  'route': block.value,
                                                                  'source_url': self.url})
        elif block.key in MNTBY_KEYS:
            for mntby in _rpsl_attribute_values(block.text, 'mnt-by'):
                self.mntbys.add((mntby.lower(), block.key, block.value.lower()))
                if write:
                    self.writer.add('mntby', self._stmt_mntby, {'mntby': mntby,
                                                                'key': block.key,
                                                                'value': block.value,
                                                                'source_url': self.url})

    def _delete_ids(self, model, ids: List[int]) -> None:
        for i in range(0, len(ids), DELETE_CHUNK_SIZE):
            db.session.query(model)\
                      .filter(model.id.in_(ids[i:i + DELETE_CHUNK_SIZE]))\
                      .delete(synchronize_session=False)

    def sweep(self) -> None:

        if not self.objects:
            app.logger.info('no objects processed, skipping outdated RPSL cleanup')
            return

        stale = [row.id for row in db.session.query(RpslObject.id, RpslObject.key, RpslObject.value)
                                             .filter(RpslObject.source_url == self.url)
                 if (row.key, row.value.lower()) not in self.objects]
        self._delete_ids(RpslObject, stale)
        self.stats['swept'] += len(stale)

        stale = [row.id for row in db.session.query(RpslOrigin.id, RpslOrigin.origin, RpslOrigin.route)
                                             .filter(RpslOrigin.source_url == self.url)
                 if (row.origin.lower(), row.route.lower()) not in self.origins]
        self._delete_ids(RpslOrigin, stale)
        self.stats['swept_origin'] += len(stale)

        stale = [row.id for row in db.session.query(RpslMntBy.id, RpslMntBy.mntby,
                                                    RpslMntBy.key, RpslMntBy.value)
                                             .filter(RpslMntBy.source_url == self.url)
                 if (row.mntby.lower(), row.key, row.value.lower()) not in self.mntbys]
        self._delete_ids(RpslMntBy, stale)
        self.stats['swept_mntby'] += len(stale)

    def finish(self) -> None:
        self.writer.flush()
        self.stats['written'] += self.writer.written
        self.stats['failed'] += self.writer.failed
        try:
            self.sweep()
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.error('failed to clean up outdated RPSL for %s: %s', self.url, str(e))
            for key in ['swept', 'swept_origin', 'swept_mntby']:
                self.stats[key] = 0


def _rpsl_import_lines(lines: Iterable[str], url: Optional[str] = None) -> Dict[str, int]:
    """ Imports one RPSL dump, e.g. ripe.db.aut-num """
    parser = RpslParser()
    ctx = RpslContext(url)
    for line in lines:
        block = parser.feed(line.rstrip('\r\n'))
        if block:
            ctx.save(block)
    block = parser.finish()
    if block:
        ctx.save(block)
    ctx.finish()
    ctx.stats['duplicates'] = parser.duplicates
    return dict(ctx.stats)
