#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+

from typing import Any, Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError


def init_db(db) -> None:

    # import all the models so the metadata is complete
    from whoislite.delegations.models import Asn, Ipv4, Ipv6  # pylint: disable=unused-import
    from whoislite.geo.models import Geo  # pylint: disable=unused-import
    from whoislite.main.models import Event  # pylint: disable=unused-import
    from whoislite.rpsl.models import RpslObject, RpslOrigin, RpslMntBy  # pylint: disable=unused-import
    from whoislite.sources.models import FileMetadata  # pylint: disable=unused-import

    # only has an effect before the first table is created
    if db.engine.dialect.name == 'sqlite':
        with db.engine.connect() as conn:
            conn.exec_driver_sql('PRAGMA auto_vacuum = INCREMENTAL')
    db.create_all()


def drop_db(db) -> None:
    db.session.remove()
    db.drop_all()


def _vacuum_incremental(db, threshold: int = 100) -> int:
    """ Returns the number of free pages handed back to the filesystem """
    from whoislite import app

    if db.engine.dialect.name != 'sqlite':
        return 0
    try:
        freelist_count = db.session.execute(text('PRAGMA freelist_count')).scalar() or 0
        if freelist_count < threshold:
            app.logger.debug('freelist_count (%i) below threshold, skipping vacuum', freelist_count)
            return 0
        pages = freelist_count // 2
        db.session.execute(text('PRAGMA incremental_vacuum({})'.format(pages)))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        app.logger.warning('failed to run incremental_vacuum: %s', str(e))
        return 0
    app.logger.debug('ran incremental_vacuum(%i)', pages)
    return pages


class BatchWriter:
    """
    Buffers executemany() parameters per statement and commits them every
    batch_size operations. A failing batch is rolled back and written again
    one row at a time, so only the rows that fail themselves are skipped.
    """

    def __init__(self, batch_size: int = 1000):
        self.batch_size = batch_size
        self.written = 0
        self.failed = 0
        self._pending: Dict[str, Tuple[Any, List[Dict[str, Any]]]] = {}
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def add(self, name: str, stmt, params: Dict[str, Any]) -> None:
        if name not in self._pending:
            self._pending[name] = (stmt, [])
        self._pending[name][1].append(params)
        self._count += 1
        if self._count >= self.batch_size:
            self.flush()

    def _flush_rows(self) -> None:
        from whoislite import app, db

        for stmt, rows in self._pending.values():
            for row in rows:
                try:
                    db.session.execute(stmt, row)
                    db.session.commit()
                    self.written += 1
                except SQLAlchemyError as e:
                    db.session.rollback()
                    self.failed += 1
                    app.logger.warning('failed to write %s: %s', row, str(e))

    def flush(self) -> None:
        from whoislite import app, db

        try:
            for stmt, rows in self._pending.values():
                db.session.execute(stmt, rows)
            db.session.commit()
            self.written += self._count
            if self._count:
                app.logger.debug('executed batch of %i statements', self._count)
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.warning('failed to write batch of %i statements, retrying each: %s',
                               self._count, str(e))
            self._flush_rows()
        finally:
            self._pending.clear()
            self._count = 0
