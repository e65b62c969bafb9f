#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+

import bz2
import gzip
import lzma
import os
import tempfile
import zlib

from typing import Callable, Dict, Iterable, List, NamedTuple, Optional, Tuple

import requests

from whoislite import app, db, tq
from whoislite.dbutils import _vacuum_incremental
from whoislite.delegations.utils import _asnames_import_lines, _delegations_import_lines
from whoislite.geo.utils import _geo_clear, _geo_import_lines
from whoislite.rpsl.utils import _rpsl_import_lines
from whoislite.util import _event_log

from .models import FileMetadata

Importer = Callable[[Iterable[str], Optional[str]], Dict[str, int]]

# name, config key, importer; in the order a full sync runs them
CATEGORIES: List[Tuple[str, str, Importer]] = [
    ('extended', 'URLS_EXTENDED', _delegations_import_lines),
    ('asnames', 'URLS_ASNAMES', _asnames_import_lines),
    ('rpsl', 'URLS_RPSL', _rpsl_import_lines),
    ('geolocations', 'URLS_GEOLOCATIONS', _geo_import_lines),
]

MAGIC_GZIP = b'\x1f\x8b'
MAGIC_BZIP2 = b'BZh'
MAGIC_XZ = b'\xfd7zXZ\x00'


class SourceError(Exception):
    pass


class SourceFile(NamedTuple):
    url: str
    path: str
    last_modified: str
    file_size: int


def _source_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({'User-Agent': 'whoislite'})
    return session


def _source_timeout() -> Tuple[int, int]:
    return (app.config.get('CONNECT_TIMEOUT', 10), app.config.get('READ_TIMEOUT', 30))


def _source_headers(rv) -> Tuple[str, int]:
    last_modified = rv.headers.get('Last-Modified', '')
    try:
        file_size = int(rv.headers.get('Content-Length', -1))
    except ValueError:
        file_size = -1
    return (last_modified, file_size)


def _source_is_modified(session, url: str) -> bool:
    """ Returns True if the URL has never been imported or differs from last time """

    md = db.session.query(FileMetadata).filter(FileMetadata.url == url).first()
    if not md:
        return True
    rv = session.head(url, timeout=_source_timeout(), allow_redirects=True)
    if rv.status_code != 200:
        raise SourceError('failed to check {}: HTTP {}'.format(url, rv.status_code))
    last_modified, file_size = _source_headers(rv)
    if md.last_modified != last_modified or md.file_size != file_size:
        app.logger.info('%s changed: [%s, %i] -> [%s, %i]', url,
                        md.last_modified, md.file_size, last_modified, file_size)
        return True
    return False


def _source_download(session, url: str) -> SourceFile:
    """ Saves the URL into a temporary file, which the caller must delete """

    fd, path = tempfile.mkstemp(prefix='whoislite_', suffix='.txt')
    try:
        with os.fdopen(fd, 'wb') as f:
            with session.get(url, stream=True, timeout=_source_timeout()) as rv:
                if rv.status_code != 200:
                    raise SourceError('failed to download {}: HTTP {}'.format(url, rv.status_code))
                last_modified, file_size = _source_headers(rv)
                for chunk in rv.iter_content(chunk_size=0x10000):
                    f.write(chunk)
    except (requests.exceptions.RequestException, OSError, SourceError):
        os.remove(path)
        raise
    app.logger.debug('downloaded %s to %s', url, path)
    return SourceFile(url, path, last_modified, file_size)


def _source_open(path: str):
    """ Opens a plain, gzip, bzip2 or xz file as text """

    with open(path, 'rb') as f:
        magic = f.read(6)
    if magic.startswith(MAGIC_GZIP):
        return gzip.open(path, 'rt', encoding='utf-8', errors='replace')
    if magic.startswith(MAGIC_BZIP2):
        return bz2.open(path, 'rt', encoding='utf-8', errors='replace')
    if magic.startswith(MAGIC_XZ):
        return lzma.open(path, 'rt', encoding='utf-8', errors='replace')
    return open(path, 'rt', encoding='utf-8', errors='replace')


def _source_process(session, url: str, importer: Importer, force: bool = False) -> Optional[Dict[str, int]]:
    """
    Imports one URL if it changed. Any download or decompression failure
    only aborts this URL, and the temporary file is always removed.
    """
    src: Optional[SourceFile] = None
    try:
        if not force and not _source_is_modified(session, url):
            app.logger.info('%s not modified, skipping', url)
            return None
        src = _source_download(session, url)
        with _source_open(src.path) as f:
            stats = importer(f, url)

        # only remember the file once it has been fully imported
        md = db.session.query(FileMetadata).filter(FileMetadata.url == url).first()
        if not md:
            md = FileMetadata(url=url)
            db.session.add(md)
        md.last_modified = src.last_modified
        md.file_size = src.file_size
        db.session.commit()
        _vacuum_incremental(db, app.config.get('VACUUM_FREELIST_THRESHOLD', 100))
    except (requests.exceptions.RequestException, OSError, EOFError,
            lzma.LZMAError, zlib.error, SourceError) as e:
        db.session.rollback()
        _event_log('Failed to import {}: {}'.format(url, str(e)), is_important=True)
        return None
    finally:
        if src:
            try:
                os.remove(src.path)
            except OSError as e:
                app.logger.warning('failed to delete temporary file %s: %s', src.path, str(e))

    _event_log('Imported {}: {}'.format(url, stats))
    return stats


def _source_any_modified(session, urls: List[str]) -> bool:
    for url in urls:
        try:
            if _source_is_modified(session, url):
                return True
        except (requests.exceptions.RequestException, SourceError) as e:
            app.logger.warning('failed to check %s: %s', url, str(e))
    return False


def _sync_category(name: str, session=None) -> Dict[str, Optional[Dict[str, int]]]:
    """ Imports every URL of one category, returning the stats for each """

    for category, key, importer in CATEGORIES:
        if category == name:
            break
    else:
        raise ValueError('unknown category {}'.format(name))
    if not session:
        session = _source_session()
    urls = app.config.get(key, [])
    results: Dict[str, Optional[Dict[str, int]]] = {}

    # the labels are recomputed from every feed together
    if category == 'geolocations':
        if not _source_any_modified(session, urls):
            app.logger.info('no geolocations modified, skipping')
            return results
        _geo_clear()
        for url in urls:
            results[url] = _source_process(session, url, importer, force=True)
        return results

    for url in urls:
        results[url] = _source_process(session, url, importer)
    return results


def _sync_all(session=None) -> None:
    if not session:
        session = _source_session()
    for category, _, _ in CATEGORIES:
        _sync_category(category, session=session)


@tq.task(max_retries=3, default_retry_delay=5, task_time_limit=6000)
def _async_sync_all() -> None:
    _sync_all()
