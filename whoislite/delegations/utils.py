#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+

import datetime
import ipaddress
import uuid

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import bindparam, update
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError

from whoislite import app, db
from whoislite.dbutils import BatchWriter
from whoislite.util import (
    _int_to_range_bound,
    _ipv4_to_cidr,
    _ipv6_to_cidr,
    _network_to_range_bounds,
    _validate_asn,
)

from .models import Asn, Ipv4, Ipv6

# rows are deleted in chunks to stay under the SQLite variable limit
DELETE_CHUNK_SIZE = 500


def _allocation_narrowest(addr: str):
    """
    Returns the most specific Ipv4 or Ipv6 allocation that contains the
    address, or None. Allocations of equal size are ordered by row ID.
    """
    net = ipaddress.ip_network(addr.strip(), strict=False)
    model = Ipv4 if net.version == 4 else Ipv6
    bound = _int_to_range_bound(int(net.network_address))
    best = None
    best_width = None
    for alloc in db.session.query(model)\
                           .filter(model.firstip <= bound)\
                           .filter(model.lastip >= bound)\
                           .order_by(model.id):
        width = int(alloc.lastip) - int(alloc.firstip)
        if best_width is None or width < best_width:
            best = alloc
            best_width = width
    return best


class DelegationContext:
    """ Bookkeeping for one pass over one extended-format file """

    def __init__(self, url: Optional[str] = None):
        self.url = url
        self.writer = BatchWriter(app.config.get('BATCH_SIZE', 1000))
        self.stats: Dict[str, int] = defaultdict(int)
        self.coordinators: Set[str] = set()
        self.snapshot: Set[Tuple[str, str, str]] = set()
        self.asns: Dict[int, Tuple[str, str]] = {}
        self._stmt_ipv4 = insert(Ipv4.__table__).on_conflict_do_nothing()
        self._stmt_ipv6 = insert(Ipv6.__table__).on_conflict_do_nothing()
        self._stmt_asn = insert(Asn.__table__).on_conflict_do_nothing()

    def _asn_owner(self, asn: int) -> Optional[Tuple[str, str]]:
        if asn in self.asns:
            return self.asns[asn]
        row = db.session.query(Asn.coordinator, Asn.identifier)\
                        .filter(Asn.asn == asn)\
                        .first()
        if not row:
            return None
        return (row.coordinator, row.identifier)

    def _cleanup_networks(self, coordinator: str, identifier: str) -> int:
        cnt = 0
        for model in [Ipv4, Ipv6]:
            cnt += db.session.query(model)\
                             .filter(model.coordinator == coordinator)\
                             .filter(model.identifier == identifier)\
                             .delete(synchronize_session=False)
        return cnt

    def add_asn(self, coordinator: str, country: str, value: str, date: str, identifier: str) -> None:
        asn = _validate_asn(value)
        owner = self._asn_owner(asn)
        if not owner:
            self.writer.add('asn', self._stmt_asn, {'coordinator': coordinator,
                                                    'country': country,
                                                    'asn': asn,
                                                    'date': date,
                                                    'identifier': identifier,
                                                    'name': None})
            self.asns[asn] = (coordinator, identifier)
            self.stats['asn'] += 1
            return
        if owner == (coordinator, identifier):
            return

        # reassigned, so the networks of the old holder go too
        app.logger.warning('ASN %i coordinator or identifier changed: old=[%s, %s], new=[%s, %s]',
                           asn, owner[0], owner[1], coordinator, identifier)
        self.writer.flush()
        self.stats['networks_removed'] += self._cleanup_networks(owner[0], owner[1])
        db.session.query(Asn)\
                  .filter(Asn.asn == asn)\
                  .update({Asn.coordinator: coordinator,
                           Asn.country: country,
                           Asn.date: date,
                           Asn.identifier: identifier,
                           Asn.name: None,
                           Asn.geo: None}, synchronize_session=False)
        db.session.commit()
        self.asns[asn] = (coordinator, identifier)
        self.stats['reassigned'] += 1

    def add_network(self, kind: str, coordinator: str, country: str,
                    value: str, count_or_prefix: str, date: str, identifier: str) -> None:
        if kind == 'ipv4':
            network = _ipv4_to_cidr(value, int(count_or_prefix))
            stmt = self._stmt_ipv4
        else:
            network = _ipv6_to_cidr(value, int(count_or_prefix))
            stmt = self._stmt_ipv6
        firstip, lastip = _network_to_range_bounds(network)
        self.snapshot.add((coordinator, identifier, network))
        self.writer.add(kind, stmt, {'coordinator': coordinator,
                                     'country': country,
                                     'network': network,
                                     'firstip': firstip,
                                     'lastip': lastip,
                                     'date': date,
                                     'identifier': identifier})
        self.stats[kind] += 1

    def feed(self, line: str) -> None:
        self.stats['lines'] += 1
        line = line.strip()
        if not line or line.startswith('#'):
            return
        fields = line.split('|')
        if len(fields) < 8 or fields[6] != 'allocated' or fields[1] == '*':
            return
        coordinator, country, kind, value, count_or_prefix, date, _, identifier = fields[:8]
        self.coordinators.add(coordinator)
        try:
            if kind == 'asn':
                self.add_asn(coordinator, country, value, date, identifier)
            elif kind in ['ipv4', 'ipv6']:
                self.add_network(kind, coordinator, country, value, count_or_prefix, date, identifier)
            else:
                app.logger.warning('unknown type %s: %s', kind, line)
        except ValueError as e:
            app.logger.error('failed to process line %s: %s', line, str(e))
            self.stats['invalid'] += 1

    def _delete_ids(self, model, ids: List[int]) -> None:
        for i in range(0, len(ids), DELETE_CHUNK_SIZE):
            db.session.query(model)\
                      .filter(model.id.in_(ids[i:i + DELETE_CHUNK_SIZE]))\
                      .delete(synchronize_session=False)

    def sweep(self) -> None:
        for coordinator in sorted(self.coordinators):
            for model in [Ipv4, Ipv6]:
                stale = [row.id for row in db.session.query(model.id, model.identifier, model.network)
                                                     .filter(model.coordinator == coordinator)
                         if (coordinator, row.identifier, row.network) not in self.snapshot]
                self._delete_ids(model, stale)
                self.stats['swept'] += len(stale)

    def finish(self) -> None:
        self.writer.flush()
        self.stats['failed'] += self.writer.failed
        try:
            self.sweep()
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.error('failed to clean up outdated networks for %s: %s', self.url, str(e))
            self.stats['swept'] = 0


def _delegations_import_lines(lines: Iterable[str], url: Optional[str] = None) -> Dict[str, int]:
    """ Imports extended-format delegations and removes networks that have gone away """
    ctx = DelegationContext(url)
    for line in lines:
        ctx.feed(line)
    ctx.finish()
    return dict(ctx.stats)


def _asnames_import_lines(lines: Iterable[str], url: Optional[str] = None) -> Dict[str, int]:
    """ Imports lines like '15497 UKRCOM-AS, UA' into the ASN name column """

    writer = BatchWriter(app.config.get('BATCH_SIZE', 1000))
    stats: Dict[str, int] = defaultdict(int)
    stmt_insert = insert(Asn.__table__).on_conflict_do_nothing()
    stmt_update = update(Asn.__table__)\
                      .where(Asn.__table__.c.asn == bindparam('b_asn'))\
                      .values(name=bindparam('b_name'), country=bindparam('b_country'))
    today = datetime.date.today().strftime('%Y%m%d')

    existing: Dict[int, Tuple[Optional[str], str]] = {}
    for row in db.session.query(Asn.asn, Asn.name, Asn.country):
        existing[row.asn] = (row.name, row.country)

    for line in lines:
        stats['lines'] += 1
        line = line.strip()
        if not line:
            continue
        try:
            asn_text, rest = line.split(maxsplit=1)
        except ValueError:
            continue
        if asn_text == '0':
            continue
        try:
            asn = _validate_asn(asn_text)
        except ValueError as e:
            app.logger.warning('invalid line %s: %s', line, str(e))
            stats['invalid'] += 1
            continue
        if ',' not in rest:
            continue
        name, country = rest.rsplit(',', 1)
        name = name.strip()
        country = country.strip()
        if len(country) != 2 or country == 'ZZ':
            continue

        if asn in existing:
            old_name, old_country = existing[asn]
            if (old_name or '').lower() == name.lower() and old_country.lower() == country.lower():
                continue
            writer.add('update', stmt_update, {'b_asn': asn, 'b_name': name, 'b_country': country})
            stats['updated'] += 1
        else:
            writer.add('insert', stmt_insert, {'coordinator': 'asnames',
                                               'country': country,
                                               'asn': asn,
                                               'date': today,
                                               'identifier': str(uuid.uuid4()),
                                               'name': name})
            stats['inserted'] += 1
        existing[asn] = (name, country)

    writer.flush()
    stats['failed'] += writer.failed
    return dict(stats)
