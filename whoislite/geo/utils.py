#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+

import ipaddress

from collections import defaultdict
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import and_, bindparam, update
from sqlalchemy.dialects.sqlite import insert

from whoislite import app, db
from whoislite.dbutils import BatchWriter
from whoislite.delegations.models import Asn
from whoislite.delegations.utils import _allocation_narrowest
from whoislite.util import _network_to_range_bounds

from .models import Geo


def _geo_label_append(existing: Optional[str], label: str) -> str:
    """ Adds a label to a '|' separated aggregate unless already present """
    if not existing:
        return label
    if label in existing.split('|'):
        return existing
    return existing + '|' + label


def _geo_clear() -> None:
    """ Removes every aggregated label, as each pass recomputes them all """
    db.session.execute(update(Asn.__table__).values(geo=None))
    db.session.query(Geo).delete(synchronize_session=False)
    db.session.commit()


class GeoContext:
    """ Caches for one pass over one geolocation file """

    def __init__(self, url: Optional[str] = None):
        self.url = url
        self.writer = BatchWriter(app.config.get('BATCH_SIZE', 1000))
        self.stats: Dict[str, int] = defaultdict(int)

        # normalized network -> (coordinator, identifier) of the owning allocation
        self.owners: Dict[str, Optional[Tuple[str, str]]] = {}

        # (coordinator, identifier) -> aggregated label on the ASN rows
        self.labels: Dict[Tuple[str, str], Optional[str]] = {}

        # normalized network -> aggregated label in the geo table
        self.networks: Dict[str, Optional[str]] = {}

        table = Asn.__table__
        self._stmt_asn = update(table)\
                             .where(and_(table.c.coordinator == bindparam('b_coordinator'),
                                         table.c.identifier == bindparam('b_identifier')))\
                             .values(geo=bindparam('b_geo'))
        stmt = insert(Geo.__table__)
        self._stmt_geo = stmt.on_conflict_do_update(index_elements=['network'],
                                                    set_={'geo': stmt.excluded.geo})

    def _owner_for_network(self, network: str) -> Optional[Tuple[str, str]]:
        if network in self.owners:
            self.stats['cached'] += 1
            return self.owners[network]
        alloc = _allocation_narrowest(network)
        owner = (alloc.coordinator, alloc.identifier) if alloc else None
        self.owners[network] = owner
        return owner

    def _label_for_owner(self, owner: Tuple[str, str]) -> Optional[str]:
        if owner not in self.labels:
            (label,) = db.session.query(Asn.geo)\
                                 .filter(Asn.coordinator == owner[0])\
                                 .filter(Asn.identifier == owner[1])\
                                 .order_by(Asn.id)\
                                 .first() or (None,)
            self.labels[owner] = label
        return self.labels[owner]

    def _label_for_network(self, network: str) -> Optional[str]:
        if network not in self.networks:
            (label,) = db.session.query(Geo.geo)\
                                 .filter(Geo.network == network)\
                                 .first() or (None,)
            self.networks[network] = label
        return self.networks[network]

    def add(self, addr: str, label: str) -> None:

        network = str(ipaddress.ip_network(addr, strict=False))

        # per-network aggregate
        existing = self._label_for_network(network)
        aggregate = _geo_label_append(existing, label)
        if aggregate != existing:
            firstip, lastip = _network_to_range_bounds(network)
            self.writer.add('geo', self._stmt_geo, {'network': network,
                                                    'firstip': firstip,
                                                    'lastip': lastip,
                                                    'geo': aggregate})
            self.networks[network] = aggregate

        # owning ASN records
        owner = self._owner_for_network(network)
        if not owner:
            self.stats['unmatched'] += 1
            return
        existing = self._label_for_owner(owner)
        aggregate = _geo_label_append(existing, label)
        if aggregate == existing:
            return
        self.writer.add('asn', self._stmt_asn, {'b_coordinator': owner[0],
                                                'b_identifier': owner[1],
                                                'b_geo': aggregate})
        self.labels[owner] = aggregate
        self.stats['updated'] += 1

    def feed(self, line: str) -> None:
        self.stats['lines'] += 1
        if not line.strip():
            return
        fields = [field.strip() for field in line.split(',')]
        if len(fields) < 6:
            app.logger.warning('invalid geolocations line format: %s', line.strip())
            self.stats['invalid'] += 1
            return
        addr, _, city, region, country_name, country_code = fields[:6]
        label = ','.join([city, region, country_name, country_code])
        if not label or len(country_code) != 2:
            app.logger.warning('invalid geo data in line: %s', line.strip())
            self.stats['invalid'] += 1
            return
        try:
            self.add(addr, label)
        except ValueError as e:
            app.logger.warning('invalid address %s: %s', addr, str(e))
            self.stats['invalid'] += 1

    def finish(self) -> None:
        self.writer.flush()
        self.stats['failed'] += self.writer.failed


def _geo_import_lines(lines: Iterable[str], url: Optional[str] = None) -> Dict[str, int]:
    """
    Attaches the labels of one geolocation feed to the ASN rows owning the
    narrowest allocation for each address. Call _geo_clear() once before the
    first file of a pass.
    """
    ctx = GeoContext(url)
    for line in lines:
        ctx.feed(line)
    ctx.finish()
    return dict(ctx.stats)
