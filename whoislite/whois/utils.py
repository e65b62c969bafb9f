#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+

import ipaddress

from typing import Callable, Dict, List, Optional

from whoislite import db
from whoislite.delegations.models import Asn
from whoislite.delegations.utils import _allocation_narrowest
from whoislite.geo.models import Geo
from whoislite.rpsl.models import RpslObject, RpslOrigin, RpslMntBy
from whoislite.rpsl.utils import _rpsl_attribute_values
from whoislite.util import InvalidAsnError, _asn_from_text, _int_to_range_bound

ROUTE_KEYS = ['route', 'route6']


def _render_attr(name: str, value) -> str:
    return '{:<16}{}\n'.format(name + ':', value if value is not None else '')


def _render_blocks(blocks: List[str]) -> str:
    return ''.join([block + '\n' for block in blocks])


class WhoisLookup:
    """ Read-only primitives shared by every query """

    def blocks(self, keys: List[str], value: str) -> List[str]:
        return [row.block for row in db.session.query(RpslObject.block)
                                               .filter(RpslObject.key.in_(keys))
                                               .filter(RpslObject.value == value)
                                               .order_by(RpslObject.key, RpslObject.id)]

    def asn_metadata(self, asn: int) -> str:
        row = db.session.query(Asn.country, Asn.name).filter(Asn.asn == asn).first()
        if not row:
            return ''
        return _render_attr('as-num', 'AS{}'.format(asn)) + \
               _render_attr('country', row.country) + \
               _render_attr('as-name', row.name)

    def owners_by_mntby(self, mntby: str, keys: List[str]) -> List[RpslMntBy]:
        return db.session.query(RpslMntBy)\
                         .filter(RpslMntBy.mntby == mntby)\
                         .filter(RpslMntBy.key.in_(keys))\
                         .order_by(RpslMntBy.key, RpslMntBy.value)\
                         .all()

    def routes_by_origin(self, origin: str) -> List[str]:
        return [row.route for row in db.session.query(RpslOrigin.route)
                                               .filter(RpslOrigin.origin == origin)
                                               .order_by(RpslOrigin.route)]

    def origins_by_route(self, route: str) -> List[str]:
        return [row.origin for row in db.session.query(RpslOrigin.origin)
                                                .filter(RpslOrigin.route == route)
                                                .order_by(RpslOrigin.origin)]

    def narrowest_network(self, addr: str) -> Optional[str]:
        alloc = _allocation_narrowest(addr)
        return alloc.network if alloc else None

    def narrowest_geo(self, addr: str) -> Optional[Geo]:
        net = ipaddress.ip_network(addr.strip(), strict=False)
        bound = _int_to_range_bound(int(net.network_address))
        best = None
        best_width = None
        for geo in db.session.query(Geo)\
                             .filter(Geo.firstip <= bound)\
                             .filter(Geo.lastip >= bound)\
                             .order_by(Geo.id):
            if ipaddress.ip_network(geo.network).version != net.version:
                continue
            width = int(geo.lastip) - int(geo.firstip)
            if best_width is None or width < best_width:
                best = geo
                best_width = width
        return best


def _normalize_asn(value: str) -> Optional[str]:
    try:
        return 'AS{}'.format(_asn_from_text(value))
    except InvalidAsnError:
        return None


def _whois_aut_num(value: str, lookup: Optional[WhoisLookup] = None) -> str:
    """ The aut-num object, the ASN metadata and any referenced organisation """
    lookup = lookup or WhoisLookup()
    autnum = _normalize_asn(value)
    if not autnum:
        return ''
    blocks = lookup.blocks(['aut-num'], autnum)
    if not blocks:
        return ''
    txt = _render_blocks(blocks)
    metadata = lookup.asn_metadata(int(autnum[2:]))
    if metadata:
        txt += metadata + '\n'
    for block in blocks:
        for org in _rpsl_attribute_values(block, 'org'):
            txt += _render_blocks(lookup.blocks(['organisation'], org))
    return txt


def _whois_as_set(value: str, lookup: Optional[WhoisLookup] = None) -> str:
    lookup = lookup or WhoisLookup()
    return _render_blocks(lookup.blocks(['as-set'], value.strip()))


def _whois_mnt_by(value: str, lookup: Optional[WhoisLookup] = None) -> str:
    """ Every aut-num and as-set maintained by the mntner """
    lookup = lookup or WhoisLookup()
    txt = ''
    for owner in lookup.owners_by_mntby(value.strip(), ['aut-num', 'as-set']):
        txt += _render_blocks(lookup.blocks([owner.key], owner.value))
    return txt


def _whois_mntner(value: str, lookup: Optional[WhoisLookup] = None) -> str:
    """ The mntner object followed by the roles it maintains """
    lookup = lookup or WhoisLookup()
    mntner = value.strip()
    txt = _render_blocks(lookup.blocks(['mntner'], mntner))
    for owner in lookup.owners_by_mntby(mntner, ['role']):
        txt += _render_blocks(lookup.blocks(['role'], owner.value))
    return txt


def _whois_route_origin(value: str, lookup: Optional[WhoisLookup] = None) -> str:
    lookup = lookup or WhoisLookup()
    origin = _normalize_asn(value)
    if not origin:
        return ''
    txt = ''
    for route in lookup.routes_by_origin(origin):
        txt += _render_blocks(lookup.blocks(ROUTE_KEYS, route))
    return txt


def _whois_network_origin(value: str, lookup: Optional[WhoisLookup] = None, retry: bool = True) -> str:
    """
    The route objects for a prefix and the aut-num of every origin. When the
    prefix is not routed, the narrowest allocation containing it is tried.
    """
    lookup = lookup or WhoisLookup()
    network = value.strip()
    blocks = lookup.blocks(ROUTE_KEYS, network)
    origins = lookup.origins_by_route(network)
    if blocks or origins:
        txt = _render_blocks(blocks)
        for origin in origins:
            txt += _render_attr('route6' if ':' in network else 'route', network)
            txt += _render_attr('origin', origin)
            txt += '\n'
            txt += _whois_aut_num(origin, lookup)
        return txt
    if not retry:
        return ''
    try:
        alloc_network = lookup.narrowest_network(network)
    except ValueError:
        return ''
    if not alloc_network or alloc_network == network:
        return ''
    return _whois_network_origin(alloc_network, lookup, retry=False)


def _whois_organisation(value: str, lookup: Optional[WhoisLookup] = None) -> str:
    lookup = lookup or WhoisLookup()
    autnum = _normalize_asn(value)
    if not autnum:
        return ''
    metadata = lookup.asn_metadata(int(autnum[2:]))
    if not metadata:
        return ''
    return metadata + '\n'


def _whois_geolocation(value: str, lookup: Optional[WhoisLookup] = None) -> str:
    lookup = lookup or WhoisLookup()
    try:
        geo = lookup.narrowest_geo(value)
    except ValueError:
        return ''
    if not geo:
        return ''
    txt = _render_attr('network', geo.network)
    for label in (geo.geo or '').split('|'):
        if label:
            txt += _render_attr('geo', label)
    return txt + '\n'


OPERATIONS: Dict[str, Callable[..., str]] = {
    'aut-num': _whois_aut_num,
    'as-set': _whois_as_set,
    'mnt-by': _whois_mnt_by,
    'mntner': _whois_mntner,
    'route-origin': _whois_route_origin,
    'network-origin': _whois_network_origin,
    'organisation': _whois_organisation,
    'geolocation': _whois_geolocation,
}


def _whois_query(operation: str, value: str) -> str:
    """ Runs a named query; raises KeyError for an unknown operation """
    return OPERATIONS[operation.replace('_', '-').lower()](value)
