#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+

import hashlib
import ipaddress
import math

from typing import Tuple

ASN_MAX = 0xFFFFFFFF
RANGE_BOUND_WIDTH = 40


class InvalidRangeError(ValueError):
    pass


class InvalidAsnError(ValueError):
    pass


def _ipv4_to_cidr(addr: str, count: int) -> str:
    """ Converts an address and a host count, e.g. 212.90.160.0 and 8192, to 212.90.160.0/19 """
    if count <= 0:
        raise InvalidRangeError('host count must be positive, got {}'.format(count))
    prefixlen = 32 - int(math.floor(math.log2(count)))
    if prefixlen < 0 or prefixlen > 32:
        raise InvalidRangeError('invalid host count for IPv4: {}'.format(count))
    return '{}/{}'.format(ipaddress.IPv4Address(addr), prefixlen)


def _ipv6_to_cidr(addr: str, prefixlen: int) -> str:
    if prefixlen < 0 or prefixlen > 128:
        raise InvalidRangeError('invalid prefix length for IPv6: {}'.format(prefixlen))
    return '{}/{}'.format(ipaddress.IPv6Address(addr), prefixlen)


def _int_to_range_bound(value: int) -> str:
    return str(value).zfill(RANGE_BOUND_WIDTH)


def _addr_to_range_bound(addr: str) -> str:
    """
    Returns the address as a zero-padded decimal string so that comparing
    the strings gives the same order as comparing the numbers, for both
    IPv4 and IPv6. A CIDR is converted using its network address.
    """
    if '/' in addr:
        value = int(ipaddress.ip_network(addr.strip(), strict=False).network_address)
    else:
        value = int(ipaddress.ip_address(addr.strip()))
    return _int_to_range_bound(value)


def _network_to_range_bounds(network: str) -> Tuple[str, str]:
    net = ipaddress.ip_network(network.strip(), strict=False)
    return (_int_to_range_bound(int(net.network_address)),
            _int_to_range_bound(int(net.broadcast_address)))


def _validate_asn(value: str) -> int:
    # int() also takes signs, whitespace, underscores and non-ASCII digits
    if not isinstance(value, str) or not value.isascii() or not value.isdigit():
        raise InvalidAsnError('invalid ASN: {}'.format(value))
    asn = int(value)
    if asn <= 0 or asn > ASN_MAX:
        raise InvalidAsnError('ASN must be positive, got {}'.format(value))
    return asn


def _asn_from_text(value: str) -> int:
    """ Accepts AS123, as123 or 123 """
    value = value.strip()
    if value[:2].upper() == 'AS':
        value = value[2:]
    return _validate_asn(value)


def _sha512(value: str) -> str:
    return hashlib.sha512(value.encode('utf-8')).hexdigest()


def _event_log(msg: str, is_important: bool = False) -> None:
    """ Adds an item to the event log """
    from whoislite import app, db
    from whoislite.main.models import Event

    if is_important:
        app.logger.warning(msg)
    else:
        app.logger.info(msg)
    db.session.add(Event(message=msg, is_important=is_important))
    db.session.commit()
