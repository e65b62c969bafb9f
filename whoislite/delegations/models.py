#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+
#
# pylint: disable=too-few-public-methods

from sqlalchemy import Column, Integer, BigInteger, Text, String, Index, UniqueConstraint

from whoislite import db


class Asn(db.Model):

    __tablename__ = "asn"
    __table_args__ = (
        UniqueConstraint("coordinator", "asn", "identifier", name="uq_asn_coordinator_asn_identifier"),
        Index("idx_asn_coordinator_identifier", "coordinator", "identifier"),
    )

    id = Column(Integer, primary_key=True)
    coordinator = Column(Text, nullable=False)  # 'ripencc'
    country = Column(Text, nullable=False)  # 'UA'
    asn = Column(BigInteger, nullable=False, unique=True)
    date = Column(Text, nullable=False)  # '20040825'
    identifier = Column(Text, nullable=False)  # opaque, shared by one holder
    name = Column(Text, default=None)  # from the asnames feed
    geo = Column(Text, default=None)  # 'city,region,country,CC|...'

    def __repr__(self) -> str:
        return "Asn object AS%s:%s" % (self.asn, self.identifier)


class Ipv4(db.Model):

    __tablename__ = "ipv4"
    __table_args__ = (
        UniqueConstraint("coordinator", "network", "identifier", name="uq_ipv4_coordinator_network_identifier"),
        Index("idx_ipv4_coordinator_identifier", "coordinator", "identifier"),
    )

    id = Column(Integer, primary_key=True)
    coordinator = Column(Text, nullable=False)
    country = Column(Text, nullable=False)
    network = Column(Text, nullable=False)  # '212.90.160.0/19'
    firstip = Column(String(40), index=True)
    lastip = Column(String(40), index=True)
    date = Column(Text, nullable=False)
    identifier = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return "Ipv4 object %s:%s" % (self.network, self.identifier)


class Ipv6(db.Model):

    __tablename__ = "ipv6"
    __table_args__ = (
        UniqueConstraint("coordinator", "network", "identifier", name="uq_ipv6_coordinator_network_identifier"),
        Index("idx_ipv6_coordinator_identifier", "coordinator", "identifier"),
    )

    id = Column(Integer, primary_key=True)
    coordinator = Column(Text, nullable=False)
    country = Column(Text, nullable=False)
    network = Column(Text, nullable=False)  # '2a04:42c0::/29'
    firstip = Column(String(40), index=True)
    lastip = Column(String(40), index=True)
    date = Column(Text, nullable=False)
    identifier = Column(Text, nullable=False)

    def __repr__(self) -> str:
        return "Ipv6 object %s:%s" % (self.network, self.identifier)
