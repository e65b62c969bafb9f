#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+
#
# pylint: disable=too-few-public-methods

from sqlalchemy import Column, Integer, Text, Index, UniqueConstraint

from whoislite import db


class RpslObject(db.Model):

    __tablename__ = "rpsl"
    __table_args__ = (UniqueConstraint("key", "value", name="uq_rpsl_key_value"),)

    id = Column(Integer, primary_key=True)
    key = Column(Text, nullable=False)  # 'aut-num'
    value = Column(Text(collation="NOCASE"), nullable=False)  # 'AS15497'
    block = Column(Text, nullable=False)
    source_url = Column(Text, default=None, index=True)

    def __repr__(self) -> str:
        return "RpslObject object %s:%s" % (self.key, self.value)


class RpslOrigin(db.Model):

    __tablename__ = "rpsl_origin"
    __table_args__ = (
        UniqueConstraint("origin", "route", name="uq_rpsl_origin_origin_route"),
        Index("idx_rpsl_origin_route", "route"),
    )

    id = Column(Integer, primary_key=True)
    origin = Column(Text(collation="NOCASE"), nullable=False)  # 'AS15497'
    route = Column(Text(collation="NOCASE"), nullable=False)  # '193.0.0.0/21'
    source_url = Column(Text, default=None, index=True)

    def __repr__(self) -> str:
        return "RpslOrigin object %s:%s" % (self.origin, self.route)


class RpslMntBy(db.Model):

    __tablename__ = "rpsl_mntby"
    __table_args__ = (
        UniqueConstraint("mntby", "key", "value", name="uq_rpsl_mntby_mntby_key_value"),
        Index("idx_rpsl_mntby_key_value", "key", "value"),
    )

    id = Column(Integer, primary_key=True)
    mntby = Column(Text(collation="NOCASE"), nullable=False)  # 'UKRCOM-MNT'
    key = Column(Text, nullable=False)  # 'aut-num'
    value = Column(Text(collation="NOCASE"), nullable=False)  # 'AS15497'
    source_url = Column(Text, default=None, index=True)

    def __repr__(self) -> str:
        return "RpslMntBy object %s:%s:%s" % (self.mntby, self.key, self.value)
