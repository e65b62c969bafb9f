#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+
#
# pylint: disable=too-few-public-methods

from sqlalchemy import Column, Integer, Text, String

from whoislite import db


class Geo(db.Model):

    __tablename__ = "geo"

    id = Column(Integer, primary_key=True)
    network = Column(Text, nullable=False, unique=True)  # '91.197.48.0/24'
    firstip = Column(String(40), nullable=False, index=True)
    lastip = Column(String(40), nullable=False, index=True)
    geo = Column(Text, default=None)  # 'Kyiv,Kyiv City,Ukraine,UA'

    def __repr__(self) -> str:
        return "Geo object %s" % self.network
