#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+
#
# pylint: disable=too-few-public-methods

import datetime

from sqlalchemy import Column, Integer, Text, DateTime, Boolean

from whoislite import db


class Event(db.Model):

    __tablename__ = "event_log"

    id = Column(Integer, primary_key=True)
    timestamp = Column(DateTime, nullable=False, default=datetime.datetime.utcnow, index=True)
    message = Column(Text, default=None)
    is_important = Column(Boolean, default=False)

    def __repr__(self) -> str:
        return "Event object %s" % self.message
