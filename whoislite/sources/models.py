#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+
#
# pylint: disable=too-few-public-methods

from sqlalchemy import Column, Integer, BigInteger, Text

from whoislite import db


class FileMetadata(db.Model):

    __tablename__ = "file_metadata"

    id = Column(Integer, primary_key=True)
    url = Column(Text, nullable=False, unique=True)
    last_modified = Column(Text, nullable=False, default="")  # as sent by the server
    file_size = Column(BigInteger, nullable=False, default=-1)

    def __repr__(self) -> str:
        return "FileMetadata object %s" % self.url
