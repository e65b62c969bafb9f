#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+

import unittest

from typing import List


class WhoisliteTestCase(unittest.TestCase):
    def setUp(self):

        from whoislite import app, db
        from whoislite.dbutils import init_db

        app.config['TESTING'] = True
        app.config['BATCH_SIZE'] = 1000
        self._ctx = app.app_context()
        self._ctx.push()
        init_db(db)
        self.app = app.test_client()

    def tearDown(self):

        from whoislite import db
        from whoislite.dbutils import drop_db

        drop_db(db)
        self._ctx.pop()

    @staticmethod
    def _lines(txt: str) -> List[str]:
        return [line + '\n' for line in txt.split('\n')]

    def import_delegations(self, txt: str, url: str = 'https://example.com/delegated'):
        from whoislite.delegations.utils import _delegations_import_lines
        return _delegations_import_lines(self._lines(txt), url)

    def import_asnames(self, txt: str, url: str = 'https://example.com/asn.txt'):
        from whoislite.delegations.utils import _asnames_import_lines
        return _asnames_import_lines(self._lines(txt), url)

    def import_rpsl(self, txt: str, url: str = 'https://example.com/ripe.db'):
        from whoislite.rpsl.utils import _rpsl_import_lines
        return _rpsl_import_lines(self._lines(txt), url)

    def import_geo(self, txt: str, url: str = 'https://example.com/geo.csv'):
        from whoislite.geo.utils import _geo_import_lines
        return _geo_import_lines(self._lines(txt), url)
