#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+
#
# pylint: disable=wrong-import-position

import os
import sys
import unittest

sys.path.append(os.path.realpath("."))

from whoislite.testcase import WhoisliteTestCase
from whoislite.geo.utils import _geo_label_append

DELEGATED = """ripencc|UA|asn|15497|1|20040825|allocated|ukrcom-id
ripencc|UA|ipv4|91.197.0.0|65536|20070824|allocated|ukrcom-id
ripencc|UA|asn|21219|1|20010920|allocated|datagroup-id
ripencc|UA|asn|21220|1|20010920|allocated|datagroup-id
ripencc|UA|ipv4|91.197.48.0|1024|20070824|allocated|datagroup-id
ripencc|UA|ipv6|2a04:42c0::|29|20150115|allocated|datagroup-id
"""


class GeoLabelTest(unittest.TestCase):
    def test_append(self):

        assert _geo_label_append(None, "Kyiv,Kyiv City,Ukraine,UA") == "Kyiv,Kyiv City,Ukraine,UA"
        assert _geo_label_append("", "Lviv,Lviv,Ukraine,UA") == "Lviv,Lviv,Ukraine,UA"
        txt = _geo_label_append("Kyiv,Kyiv City,Ukraine,UA", "Lviv,Lviv,Ukraine,UA")
        assert txt == "Kyiv,Kyiv City,Ukraine,UA|Lviv,Lviv,Ukraine,UA", txt
        assert _geo_label_append(txt, "Lviv,Lviv,Ukraine,UA") == txt
        assert _geo_label_append(txt, "Kyiv,Kyiv City,Ukraine,UA") == txt


class GeoTest(WhoisliteTestCase):
    def test_narrowest(self):

        from whoislite import db
        from whoislite.delegations.models import Asn

        self.import_delegations(DELEGATED)
        stats = self.import_geo(
            "91.197.49.0/24,,Kyiv,Kyiv City,Ukraine,UA\n"
            "91.197.200.0/24,,Odesa,Odesa Oblast,Ukraine,UA\n"
        )
        assert stats["updated"] == 2, stats

        # the /22 is inside the /16, so it wins for addresses in both
        for asn in [21219, 21220]:
            row = db.session.query(Asn).filter(Asn.asn == asn).one()
            assert row.geo == "Kyiv,Kyiv City,Ukraine,UA", row.geo
        row = db.session.query(Asn).filter(Asn.asn == 15497).one()
        assert row.geo == "Odesa,Odesa Oblast,Ukraine,UA", row.geo

    def test_union_append(self):

        from whoislite import db
        from whoislite.delegations.models import Asn
        from whoislite.geo.models import Geo

        self.import_delegations(DELEGATED)
        stats = self.import_geo(
            "91.197.49.0/24,,Kyiv,Kyiv City,Ukraine,UA\n"
            "91.197.49.0/24,,Kyiv,Kyiv City,Ukraine,UA\n"
            "91.197.50.0/24,,Lviv,Lviv,Ukraine,UA\n"
            "91.197.50.0/24,,Kyiv,Kyiv City,Ukraine,UA\n"
            "2a04:42c0:1::/48,,Kyiv,Kyiv City,Ukraine,UA\n"
        )
        assert stats["updated"] == 2, stats
        assert stats["cached"] == 2, stats
        row = db.session.query(Asn).filter(Asn.asn == 21219).one()
        assert row.geo == "Kyiv,Kyiv City,Ukraine,UA|Lviv,Lviv,Ukraine,UA", row.geo

        geo = db.session.query(Geo).filter(Geo.network == "91.197.50.0/24").one()
        assert geo.geo == "Lviv,Lviv,Ukraine,UA|Kyiv,Kyiv City,Ukraine,UA", geo.geo
        assert db.session.query(Geo).count() == 3

    def test_small_batches(self):

        from whoislite import app, db
        from whoislite.delegations.models import Asn
        from whoislite.geo.models import Geo

        self.import_delegations(DELEGATED)
        app.config["BATCH_SIZE"] = 2
        stats = self.import_geo(
            "91.197.49.0/24,,Kyiv,Kyiv City,Ukraine,UA\n"
            "91.197.50.0/24,,Lviv,Lviv,Ukraine,UA\n"
            "91.197.200.0/24,,Odesa,Odesa Oblast,Ukraine,UA\n"
            "91.197.50.0/24,,Kyiv,Kyiv City,Ukraine,UA\n"
            "2a04:42c0:1::/48,,Dnipro,Dnipro Oblast,Ukraine,UA\n"
        )
        assert stats.get("failed", 0) == 0, stats
        for asn in [21219, 21220]:
            row = db.session.query(Asn).filter(Asn.asn == asn).one()
            assert row.geo == "Kyiv,Kyiv City,Ukraine,UA|Lviv,Lviv,Ukraine,UA|Dnipro,Dnipro Oblast,Ukraine,UA", row.geo
        row = db.session.query(Asn).filter(Asn.asn == 15497).one()
        assert row.geo == "Odesa,Odesa Oblast,Ukraine,UA", row.geo
        assert db.session.query(Geo).count() == 4

    def test_invalid(self):

        from whoislite import db
        from whoislite.delegations.models import Asn
        from whoislite.geo.models import Geo

        self.import_delegations(DELEGATED)
        stats = self.import_geo(
            "91.197.49.0/24,,Kyiv,Kyiv City,Ukraine\n"
            "91.197.49.0/24,,Kyiv,Kyiv City,Ukraine,UKR\n"
            "91.197.49.300,,Kyiv,Kyiv City,Ukraine,UA\n"
            "8.8.8.8,,Mountain View,California,United States,US\n"
        )
        assert stats["invalid"] == 3, stats
        assert stats["unmatched"] == 1, stats
        assert db.session.query(Asn).filter(Asn.geo != None).count() == 0  # pylint: disable=singleton-comparison
        assert db.session.query(Geo).count() == 1

    def test_clear(self):

        from whoislite import db
        from whoislite.delegations.models import Asn
        from whoislite.geo.models import Geo
        from whoislite.geo.utils import _geo_clear

        self.import_delegations(DELEGATED)
        self.import_geo("91.197.49.0/24,,Kyiv,Kyiv City,Ukraine,UA\n")
        _geo_clear()
        assert db.session.query(Asn).filter(Asn.geo != None).count() == 0  # pylint: disable=singleton-comparison
        assert db.session.query(Geo).count() == 0

        # a label dropped from the feed does not come back
        self.import_geo("91.197.49.0/24,,Lviv,Lviv,Ukraine,UA\n")
        row = db.session.query(Asn).filter(Asn.asn == 21219).one()
        assert row.geo == "Lviv,Lviv,Ukraine,UA", row.geo

    def test_second_file(self):

        from whoislite import db
        from whoislite.delegations.models import Asn

        self.import_delegations(DELEGATED)
        self.import_geo("91.197.49.0/24,,Kyiv,Kyiv City,Ukraine,UA\n", url="https://example.com/geo1.csv")
        self.import_geo("91.197.49.0/24,,Lviv,Lviv,Ukraine,UA\n", url="https://example.com/geo2.csv")
        row = db.session.query(Asn).filter(Asn.asn == 21220).one()
        assert row.geo == "Kyiv,Kyiv City,Ukraine,UA|Lviv,Lviv,Ukraine,UA", row.geo


if __name__ == "__main__":
    unittest.main()
