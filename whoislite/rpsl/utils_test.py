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

from unittest import mock

sys.path.append(os.path.realpath("."))

from whoislite.testcase import WhoisliteTestCase
from whoislite.rpsl.utils import RpslParser, RpslState, _rpsl_attribute_values

AUTNUM = """% This is the RIPE Database split file
# comment

aut-num:        AS15497
as-name:        UKRCOM-AS
org:            ORG-UL1-RIPE
mnt-by:         UKRCOM-MNT
mnt-by:         RIPE-NCC-END-MNT  # both
source:         RIPE

aut-num:        AS3333
as-name:        RIPE-NCC-AS
mnt-by:         RIPE-NCC-MNT
source:         RIPE

person:         John Doe
nic-hdl:        JD1-RIPE
source:         RIPE
"""

ROUTE = """route:          193.0.0.0/21
origin:         AS3333
mnt-by:         RIPE-NCC-MNT
source:         RIPE

route6:         2001:67c:2e8::/48
origin:         AS3333
origin:         AS15497
source:         RIPE
"""


class RpslParserTest(unittest.TestCase):
    def _parse(self, txt):
        parser = RpslParser()
        blocks = []
        for line in txt.split("\n"):
            block = parser.feed(line)
            if block:
                blocks.append(block)
        block = parser.finish()
        if block:
            blocks.append(block)
        return parser, blocks

    def test_blocks(self):

        from whoislite import app

        with app.app_context():
            _, blocks = self._parse(AUTNUM)
        assert len(blocks) == 3, blocks
        assert blocks[0].key == "aut-num", blocks[0]
        assert blocks[0].value == "AS15497", blocks[0]
        assert blocks[0].text.startswith("aut-num:        AS15497\nas-name:"), blocks[0].text
        assert blocks[0].text.endswith("source:         RIPE\n"), blocks[0].text
        assert blocks[2].key == "person", blocks[2]

    def test_states(self):

        from whoislite import app

        parser = RpslParser()
        with app.app_context():
            assert parser.state == RpslState.IDLE
            assert parser.feed("aut-num:        AS1") is None
            assert parser.state == RpslState.ACCUMULATING
            assert parser.feed("source:         RIPE") is None
            block = parser.feed("")
            assert block.value == "AS1", block
            assert parser.state == RpslState.IDLE

            # same object again in the same stream
            parser.feed("aut-num:        as1")
            assert parser.state == RpslState.SUPPRESSING
            assert parser.feed("source:         OTHER") is None
            assert parser.feed("") is None
            assert parser.state == RpslState.IDLE
            assert parser.duplicates == 1

            # a first line without a value
            parser.feed("garbage")
            assert parser.state == RpslState.SUPPRESSING
            assert parser.finish() is None

            # blank lines between blocks do nothing
            assert parser.feed("   ") is None
            assert parser.finish() is None

    def test_attribute_values(self):

        txt = "route:          193.0.0.0/21\norigin:         AS3333 # main\nORIGIN: AS1\nremarks: origin: AS2\n"
        assert _rpsl_attribute_values(txt, "origin") == ["AS3333", "AS1"]
        assert _rpsl_attribute_values(txt, "mnt-by") == []


class RpslSyncTest(WhoisliteTestCase):
    def test_import(self):

        from whoislite import db
        from whoislite.rpsl.models import RpslObject, RpslMntBy

        stats = self.import_rpsl(AUTNUM)
        assert stats["inserted"] == 2, stats
        assert db.session.query(RpslObject).count() == 2

        # only allow-listed types are stored
        assert db.session.query(RpslObject).filter(RpslObject.key == "person").count() == 0

        obj = db.session.query(RpslObject).filter(RpslObject.value == "as15497").one()
        assert obj.key == "aut-num", obj
        assert "org:            ORG-UL1-RIPE\n" in obj.block, obj.block

        mntbys = sorted([(row.mntby, row.value) for row in db.session.query(RpslMntBy)])
        assert mntbys == [("RIPE-NCC-END-MNT", "AS15497"),
                          ("RIPE-NCC-MNT", "AS3333"),
                          ("UKRCOM-MNT", "AS15497")], mntbys

    def test_origin_index(self):

        from whoislite import db
        from whoislite.rpsl.models import RpslOrigin, RpslMntBy

        self.import_rpsl(ROUTE, url="https://example.com/ripe.db.route")
        origins = sorted([(row.origin, row.route) for row in db.session.query(RpslOrigin)])
        assert origins == [("AS15497", "2001:67c:2e8::/48"),
                           ("AS3333", "193.0.0.0/21"),
                           ("AS3333", "2001:67c:2e8::/48")], origins

        # route objects do not feed the mnt-by index
        assert db.session.query(RpslMntBy).count() == 0

    def test_import_twice(self):

        self.import_rpsl(AUTNUM)
        stats = self.import_rpsl(AUTNUM)
        assert stats["written"] == 0, stats
        assert stats["unchanged"] == 2, stats
        assert stats.get("inserted", 0) == 0, stats
        assert stats.get("updated", 0) == 0, stats
        assert stats["swept"] == 0, stats

    def test_update(self):

        from whoislite import db
        from whoislite.rpsl.models import RpslObject, RpslMntBy

        self.import_rpsl(AUTNUM)
        stats = self.import_rpsl(AUTNUM.replace("UKRCOM-MNT", "NEW-MNT"))
        assert stats["updated"] == 1, stats
        assert stats["unchanged"] == 1, stats
        obj = db.session.query(RpslObject).filter(RpslObject.value == "AS15497").one()
        assert "NEW-MNT" in obj.block, obj.block

        # the old maintainer is swept from the index
        assert stats["swept_mntby"] == 1, stats
        assert db.session.query(RpslMntBy).filter(RpslMntBy.mntby == "UKRCOM-MNT").count() == 0
        assert db.session.query(RpslMntBy).filter(RpslMntBy.mntby == "NEW-MNT").count() == 1

    def test_sweep(self):

        from whoislite import db
        from whoislite.rpsl.models import RpslObject, RpslOrigin, RpslMntBy

        self.import_rpsl(AUTNUM, url="https://example.com/ripe.db.aut-num")
        self.import_rpsl(ROUTE, url="https://example.com/ripe.db.route")

        # AS3333 goes away, and it is not the last object of its type in the file
        txt = """aut-num:        AS1
source:         RIPE

aut-num:        AS15497
as-name:        UKRCOM-AS
org:            ORG-UL1-RIPE
mnt-by:         UKRCOM-MNT
mnt-by:         RIPE-NCC-END-MNT  # both
source:         RIPE
"""
        stats = self.import_rpsl(txt, url="https://example.com/ripe.db.aut-num")
        assert stats["swept"] == 1, stats
        assert db.session.query(RpslObject).filter(RpslObject.value == "AS3333").count() == 0
        assert db.session.query(RpslObject).filter(RpslObject.value == "AS15497").count() == 1
        assert db.session.query(RpslObject).filter(RpslObject.value == "AS1").count() == 1
        assert db.session.query(RpslMntBy).filter(RpslMntBy.value == "AS3333").count() == 0

        # objects from the route file are untouched
        assert db.session.query(RpslObject).filter(RpslObject.key == "route").count() == 1
        assert db.session.query(RpslObject).filter(RpslObject.key == "route6").count() == 1
        assert db.session.query(RpslOrigin).count() == 3

    def test_small_batches(self):

        from whoislite import app, db
        from whoislite.rpsl.models import RpslObject, RpslOrigin, RpslMntBy

        app.config["BATCH_SIZE"] = 2
        stats = self.import_rpsl(AUTNUM, url="https://example.com/ripe.db.aut-num")
        assert stats["written"] == 5, stats
        stats = self.import_rpsl(ROUTE, url="https://example.com/ripe.db.route")
        assert stats["written"] == 5, stats
        assert db.session.query(RpslObject).count() == 4
        assert db.session.query(RpslMntBy).count() == 3
        assert db.session.query(RpslOrigin).count() == 3

        for txt, url in [(AUTNUM, "https://example.com/ripe.db.aut-num"),
                         (ROUTE, "https://example.com/ripe.db.route")]:
            stats = self.import_rpsl(txt, url=url)
            assert stats["written"] == 0, stats
            assert stats["unchanged"] == 2, stats
            assert stats["swept"] == 0, stats

    def test_sweep_failure(self):

        from sqlalchemy.exc import SQLAlchemyError

        from whoislite import db
        from whoislite.rpsl.models import RpslObject, RpslMntBy
        from whoislite.rpsl.utils import RpslContext

        self.import_rpsl(AUTNUM)
        delete_ids = RpslContext._delete_ids

        # objects are deleted before the mnt-by index fails
        def _delete_ids_then_fail(ctx, model, ids):
            delete_ids(ctx, model, ids)
            if model is RpslMntBy:
                raise SQLAlchemyError("database is locked")

        txt = AUTNUM.replace("aut-num:        AS3333\n"
                             "as-name:        RIPE-NCC-AS\n"
                             "mnt-by:         RIPE-NCC-MNT\n"
                             "source:         RIPE\n\n", "")
        with mock.patch.object(RpslContext, "_delete_ids", _delete_ids_then_fail):
            stats = self.import_rpsl(txt)
        assert stats["swept"] == 0, stats
        assert stats["swept_mntby"] == 0, stats
        assert db.session.query(RpslObject).filter(RpslObject.value == "AS3333").count() == 1
        assert db.session.query(RpslMntBy).filter(RpslMntBy.value == "AS3333").count() == 1

    def test_sweep_empty(self):

        from whoislite import db
        from whoislite.rpsl.models import RpslObject

        self.import_rpsl(AUTNUM)
        stats = self.import_rpsl("% nothing here\n")
        assert stats.get("swept", 0) == 0, stats
        assert db.session.query(RpslObject).count() == 2


if __name__ == "__main__":
    unittest.main()
