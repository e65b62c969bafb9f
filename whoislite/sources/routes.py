#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+

from flask import Blueprint, jsonify

from celery.schedules import crontab

from whoislite import db, tq
from whoislite.main.models import Event

from .models import FileMetadata
from .utils import _async_sync_all

bp_sources = Blueprint("sources", __name__)


@tq.on_after_finalize.connect
def setup_periodic_tasks(sender, **_):
    sender.add_periodic_task(
        crontab(hour=3, minute=17), _async_sync_all.s(),
    )


@bp_sources.route("/")
def route_view():

    files = []
    for md in db.session.query(FileMetadata).order_by(FileMetadata.url):
        files.append({"url": md.url,
                      "last_modified": md.last_modified,
                      "file_size": md.file_size})
    events = []
    for event in db.session.query(Event).order_by(Event.id.desc()).limit(20):
        events.append({"timestamp": event.timestamp.isoformat(),
                       "message": event.message,
                       "is_important": event.is_important})
    return jsonify({"files": files, "events": events})


@bp_sources.route("/sync", methods=["POST"])
def route_sync():

    # asynchronously rebuilt
    _async_sync_all.apply_async()
    return jsonify({"status": "queued"}), 202
