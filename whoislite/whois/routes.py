#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+

from flask import Blueprint, Response, abort

from .utils import OPERATIONS, _whois_query

bp_whois = Blueprint("whois", __name__)


@bp_whois.route("/")
def route_operations():
    return Response(response="\n".join(sorted(OPERATIONS)) + "\n", mimetype="text/plain")


@bp_whois.route("/<operation>/<path:value>")
def route_query(operation, value):

    try:
        txt = _whois_query(operation, value)
    except KeyError:
        abort(404)
    if not txt:
        abort(404)
    return Response(response=txt, mimetype="text/plain")
