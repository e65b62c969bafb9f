#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+
#
# pylint: disable=wrong-import-position,wrong-import-order

import os
import logging

from logging.handlers import SMTPHandler

import click
from flask import Flask, Response
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

from whoislite.celery import FlaskCelery
from whoislite.dbutils import drop_db, init_db

app: Flask = Flask(__name__)
app_config_fn = os.environ.get('WHOISLITE_APP_SETTINGS', 'custom.cfg')
if os.path.exists(os.path.join(app.root_path, app_config_fn)):
    app.config.from_pyfile(app_config_fn)
else:
    app.config.from_pyfile('flaskapp.cfg')
if 'WHOISLITE_CUSTOM_SETTINGS' in os.environ:
    app.config.from_envvar('WHOISLITE_CUSTOM_SETTINGS')

app.logger.setLevel(app.config.get('LOG_LEVEL', logging.INFO))
if app.config.get('MAIL_SERVER') and not app.debug:
    mail_handler = SMTPHandler(mailhost=app.config['MAIL_SERVER'],
                               fromaddr=app.config.get('MAIL_DEFAULT_SENDER', 'noreply@localhost'),
                               toaddrs=app.config.get('ADMINS', []),
                               subject='whoislite sync failure')
    mail_handler.setLevel(logging.ERROR)
    app.logger.addHandler(mail_handler)

db: SQLAlchemy = SQLAlchemy(app)

migrate: Migrate = Migrate(app, db)

tq: FlaskCelery = FlaskCelery(app.name, broker=app.config['CELERY_BROKER_URL'])
tq.init_app(app)

from whoislite.sources.routes import bp_sources
from whoislite.whois.routes import bp_whois

app.register_blueprint(bp_sources, url_prefix='/sources')
app.register_blueprint(bp_whois, url_prefix='/whois')

@app.cli.command('initdb')
def initdb_command():
    init_db(db)

@app.cli.command('dropdb')
def dropdb_command():
    drop_db(db)

@app.cli.command('sync')
@click.option('--category', default=None,
              type=click.Choice(['extended', 'asnames', 'rpsl', 'geolocations']),
              help='Only sync one category of sources')
def sync_command(category):
    from whoislite.sources.utils import _sync_all, _sync_category
    if category:
        _sync_category(category)
    else:
        _sync_all()

@app.cli.command('whois')
@click.argument('operation')
@click.argument('value')
def whois_command(operation, value):
    from whoislite.whois.utils import _whois_query
    try:
        click.echo(_whois_query(operation, value), nl=False)
    except KeyError as e:
        raise click.BadParameter('unknown operation {}'.format(operation)) from e

@app.errorhandler(404)
def error_page_not_found(unused_msg=None):
    """ Error handler: File not found """
    return Response(response='No entries found\n', status=404, mimetype='text/plain')
