#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+

import flask

from celery import Celery


class FlaskCelery(Celery):
    def __init__(self, *args, **kwargs):

        super().__init__(*args, **kwargs)
        self.patch_task()

        if "app" in kwargs:
            self.init_app(kwargs["app"])

    def patch_task(self) -> None:
        TaskBase = self.Task
        _celery = self

        class ContextTask(TaskBase):  # type: ignore
            abstract = True

            def __call__(self, *args, **kwargs):
                if flask.has_app_context():
                    return TaskBase.__call__(self, *args, **kwargs)
                with _celery.flask_app.app_context():
                    return TaskBase.__call__(self, *args, **kwargs)

        self.Task = ContextTask

    def init_app(self, app: flask.Flask) -> None:
        self.flask_app = app
        self.config_from_object(app.config, namespace="CELERY")
