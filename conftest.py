#!/usr/bin/python3
# -*- coding: utf-8 -*-
#
# Copyright (C) 2025 The whoislite authors
#
# SPDX-License-Identifier: GPL-2.0+

import os

# must be set before the application is imported
os.environ['WHOISLITE_DATABASE_URI'] = 'sqlite://'
os.environ.setdefault('WHOISLITE_BROKER_URL', 'memory://')
