# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
CareConnect - volunteer and NGO matching platform API.
"""

__version__ = "1.0.0"
