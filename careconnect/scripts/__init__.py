# SPDX-License-Identifier: Apache-2.0

"""
Operational scripts, runnable with `python -m careconnect.scripts.<name>`.
"""
