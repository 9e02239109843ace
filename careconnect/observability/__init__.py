# SPDX-License-Identifier: Apache-2.0

"""
Observability package: tracing setup, structured logging and request middleware.
"""
