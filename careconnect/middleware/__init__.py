# SPDX-License-Identifier: Apache-2.0

"""
Request middleware: authentication, validation and error handling.
"""
