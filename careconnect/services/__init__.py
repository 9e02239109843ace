# SPDX-License-Identifier: Apache-2.0

"""
Service layer: persistence, authentication and orchestration of domain logic.
"""
