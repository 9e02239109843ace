# SPDX-License-Identifier: Apache-2.0

"""
HTTP route blueprints.
"""

from .auth import auth_bp
from .users import users_bp
from .causes import causes_bp
from .tasks import tasks_bp
from .donations import donations_bp
from .impact import impact_bp
from .posts import posts_bp

ALL_BLUEPRINTS = [auth_bp, users_bp, causes_bp, tasks_bp, donations_bp, impact_bp, posts_bp]
