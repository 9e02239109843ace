# SPDX-License-Identifier: Apache-2.0

"""
Idempotent demo data seeding.

Run once at startup when SEED_DEMO_DATA is enabled. Existing records are
detected by username and title, so repeated runs create nothing new.
"""

import logging
from typing import Dict

from ..models.entities import Cause, User
from ..models.enums import CauseStatus, UserRole
from .auth import AuthService
from .mongodb import MongoDBService, CAUSES, USERS

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "careconnect-demo"

DEMO_USERS = [
    {"username": "demo_ngo", "role": UserRole.NGO, "name": "Green Earth Foundation",
     "email": "ngo@example.org", "bio": "Community environmental projects."},
    {"username": "demo_volunteer", "role": UserRole.VOLUNTEER, "name": "Alex Volunteer",
     "email": "volunteer@example.org", "bio": "Weekend volunteer."},
]

DEMO_CAUSES = [
    {"title": "Beach Cleanup Drive", "category": "Environment", "location": "Santa Monica, CA",
     "urgency": 6, "description": "Help us remove litter from the shoreline."},
    {"title": "Food Bank Sorting", "category": "Hunger Relief", "location": "Oakland, CA",
     "urgency": 8, "description": "Sort and pack donated groceries for families in need."},
]


def seed_demo_data(mongo_service: MongoDBService, auth_service: AuthService) -> Dict[str, int]:
    """
    Create the demo NGO, volunteer and causes when missing.

    Returns:
        Counts of records created in this run
    """
    created = {"users": 0, "causes": 0}
    users: Dict[str, User] = {}

    for entry in DEMO_USERS:
        document = mongo_service.find_one_by(USERS, {"username": entry["username"]})
        if document:
            users[entry["username"]] = User.from_document(document)
            continue

        user = User(password_hash=auth_service.hash_password(DEMO_PASSWORD), **entry)
        mongo_service.create(USERS, user.to_document())
        users[entry["username"]] = user
        created["users"] += 1

    ngo = users["demo_ngo"]
    for entry in DEMO_CAUSES:
        if mongo_service.find_one_by(CAUSES, {"ngoId": ngo.id, "title": entry["title"]}):
            continue
        cause = Cause(ngo_id=ngo.id, status=CauseStatus.OPEN, **entry)
        mongo_service.create(CAUSES, cause.to_document())
        created["causes"] += 1

    logger.info("Demo data seeded", extra={"extra_fields": created})
    return created
