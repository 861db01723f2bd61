"""
User roles enumeration.

Defines the role types for the ride subscription platform.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.
    
    Roles:
        ADMIN: Manages routes, vehicles, drivers and assignments
        DRIVER: Runs assigned rides stop by stop
        RIDER: Subscribes to recurring rides (default role)
    """
    ADMIN = "ADMIN"
    DRIVER = "DRIVER"
    RIDER = "RIDER"
