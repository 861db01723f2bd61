"""
Vehicle enumerations.
"""

import enum


class VehicleType(str, enum.Enum):
    BUS = "bus"
    VAN = "van"
    MICROBUS = "microbus"
    SEDAN = "sedan"
    SUV = "suv"


class VehicleStatus(str, enum.Enum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"
