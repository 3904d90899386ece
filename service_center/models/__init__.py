"""ORM model package."""

from service_center.models.entities import (
    AdvisorTarget,
    BillingRecord,
    BookingRecord,
    CityTarget,
    DistributionMode,
    OperationsRecord,
    ProcessingStatus,
    RepairOrderRecord,
    RoleAssignment,
    RoleType,
    Showroom,
    UploadedFile,
    UploadType,
    User,
    WarrantyRecord,
)

__all__ = [
    "AdvisorTarget",
    "BillingRecord",
    "BookingRecord",
    "CityTarget",
    "DistributionMode",
    "OperationsRecord",
    "ProcessingStatus",
    "RepairOrderRecord",
    "RoleAssignment",
    "RoleType",
    "Showroom",
    "UploadedFile",
    "UploadType",
    "User",
    "WarrantyRecord",
]
