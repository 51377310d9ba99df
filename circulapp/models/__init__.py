"""
Modèles SQLAlchemy / SQLAlchemy models.
Importer tous les modèles ici pour que la metadata soit complète.
Import all models here so the metadata is complete.
"""

from circulapp.models.user import User, UserType
from circulapp.models.audit import AuditLog
from circulapp.models.material import Material, MaterialCategory
from circulapp.models.product import (
    Product,
    ProductImage,
    ProductCategory,
    ProductCondition,
    ProductStatus,
    CompactionStatus,
)
from circulapp.models.transaction import Transaction, TransactionStatus
from circulapp.models.review import Review
from circulapp.models.chat import Chat, Message, MessageType, chat_participants
from circulapp.models.report import (
    Report,
    ReportTimelineEntry,
    ReportNote,
    ReportAction,
    ReportType,
    TargetType,
    ReportSeverity,
    ReportCategory,
    ReportStatus,
    ReportPriority,
    ReportSource,
    ModerationAction,
)
from circulapp.models.collection_schedule import (
    CollectionSchedule,
    RoutePoint,
    RoutePointStatus,
    ScheduleStatus,
    DayOfWeek,
    Frequency,
    CapacityUnit,
    VehicleType,
    FuelType,
    route_point_products,
)

__all__ = [
    "User",
    "UserType",
    "AuditLog",
    "Material",
    "MaterialCategory",
    "Product",
    "ProductImage",
    "ProductCategory",
    "ProductCondition",
    "ProductStatus",
    "CompactionStatus",
    "Transaction",
    "TransactionStatus",
    "Review",
    "Chat",
    "Message",
    "MessageType",
    "chat_participants",
    "Report",
    "ReportTimelineEntry",
    "ReportNote",
    "ReportAction",
    "ReportType",
    "TargetType",
    "ReportSeverity",
    "ReportCategory",
    "ReportStatus",
    "ReportPriority",
    "ReportSource",
    "ModerationAction",
    "CollectionSchedule",
    "RoutePoint",
    "RoutePointStatus",
    "ScheduleStatus",
    "DayOfWeek",
    "Frequency",
    "CapacityUnit",
    "VehicleType",
    "FuelType",
    "route_point_products",
]
