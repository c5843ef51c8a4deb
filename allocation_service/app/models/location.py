import enum

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import AllocationServiceBaseModel


class LocationKind(str, enum.Enum):
    BRANCH = "branch"
    WAREHOUSE = "warehouse"


class Location(AllocationServiceBaseModel):
    """A branch or warehouse holding its own stock count per product."""

    __tablename__ = "locations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[LocationKind] = mapped_column(
        Enum(LocationKind, native_enum=False, length=20),
        default=LocationKind.BRANCH,
        nullable=False,
    )
