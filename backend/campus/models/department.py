"""
Campus Portal Backend — Department SQLAlchemy Model
=====================================================

What:  ORM model for the `departments` table.
Who:   Read by the department location filters; CRUD via DepartmentService.

Only `location` matters to the request pipeline: location-gated routes admit
a request when the department's location, trimmed and lower-cased, is in the
configured allow-list.
"""

from typing import List, Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus.database import Base


class Department(Base):
    __tablename__ = "departments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    pc_numbers: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    manager_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Free text as entered; compare with normalized_location
    location: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    courses: Mapped[List["Course"]] = relationship(  # noqa: F821
        back_populates="department",
        lazy="noload",
        # Rows go away through ON DELETE CASCADE, not an ORM load-and-delete
        passive_deletes=True,
    )

    @property
    def normalized_location(self) -> str:
        return (self.location or "").strip().lower()

    def __repr__(self) -> str:
        return f"<Department(id={self.id}, name={self.name!r}, location={self.location!r})>"
