"""
Campus Portal Backend — Course SQLAlchemy Model
=================================================

What:  ORM model for the `courses` table.
Who:   CRUD via CourseService; exposed by the /api/courses routes.

Each course belongs to exactly one department (dept_id). Degree bounds are
plain numbers here; business-rule validation of their ranges is out of scope.
"""

from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus.database import Base


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    topic: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    degree: Mapped[float] = mapped_column(Numeric(6, 2, asdecimal=False), nullable=False)
    min_degree: Mapped[float] = mapped_column(Numeric(6, 2, asdecimal=False), nullable=False)
    dept_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("departments.id", ondelete="CASCADE"),
        nullable=False,
    )

    department: Mapped["Department"] = relationship(  # noqa: F821
        back_populates="courses",
        lazy="noload",
    )

    # Courses are listed per department on the department pages
    __table_args__ = (Index("idx_courses_dept_id", "dept_id"),)

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, name={self.name!r}, dept_id={self.dept_id})>"
