"""
SQLAlchemy database models for the restore target installation.
Supports SQLite (default) and any other SQLAlchemy backend.
"""

from datetime import datetime

from sqlalchemy import Column, String, Text, DateTime, Integer, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


class CourseCategory(Base):
    """Category model grouping courses."""
    __tablename__ = 'course_categories'

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Lookup key for the restore tool, deliberately not unique at the store level
    name = Column(String(255), nullable=False)
    parent = Column(Integer, nullable=False, default=0)
    visible = Column(Boolean, nullable=False, default=True)
    path = Column(String(255), nullable=False, default='')
    sortorder = Column(Integer, nullable=False, default=0)
    description = Column(Text)
    timemodified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    courses = relationship("Course", back_populates="category_record")

    __table_args__ = (
        Index('idx_category_name', 'name'),
        Index('idx_category_parent', 'parent'),
    )

    def to_dict(self) -> dict:
        """Convert category to dictionary format."""
        return {
            'id': self.id,
            'name': self.name,
            'parent': self.parent,
            'visible': bool(self.visible),
            'path': self.path,
        }


class Course(Base):
    """Course model. Created empty, then populated by a restore."""
    __tablename__ = 'course'

    id = Column(Integer, primary_key=True, autoincrement=True)
    category = Column(Integer, ForeignKey('course_categories.id'), nullable=False)
    shortname = Column(String(255), nullable=False)
    fullname = Column(String(1333), nullable=False)
    idnumber = Column(String(100), default='')
    summary = Column(Text)
    format = Column(String(21), nullable=False, default='topics')
    startdate = Column(DateTime)
    visible = Column(Boolean, nullable=False, default=False)
    sortorder = Column(Integer, nullable=False, default=0)
    timecreated = Column(DateTime, default=datetime.utcnow)
    timemodified = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    category_record = relationship("CourseCategory", back_populates="courses")
    sections = relationship("CourseSection", back_populates="course_record")

    __table_args__ = (
        Index('idx_course_shortname', 'shortname'),
        Index('idx_course_category', 'category'),
    )

    def to_dict(self) -> dict:
        """Convert course to dictionary format."""
        return {
            'id': self.id,
            'category': self.category,
            'shortname': self.shortname,
            'fullname': self.fullname,
            'idnumber': self.idnumber or '',
            'summary': self.summary or '',
            'format': self.format,
            'startdate': self.startdate.isoformat() if self.startdate else '',
            'visible': bool(self.visible),
        }


class CourseSection(Base):
    """Course section produced by a restore."""
    __tablename__ = 'course_sections'

    id = Column(Integer, primary_key=True, autoincrement=True)
    course = Column(Integer, ForeignKey('course.id', ondelete='CASCADE'), nullable=False)
    section = Column(Integer, nullable=False, default=0)  # position within the course
    name = Column(String(255))
    summary = Column(Text)
    visible = Column(Boolean, nullable=False, default=True)
    sequence = Column(Text, default='')  # comma separated course_modules ids

    course_record = relationship("Course", back_populates="sections")

    __table_args__ = (
        Index('idx_section_course', 'course', 'section'),
    )


class CourseModule(Base):
    """Activity instance placed in a course section."""
    __tablename__ = 'course_modules'

    id = Column(Integer, primary_key=True, autoincrement=True)
    course = Column(Integer, ForeignKey('course.id', ondelete='CASCADE'), nullable=False)
    section = Column(Integer, ForeignKey('course_sections.id', ondelete='CASCADE'), nullable=False)
    modname = Column(String(50), nullable=False)
    name = Column(String(1333))
    idnumber = Column(String(100), default='')
    visible = Column(Boolean, nullable=False, default=True)
    added = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_module_course', 'course'),
        Index('idx_module_section', 'section'),
    )


def enable_sqlite_foreign_keys(dbapi_conn, connection_record):
    """Enable foreign key support for SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
