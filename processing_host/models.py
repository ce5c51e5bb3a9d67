"""Database models."""

import uuid
from typing import ClassVar

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from processing_host.database import Base


def generate_id() -> str:
    return str(uuid.uuid4())


class Person(Base):
    """Person model, exposed as the Bookstore.Person data source."""

    __tablename__ = "bookstore_person"
    __data_source__: ClassVar[str] = "Bookstore.Person"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(256), nullable=False)

    books: Mapped[list["Book"]] = relationship(back_populates="author")

    def __repr__(self) -> str:
        return f"<Person(id={self.id}, name='{self.name}')>"


class Book(Base):
    """Book model, exposed as the Bookstore.Book data source."""

    __tablename__ = "bookstore_book"
    __data_source__: ClassVar[str] = "Bookstore.Book"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    code: Mapped[str | None] = mapped_column(String(10), unique=True, nullable=True)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    number_of_pages: Mapped[int | None] = mapped_column(Integer, nullable=True)
    author_id: Mapped[str | None] = mapped_column(
        ForeignKey("bookstore_person.id", ondelete="SET NULL"), nullable=True, index=True
    )

    author: Mapped[Person | None] = relationship(back_populates="books")

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}')>"
