from __future__ import annotations
from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column
from client_crud.core.database import Base

class Client(Base):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    name:    Mapped[str | None] = mapped_column(String(255), nullable=True)
    # Unicité garantie aussi côté base (la vérification du service n'est pas atomique)
    email:   Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone:   Mapped[str | None] = mapped_column(String(32), nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city:    Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"Client(id={self.id!r}, email={self.email!r})"
