"""
Checklist Manifesto Backend — Connection Probe Scratch Table
==============================================================

What:  Disposable table used by the testDatabase diagnostic.
Why:   A write/read/delete cycle proves more than a ping: it shows the
       connected role can actually modify data.
How:   Rows live only for the duration of one probe and are deleted at the
       end of it. Nothing else reads or writes this table.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class ConnectionProbe(Base):
    __tablename__ = "connection_probe"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    test: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
