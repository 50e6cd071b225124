from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


CONTACT_STATUSES = ("new", "in_progress", "responded")


class Contact(db.Model):
    """Support message submitted from the public contact form."""
    __tablename__ = "contacts"
    __table_args__ = (
        db.CheckConstraint("status IN ('new','in_progress','responded')", name="ck_contacts_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    subject = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(120), nullable=True)
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="new")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "subject": self.subject,
            "category": self.category,
            "message": self.message,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
