from __future__ import annotations

from ..extensions import db
from multico.time_utils import to_utc_z


class DocumentSequence(db.Model):
    """
    Atomic per-company document sequences.

    One row per (company, document type). Intercompany reference numbers
    use document_type "IC" on the selling company.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("company_id", "document_type", name="uq_doc_sequences_company_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    company = db.relationship("Company", backref=db.backref("document_sequences", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "company_id": self.company_id,
            "document_type": self.document_type,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
