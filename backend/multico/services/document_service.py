# Overview: Service-layer operations for document numbering; allocates per-company sequence numbers.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


# document_type -> prefix
DOCUMENT_PREFIXES = {
    "SALES_ORDER": "SO",
    "PURCHASE_ORDER": "PO",
    "INVOICE": "INV",
    "BILL": "BILL",
    "RECEIPT": "REC",
    "PAYMENT": "PAY",
}

INTERCOMPANY_DOCUMENT_TYPE = "IC"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _allocate(company_id: int, document_type: str) -> int:
    """
    Reserve the next number of a (company, type) sequence.

    Runs inside the caller's transaction; the sequence row stays locked
    until that transaction ends. A concurrent first insert is absorbed by a
    savepoint so the caller's earlier work survives.
    """
    if not company_id:
        raise DocumentSequenceError("company_id is required")
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.company_id == company_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    def _read_reserved() -> int:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(company_id=company_id, document_type=document_type)
            .scalar()
        )
        return current - 1

    result = db.session.execute(stmt)
    if result.rowcount:
        return _read_reserved()

    try:
        with db.session.begin_nested():
            db.session.add(DocumentSequence(company_id=company_id, document_type=document_type, next_number=2))
        return 1
    except IntegrityError:
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        return _read_reserved()


def next_document_number(
    *,
    company_id: int,
    document_type: str,
    prefix: str | None = None,
    pad: int = 4,
) -> str:
    """
    Atomically allocate the next document number for a company/type.

    Format: "{prefix}-{company_id:03d}-{n:04d}", e.g. "INV-002-0017".
    """
    if prefix is None:
        prefix = DOCUMENT_PREFIXES.get(document_type)
    if not prefix:
        raise DocumentSequenceError(f"Unknown document type: {document_type}")

    next_num = _allocate(company_id, document_type)
    return f"{prefix}-{company_id:03d}-{next_num:0{pad}d}"


def next_intercompany_reference(*, source_company_id: int, target_company_id: int) -> str:
    """
    Allocate the shared reference number for a new intercompany transaction.

    Numbered per selling company: "IC-{source:03d}-{target:03d}-{n:05d}".
    """
    next_num = _allocate(source_company_id, INTERCOMPANY_DOCUMENT_TYPE)
    return f"IC-{source_company_id:03d}-{target_company_id:03d}-{next_num:05d}"
