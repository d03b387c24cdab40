"""Per-tenant monthly document numbers such as ORD-202601-0001"""

from datetime import date

from sqlalchemy.orm import Session


def next_document_number(db: Session, column, tenant_column, tenant_id: int, prefix: str, on: date) -> str:
    """
    Next number in the PREFIX-YYYYMM-NNNN sequence for a tenant and month.

    `column` is the mapped number attribute (e.g. ServiceOrder.order_number) and
    `tenant_column` the tenant FK of the same model. Gaps left by deleted rows
    are not reused.
    """
    month_prefix = f"{prefix}-{on.strftime('%Y%m')}-"
    existing = (
        db.query(column)
        .filter(tenant_column == tenant_id, column.like(f"{month_prefix}%"))
        .all()
    )

    highest = 0
    for (number,) in existing:
        suffix = number[len(month_prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))

    return f"{month_prefix}{highest + 1:04d}"
