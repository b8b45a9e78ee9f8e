from fastapi import HTTPException, status
from sqlalchemy.orm import Query
from typing import Dict, Optional


def apply_ordering(
    query: Query,
    columns: Dict[str, object],
    order_by: Optional[str],
    ascending: bool = True,
) -> Query:
    """Order by a whitelisted column name; unknown names are a client error."""
    if not order_by:
        return query

    column = columns.get(order_by)
    if column is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot order by '{order_by}'. Allowed: {', '.join(sorted(columns))}"
        )

    return query.order_by(column.asc() if ascending else column.desc())
