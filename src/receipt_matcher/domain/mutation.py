import copy
from typing import Any, Dict, Mapping, Optional

EXPENSE_LINE_DETAIL = "AccountBasedExpenseLineDetail"
BILLABLE = "Billable"
DEFAULT_TAX_CODE = "TAX"


def mark_billable_taxable(
    purchase: Mapping[str, Any],
    job_name: str,
    job_map: Optional[Mapping[str, str]] = None,
    *,
    tax_code: str = DEFAULT_TAX_CODE,
) -> Dict[str, Any]:
    """Return a deep copy of purchase with every expense line billable and taxable.

    CustomerRef is only set when job_name is present in job_map. Lines of any
    other DetailType are copied unchanged. Id and SyncToken are preserved so the
    result can be posted back as a full update.
    """
    updated = copy.deepcopy(dict(purchase))
    customer_id = (job_map or {}).get(job_name)

    lines = updated.get("Line")
    if not isinstance(lines, list):
        return updated

    for line in lines:
        if not isinstance(line, dict) or line.get("DetailType") != EXPENSE_LINE_DETAIL:
            continue
        detail = line.get(EXPENSE_LINE_DETAIL)
        if not isinstance(detail, dict):
            detail = {}
            line[EXPENSE_LINE_DETAIL] = detail
        detail["BillableStatus"] = BILLABLE
        detail["TaxCodeRef"] = {"value": tax_code}
        if customer_id:
            detail["CustomerRef"] = {"value": str(customer_id)}
    return updated
