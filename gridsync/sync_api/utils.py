# gridsync/sync_api/utils.py
#
#
# Imports
from datetime import datetime
from typing import Dict, Any, Optional
from urllib.parse import urlencode
#
# Local Imports
from .schemas import FilterArgument
#
#######################################################################################################################
#
# Functions:

def generate_query_url(query_url: str, api_name: str, meta_data_only: bool = False) -> str:
    """
    Builds the read endpoint URL for a dataset.

    The query always carries ``rows=0``; metadata-only requests add ``meta=1``.
    """
    params = [("rows", "0")]
    if meta_data_only:
        params.append(("meta", "1"))
    return f"{query_url}{api_name}?{urlencode(params)}"


def generate_update_url(update_url: str, api_name: str) -> str:
    return f"{update_url}{api_name}"


def get_modified_filter(
    query: Optional[FilterArgument],
    modified_column: str,
    since: datetime,
) -> FilterArgument:
    """
    Returns a filter that only matches rows modified at or after ``since``.

    With no filter the result is a single-condition AND group; otherwise the
    original filter and the condition are wrapped together in an AND group.
    """
    modified_condition = FilterArgument(
        type="CONDITION",
        attribute=modified_column,
        attribute_type="date",
        operator="GREATER_THAN_OR_EQUAL_TO",
        value=since.isoformat(),
    )
    if query is None:
        return FilterArgument(
            type="GROUP",
            logical_operator="AND",
            filter_arguments=[modified_condition],
        )
    return FilterArgument(
        type="GROUP",
        logical_operator="AND",
        filter_arguments=[query.model_copy(deep=True), modified_condition],
    )


def filter_to_body(query: Optional[FilterArgument]) -> Optional[Dict[str, Any]]:
    """Serializes a filter for the JSON request body, ``None`` when unfiltered."""
    if query is None:
        return None
    return query.to_wire()

#
# End of utils.py
#######################################################################################################################
