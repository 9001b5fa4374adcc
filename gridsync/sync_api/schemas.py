# gridsync/sync_api/schemas.py
from datetime import datetime
from typing import List, Optional, Dict, Any, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Enum-like Literals from the wire protocol
StatusType = Literal['info', 'error', 'done']
StreamUnitType = Literal['data', 'meta', 'length', 'error']
FilterType = Literal['CONDITION', 'GROUP']
LogicalOperator = Literal['AND', 'OR', 'NONE']
FilterOperator = Literal[
    'EQUAL', 'NOT_EQUAL', 'GREATER_THAN', 'GREATER_THAN_OR_EQUAL_TO',
    'LESS_THAN', 'LESS_THAN_OR_EQUAL_TO', 'CONTAINS', 'NOT_CONTAINS',
    'BEGIN_WITH', 'END_WITH', 'IN', 'NOT_IN', 'IS_BLANK', 'IS_NOT_BLANK',
]
AttributeType = Literal['text', 'number', 'date', 'bool']

# A row is a plain mapping; the primary key and modified column are looked up by name.
RowValue = Union[str, int, float, bool, None, List[Any], Dict[str, Any]]
Row = Dict[str, RowValue]


class _CamelModel(BaseModel):
    # Wire names are camelCase, Python attributes stay snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Status events ---
class StatusEvent(_CamelModel):
    type: StatusType
    header: Optional[str] = None
    content: Optional[str] = None
    loading_data_runtime_milliseconds: Optional[float] = None
    loading_data_reply_milliseconds: Optional[float] = None
    loading_data_row_count: Optional[int] = None


# --- Row stream ---
class StreamUnit(BaseModel):
    type: StreamUnitType
    data: Any = None

    @model_validator(mode="after")
    def check_row_payload(self) -> "StreamUnit":
        # Rows are read by field name
        if self.type == "data" and not isinstance(self.data, dict):
            raise ValueError(f"data unit must carry a JSON object, got {type(self.data).__name__}")
        return self


# --- Filters (mirrors the grid datasource FilterArgument) ---
class FilterArgument(_CamelModel):
    type: FilterType = 'CONDITION'
    logical_operator: Optional[LogicalOperator] = None
    attribute: Optional[str] = None
    attribute_type: Optional[AttributeType] = None
    operator: Optional[FilterOperator] = None
    value: Any = None
    filter_arguments: Optional[List["FilterArgument"]] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


FilterArgument.model_rebuild()


# --- Mutation result ---
class MutationResult(BaseModel):
    success: bool
    data: Union[List[Any], str] = Field(default_factory=list)


# --- Configuration records ---
class DatasetApiConfig(BaseModel):
    api_name: str
    primary_key: str
    modified: Optional[str] = None # Modified-tracking column, enables incremental loads


class HttpApiConfig(BaseModel):
    query_url: str
    update_url: str
    timeout: float = 300.0
    verify_ssl: bool = True


class SyncState(BaseModel):
    """Per-dataset sync bookkeeping, held by one SyncService."""
    last_request: Optional[datetime] = None
    meta_data: Dict[str, Any] = Field(default_factory=dict)

#
# End of gridsync/sync_api/schemas.py
########################################################################################################################
