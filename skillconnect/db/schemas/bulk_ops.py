from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    # Operation records are exchanged in camelCase (operationId, startTime, ...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Progress(_CamelModel):
    total: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0


class FailedItem(_CamelModel):
    item: Any = None
    error: str
    line_number: Optional[int] = None
    index: Optional[int] = None


class OperationResults(_CamelModel):
    successful_items: List[Any] = Field(default_factory=list)
    failed_items: List[FailedItem] = Field(default_factory=list)
    summary: Dict[str, Any] = Field(default_factory=dict)


class OperationFiles(_CamelModel):
    input: Optional[str] = None
    output: Optional[str] = None
    errors: Optional[str] = None


class BulkOperationCreate(_CamelModel):
    type: str
    parameters: Dict[str, Any] = Field(default_factory=dict)
    input_file: Optional[str] = None


class BulkOperation(_CamelModel):
    operation_id: str
    type: str
    initiated_by: Optional[str] = None
    status: str
    progress: Progress
    cancel_requested: bool = False
    parameters: Dict[str, Any] = Field(default_factory=dict)
    results: OperationResults = Field(default_factory=OperationResults)
    files: OperationFiles = Field(default_factory=OperationFiles)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    created_at: datetime


class BulkOperationSubmitted(_CamelModel):
    operation_id: str
    status: str = "pending"


class BulkOperationList(_CamelModel):
    operations: List[BulkOperation]
    total: int
    skip: int
    limit: int
