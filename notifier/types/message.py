"""
Queue message envelope.

The wire format is a camelCase JSON object; attributes are snake_case.
"""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# JSON numbers arrive as either int or float
Number = int | float


class QueueMessage(BaseModel):
    """
    A unit of work travelling through a queue transport.

    Instances are immutable. Build them with ``inject_carrier`` right before
    publishing so the producer's trace context travels with the message.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    type: str
    order_id: Number = Field(alias="orderId")
    user_id: Number = Field(alias="userId")
    user_name: str = Field(alias="userName")
    total: Number
    timestamp: str
    trace_context: dict[str, str] | None = Field(default=None, alias="traceContext")

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase wire object, omitting an absent carrier."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        """Serialize to the JSON body stored in the queue."""
        return json.dumps(self.to_wire())
