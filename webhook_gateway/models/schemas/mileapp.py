"""
Pydantic schemas for MileApp task status callbacks.
"""
from pydantic import BaseModel, ConfigDict, Field


class MileappUserVar(BaseModel):
    """Custom variables attached to the MileApp task when it was created."""
    order_number: str = Field("", alias="orderNumber")
    receiver: str = ""
    receiver_name: str = Field("", alias="receiverName")
    driver_phone: str = Field("", alias="driverPhone")

    model_config = ConfigDict(populate_by_name=True)


class MileappAssignee(BaseModel):
    full_name: str = ""


class MileappStatusUpdate(BaseModel):
    task_ref_id: str = Field("", alias="taskRefId")
    task_status: str = Field("", alias="taskStatus")
    user_var: MileappUserVar = Field(default_factory=MileappUserVar, alias="UserVar")
    assigned_to: MileappAssignee = Field(default_factory=MileappAssignee, alias="assignedTo")

    model_config = ConfigDict(populate_by_name=True, json_schema_extra={
        "example": {
            "taskRefId": "62b1c7d2e4b0a1",
            "taskStatus": "done",
            "UserVar": {
                "orderNumber": "ORD-0001",
                "receiver": "owner",
                "receiverName": "Budi",
                "driverPhone": "+628123456789",
            },
            "assignedTo": {"full_name": "Agus Driver"},
        }
    })
