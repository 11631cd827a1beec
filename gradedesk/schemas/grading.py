from gradedesk.schemas.base import CamelModel


class AcceptingUpdate(CamelModel):
    accepting: bool


class AcceptingRead(CamelModel):
    item_id: int
    accepting: bool


class BulkReturnRequest(CamelModel):
    submission_ids: list[int]
