from pydantic import BaseModel


class NotificationClearResponse(BaseModel):
    cleared: int
