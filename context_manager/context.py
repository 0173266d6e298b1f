from contextvars import ContextVar
from typing import Optional

from pydantic import BaseModel


class RequestContextModel(BaseModel):
    seller_id: Optional[int] = None
    actor_id: Optional[int] = None
    courier: Optional[str] = None

    def __str__(self):
        parts = [
            "{}={}".format(key, value)
            for key, value in self.model_dump().items()
            if value is not None
        ]
        return " ".join(parts) or "-"


# defining the context variables to store the data of the current operation
# the logger adapter prints whatever is stored here in front of every message

context_user_data: ContextVar[Optional[RequestContextModel]] = ContextVar(
    "user_data", default=None
)


def set_request_context(seller_id=None, actor_id=None, courier=None):
    """Attach the seller/actor/courier of the current operation to the log context."""
    return context_user_data.set(
        RequestContextModel(seller_id=seller_id, actor_id=actor_id, courier=courier)
    )


# Helper function to safely get user data from context
def get_user_data() -> Optional[RequestContextModel]:
    return context_user_data.get()
