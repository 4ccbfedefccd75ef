from app.models.user import User
from app.models.upload import Upload
from app.models.payment import Payment

__all__ = [
    "User",
    "Upload",
    "Payment",
]
