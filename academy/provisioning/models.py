from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from academy.notifications.mailer import EmailResult


class RemoteUser(BaseModel):
    """Learner account in the remote store (collection `users`)"""
    name: str = ""
    email: str
    password: str  # bcrypt hash
    roles: List[str] = Field(default_factory=lambda: ["student"])
    verified: bool = True
    refreshToken: Optional[str] = None
    metadata: dict = Field(default_factory=dict)
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)


def public_user(doc: Optional[dict]) -> Optional[dict]:
    """Remote user without credentials"""
    if not doc:
        return None
    return {
        "_id": str(doc["_id"]) if doc.get("_id") is not None else None,
        "name": doc.get("name", ""),
        "email": doc.get("email"),
        "roles": doc.get("roles", []),
        "verified": doc.get("verified", False),
    }


class ProvisionResult(BaseModel):
    created: bool
    existed: bool = False
    user: Optional[dict] = None
    password_plain: Optional[str] = None
    email_result: Optional[EmailResult] = None
    error: Optional[str] = None

    def audit_view(self) -> dict:
        """What is safe to persist on a registration or return to the admin UI"""
        view: dict[str, Any] = {"created": self.created, "existed": self.existed}
        if self.user:
            view["userId"] = self.user.get("_id")
        if self.email_result is not None:
            view["emailResult"] = {"ok": self.email_result.ok, "error": self.email_result.error}
        if self.error:
            view["error"] = self.error
        return view
