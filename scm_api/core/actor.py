"""Request actor resolution.

Authentication happens upstream (gateway / session layer); it forwards the
resolved identity in headers. This module only turns those headers into an
:class:`~scm_api.workflow.states.Actor`.
"""


from fastapi import Header, Request

from scm_api.core.exceptions import UnauthorizedError
from scm_api.services.notifier import Notifier
from scm_api.workflow.states import Actor, Role


async def get_actor(
    user_id: int | None = Header(default=None, alias="X-User-Id"),
    role: str | None = Header(default=None, alias="X-User-Role"),
    company_id: int | None = Header(default=None, alias="X-Company-Id"),
    email: str | None = Header(default=None, alias="X-User-Email"),
) -> Actor:
    """FastAPI dependency returning the calling actor."""
    if user_id is None or not role:
        raise UnauthorizedError()
    try:
        resolved = Role(role.strip().lower())
    except ValueError:
        raise UnauthorizedError(f"Unknown role '{role}'") from None
    return Actor(id=user_id, role=resolved, company_id=company_id, email=email)


def get_notifier(request: Request) -> Notifier:
    """FastAPI dependency returning the app-wide notification dispatcher."""
    return request.app.state.notifier
