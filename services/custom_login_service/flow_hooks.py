"""Extension points for the login flow.

The orchestrator owns one FlowHooks instance; integrators replace the callables
instead of registering ambient global filters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from services.custom_login_service.flow_enums import Role
from services.custom_login_service.flow_models import Identity


def _keep_url(url: str, identity: Identity) -> str:
    return url


def _keep_role(role: Role) -> Role:
    return role


@dataclass
class FlowHooks:
    # Rewrites the account destination used for logged-in visitors.
    logged_in_redirect: Callable[[str, Identity], str] = field(default=_keep_url)
    # Chooses the role given to newly registered users.
    new_user_role: Callable[[Role], Role] = field(default=_keep_role)
