from __future__ import annotations

from typing import Any

from services.custom_login_service.protocols import PresentationProtocol


class JsonPresentation(PresentationProtocol):
    """Hands the template id and its attributes to the client as JSON."""

    def render(self, template: str, attributes: dict[str, Any]) -> dict[str, Any]:
        return {"template": template, "attributes": attributes}
