"""
Applications.

The client never writes an application's status. ``submit_application`` is a
state-transition verb on the server; approval and decline happen server-side
once underwriting resolves.
"""

from __future__ import annotations

from issuance.integrations.contracts.interfaces import Application, ApplicationInput, ApplicationPatch

from .base import ApiTransport, path_segment


class ApplicationsClient:
    def __init__(self, transport: ApiTransport) -> None:
        self.transport = transport

    async def create_application(self, application_input: ApplicationInput) -> Application:
        return await self.transport.request_model(
            Application, "POST", "/applications", json=application_input.model_dump(mode="json")
        )

    async def get_application(self, application_id: str) -> Application:
        return await self.transport.request_model(
            Application, "GET", f"/applications/{path_segment(application_id)}"
        )

    async def patch_application(self, application_id: str, patch: ApplicationPatch) -> Application:
        """Amend applicant details while the application is still a draft."""
        return await self.transport.request_model(
            Application, "PATCH", f"/applications/{path_segment(application_id)}", json=patch.to_payload()
        )

    async def submit_application(self, application_id: str) -> Application:
        return await self.transport.request_model(
            Application, "POST", f"/applications/{path_segment(application_id)}:submit"
        )
